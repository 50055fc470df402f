"""Tests for the JSON link store."""
from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from link_enricher.job import EnrichmentJob
from link_enricher.models import Category, LinkItem
from link_enricher.store import JsonLinkStore

if TYPE_CHECKING:
    from pathlib import Path

    from conftest import ScriptedProvider

    from link_enricher.models import ProviderConfig


def test_empty_store_has_default_category(tmp_path: Path) -> None:
    store = JsonLinkStore(tmp_path / "links.json")
    if store.load_links():
        raise AssertionError("A missing file should yield no links")
    ids = [c.id for c in store.load_categories()]
    if ids != ["common"]:
        raise AssertionError(f"Expected the default category only, got {ids}")


def test_replace_all_keeps_categories(tmp_path: Path, sample_links: list[LinkItem]) -> None:
    store = JsonLinkStore(tmp_path / "nested" / "links.json")
    categories = [Category(id="common", name="Common"), Category(id="dev", name="Dev", password="pw")]
    store.replace_categories(categories)
    store.replace_all(sample_links)

    if store.load_links() != sample_links:
        raise AssertionError("Links should round-trip unchanged")
    if store.load_categories() != categories:
        raise AssertionError("Categories must survive a link replacement")
    leftovers = [p.name for p in store.path.parent.iterdir() if p.name != "links.json"]
    if leftovers:
        raise AssertionError(f"Temporary files left behind: {leftovers}")


def test_reads_bare_link_list(tmp_path: Path) -> None:
    path = tmp_path / "links.json"
    path.write_text(
        json.dumps([{"id": 1700000000000, "title": "A", "url": "https://a.example"}]),
        encoding="utf-8",
    )
    links = JsonLinkStore(path).load_links()
    if links != [LinkItem(id="1700000000000", title="A", url="https://a.example")]:
        raise AssertionError(f"Unexpected links {links}")


def test_invalid_document_raises(tmp_path: Path) -> None:
    path = tmp_path / "links.json"
    path.write_text('{"links": [{"title": "missing id"}]}', encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid link store document"):
        JsonLinkStore(path).load_links()


def test_incremental_persistence_during_run(
    tmp_path: Path,
    sample_links: list[LinkItem],
    config: ProviderConfig,
    failing_c: ScriptedProvider,
) -> None:
    store = JsonLinkStore(tmp_path / "links.json")
    store.replace_all(sample_links)
    persisted_after_each: list[list[LinkItem]] = []

    def _persist(items: list[LinkItem]) -> None:
        store.replace_all(items)
        persisted_after_each.append(store.load_links())

    EnrichmentJob(failing_c).run(store.load_links(), config, on_partial_result=_persist)

    final = {item.id: item.description for item in store.load_links()}
    if final != {"1": "desc-A", "2": "has one", "3": None}:
        raise AssertionError(f"Unexpected persisted descriptions {final}")
    if len(persisted_after_each) != 1:
        raise AssertionError("Only successful items trigger a persist")
