"""Tests for configuration and progress models."""
from __future__ import annotations

import pytest

from link_enricher.models import JobProgress, LinkItem, Provider, ProviderConfig


def test_provider_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LINKS_AI_PROVIDER", "OpenAI")
    monkeypatch.setenv("LINKS_AI_API_KEY", " sk-env ")
    monkeypatch.setenv("LINKS_AI_BASE_URL", "https://api.deepseek.com/v1")
    monkeypatch.delenv("LINKS_AI_MODEL", raising=False)

    config = ProviderConfig.from_env(model="deepseek-chat")

    expected = ProviderConfig(
        provider=Provider.OPENAI,
        api_key="sk-env",
        model="deepseek-chat",
        base_url="https://api.deepseek.com/v1",
    )
    if config != expected:
        raise AssertionError(f"Unexpected config {config}")


def test_provider_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("LINKS_AI_PROVIDER", "LINKS_AI_API_KEY", "LINKS_AI_BASE_URL", "LINKS_AI_MODEL"):
        monkeypatch.delenv(name, raising=False)
    config = ProviderConfig.from_env()
    if config.provider is not Provider.GEMINI or config.has_credentials:
        raise AssertionError("Default provider is Gemini without credentials")
    if config.effective_model != "gemini-2.5-flash":
        raise AssertionError("Blank model should resolve to the vendor default")


def test_unknown_provider_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown provider"):
        ProviderConfig.from_env(provider="claude", api_key="x")


def test_progress_never_exceeds_total() -> None:
    progress = JobProgress(total=2)
    progress.advance()
    progress.advance()
    if not progress.done or progress.as_tuple() != (2, 2):
        raise AssertionError("Progress should be done at total")
    with pytest.raises(ValueError, match="cannot exceed"):
        progress.advance()


def test_link_item_is_immutable() -> None:
    item = LinkItem(id="1", title="A", url="a.com")
    updated = item.with_description("new")
    if item.description is not None or updated.description != "new":
        raise AssertionError("with_description must return a copy")
    if not item.needs_description or updated.needs_description:
        raise AssertionError("Eligibility should follow the description")
