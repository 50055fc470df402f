"""JSON file persistence for links and categories."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from .models import (
    Category,
    LinkItem,
    LinkItemListModel,
    StoreDocumentModel,
    default_categories,
)

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterable

LOGGER = logging.getLogger(__name__)


class JsonLinkStore:
    """Authoritative link collection kept in a single JSON document.

    ``replace_all`` swaps in a complete new snapshot of the links; categories
    are left untouched, and the other way round for ``replace_categories``.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load_links(self) -> list[LinkItem]:
        """Return the stored links in order."""
        return [LinkItem.from_model(m) for m in self._read().links]

    def load_categories(self) -> list[Category]:
        """Return the stored categories, or the defaults for an empty store."""
        models = self._read().categories
        if not models:
            return default_categories()
        return [Category.from_model(m) for m in models]

    def replace_all(self, items: Iterable[LinkItem]) -> None:
        """Persist a full new snapshot of the link collection."""
        with self._lock:
            document = self._read()
            document.links = [item.to_model() for item in items]
            self._write(document)
        LOGGER.debug("Stored %d links in %s", len(document.links), self._path)

    def replace_categories(self, categories: Iterable[Category]) -> None:
        """Persist a new ordered category list."""
        with self._lock:
            document = self._read()
            document.categories = [category.to_model() for category in categories]
            self._write(document)
        LOGGER.debug("Stored %d categories in %s", len(document.categories), self._path)

    def _read(self) -> StoreDocumentModel:
        if not self._path.exists():
            return StoreDocumentModel()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            if isinstance(raw, list):
                # Bare list of links, as written by earlier exports.
                links = LinkItemListModel.model_validate(raw)
                return StoreDocumentModel(links=links.root)
            return StoreDocumentModel.model_validate(raw)
        except (json.JSONDecodeError, ValidationError) as exc:
            msg = f"Invalid link store document at {self._path}: {exc}"
            raise ValueError(msg) from exc

    def _write(self, document: StoreDocumentModel) -> None:
        payload = json.dumps(document.model_dump(mode="json"), indent=2, ensure_ascii=False)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=self._path.parent)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            tmp_path.replace(self._path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
