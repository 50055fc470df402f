"""Category list editing with password-gated edit and delete."""

from __future__ import annotations

import hmac
import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING

from .config import DEFAULT_CATEGORY_ID
from .models import Category, LinkItem

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable, Iterable, Sequence

LOGGER = logging.getLogger(__name__)


class CategoryError(RuntimeError):
    """Base class for rejected category operations."""


class ProtectedCategoryError(CategoryError):
    """Raised when trying to edit or delete the default category."""


class CategoryAuthError(CategoryError):
    """Raised when the supplied password does not verify."""


class UnknownCategoryError(CategoryError):
    """Raised when no category has the given id."""


def make_password_verifier(expected: str) -> Callable[[str], bool]:
    """Build a verifier comparing against ``expected`` in constant time."""
    expected_bytes = expected.encode("utf-8")

    def _verify(password: str) -> bool:
        return hmac.compare_digest(password.encode("utf-8"), expected_bytes)

    return _verify


def reassign_links(links: Iterable[LinkItem], category_id: str) -> list[LinkItem]:
    """Move links of a removed category into the default category."""
    return [
        replace(link, category_id=DEFAULT_CATEGORY_ID) if link.category_id == category_id else link
        for link in links
    ]


class CategoryManager:
    """Applies category edits and publishes the new list through ``on_update``.

    When a password verifier is configured, editing and deleting a category
    require a verified password. The default category can never be edited or
    deleted, verified or not.
    """

    def __init__(
        self,
        categories: Sequence[Category],
        on_update: Callable[[list[Category]], None],
        on_delete: Callable[[str], None],
        verify_password: Callable[[str], bool] | None = None,
    ) -> None:
        self._categories: list[Category] = list(categories)
        self._on_update = on_update
        self._on_delete = on_delete
        self._verify_password = verify_password

    @property
    def categories(self) -> list[Category]:
        return list(self._categories)

    def _publish(self, categories: list[Category]) -> None:
        self._categories = categories
        self._on_update(list(categories))

    def _find(self, category_id: str) -> Category:
        for category in self._categories:
            if category.id == category_id:
                return category
        msg = f"No category with id '{category_id}'"
        raise UnknownCategoryError(msg)

    def _authorise(self, password: str | None) -> None:
        if self._verify_password is None:
            return
        try:
            verified = self._verify_password(password or "")
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Password verification error: %s", exc)
            verified = False
        if not verified:
            msg = "Password verification failed"
            raise CategoryAuthError(msg)

    def move(self, index: int, direction: str) -> None:
        """Swap the category at ``index`` with its neighbour ("up" or "down")."""
        updated = list(self._categories)
        if direction == "up" and 0 < index < len(updated):
            updated[index], updated[index - 1] = updated[index - 1], updated[index]
        elif direction == "down" and 0 <= index < len(updated) - 1:
            updated[index], updated[index + 1] = updated[index + 1], updated[index]
        self._publish(updated)

    def add(self, name: str, icon: str = "Folder", password: str | None = None) -> Category | None:
        """Append a new category; blank names are ignored."""
        if not name.strip():
            return None
        category = Category(
            id=str(time.time_ns() // 1_000_000),
            name=name.strip(),
            icon=icon,
            password=(password or "").strip() or None,
        )
        self._publish([*self._categories, category])
        LOGGER.info("Added category %s (%s)", category.name, category.id)
        return category

    def edit(
        self,
        category_id: str,
        name: str,
        icon: str,
        password: str | None = None,
        *,
        auth_password: str | None = None,
    ) -> Category | None:
        """Rename a category and change its icon and password."""
        current = self._find(category_id)
        if current.is_protected:
            msg = f"Category '{current.name}' cannot be edited"
            raise ProtectedCategoryError(msg)
        self._authorise(auth_password)
        if not name.strip():
            return None
        updated = replace(
            current,
            name=name.strip(),
            icon=icon,
            password=(password or "").strip() or None,
        )
        self._publish([updated if c.id == category_id else c for c in self._categories])
        return updated

    def delete(self, category_id: str, *, auth_password: str | None = None) -> None:
        """Remove a category after verification and notify ``on_delete``."""
        current = self._find(category_id)
        if current.is_protected:
            msg = f"Category '{current.name}' cannot be deleted"
            raise ProtectedCategoryError(msg)
        self._authorise(auth_password)
        self._categories = [c for c in self._categories if c.id != category_id]
        LOGGER.info("Deleting category %s (%s)", current.name, current.id)
        self._on_delete(category_id)
