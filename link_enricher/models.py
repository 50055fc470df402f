"""Data models for the link collection and the description enrichment job."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum

import attrs
from attrs import define
from pydantic import BaseModel, Field, RootModel, field_validator

from .config import (
    DEFAULT_CATEGORY_ICON,
    DEFAULT_CATEGORY_ID,
    DEFAULT_CATEGORY_NAME,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_OPENAI_MODEL,
    ENV_API_KEY,
    ENV_BASE_URL,
    ENV_MODEL,
    ENV_PROVIDER,
)


class Provider(str, Enum):
    """Text-generation vendors understood by the provider client."""

    GEMINI = "gemini"
    OPENAI = "openai"

    @property
    def default_model(self) -> str:
        """Model used when the configuration does not name one."""
        if self is Provider.GEMINI:
            return DEFAULT_GEMINI_MODEL
        return DEFAULT_OPENAI_MODEL


@dataclass(slots=True, frozen=True)
class LinkItem:
    """A single saved link."""

    id: str
    title: str
    url: str
    description: str | None = None
    category_id: str = DEFAULT_CATEGORY_ID

    @property
    def needs_description(self) -> bool:
        """True when the description is absent or empty."""
        return not self.description

    def with_description(self, description: str) -> LinkItem:
        """Return a copy carrying the given description."""
        return replace(self, description=description)

    def to_model(self) -> LinkItemModel:
        """Convert the item into a serialisable pydantic model."""
        return LinkItemModel(
            id=self.id,
            title=self.title,
            url=self.url,
            description=self.description,
            category_id=self.category_id,
        )

    @classmethod
    def from_model(cls, model: LinkItemModel) -> LinkItem:
        """Create an item from a validated pydantic model."""
        return cls(
            id=model.id,
            title=model.title,
            url=model.url,
            description=model.description,
            category_id=model.category_id,
        )


@dataclass(slots=True, frozen=True)
class Category:
    """A named group of links, optionally guarded by its own password."""

    id: str
    name: str
    icon: str = "Folder"
    password: str | None = None

    @property
    def is_protected(self) -> bool:
        """The default category cannot be edited or deleted."""
        return self.id == DEFAULT_CATEGORY_ID

    @property
    def is_locked(self) -> bool:
        return bool(self.password)

    def to_model(self) -> CategoryModel:
        """Convert the category into a serialisable pydantic model."""
        return CategoryModel(id=self.id, name=self.name, icon=self.icon, password=self.password)

    @classmethod
    def from_model(cls, model: CategoryModel) -> Category:
        """Create a category from a validated pydantic model."""
        return cls(id=model.id, name=model.name, icon=model.icon, password=model.password)


def default_categories() -> list[Category]:
    """Category list used for a brand new store."""
    return [Category(id=DEFAULT_CATEGORY_ID, name=DEFAULT_CATEGORY_NAME, icon=DEFAULT_CATEGORY_ICON)]


@dataclass(slots=True, frozen=True)
class ProviderConfig:
    """Provider settings captured once at the start of a run.

    Frozen so that edits to the live configuration can never leak into a run
    that is already in progress. ``base_url`` only matters for
    OpenAI-compatible vendors.
    """

    provider: Provider
    api_key: str
    model: str = ""
    base_url: str | None = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def effective_model(self) -> str:
        """Configured model, or the vendor default when blank."""
        return self.model.strip() or self.provider.default_model

    @classmethod
    def from_env(
        cls,
        *,
        provider: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ) -> ProviderConfig:
        """Build a configuration from explicit values falling back to the environment.

        Raises ValueError when the provider name is not recognised.
        """
        provider_name = (provider or os.getenv(ENV_PROVIDER) or Provider.GEMINI.value).strip()
        try:
            resolved = Provider(provider_name.lower())
        except ValueError as exc:
            choices = ", ".join(p.value for p in Provider)
            msg = f"Unknown provider '{provider_name}' (expected one of: {choices})"
            raise ValueError(msg) from exc
        url = base_url or os.getenv(ENV_BASE_URL) or None
        return cls(
            provider=resolved,
            api_key=(api_key or os.getenv(ENV_API_KEY) or "").strip(),
            model=(model or os.getenv(ENV_MODEL) or "").strip(),
            base_url=url.strip() if url else None,
        )


class JobState(Enum):
    """Lifecycle of a single enrichment run."""

    IDLE = "idle"
    RUNNING = "running"
    # Stop requested; the in-flight item has not yet observed it.
    STOPPING = "stopping"


class JobOutcome(Enum):
    """How a call to ``EnrichmentJob.run`` ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_ELIGIBLE_ITEMS = "no-eligible-items"
    MISSING_API_KEY = "missing-api-key"


@define(slots=True)
class JobProgress:
    """Processed/total counter for one run. ``total`` never changes."""

    total: int = attrs.field(validator=attrs.validators.ge(0))
    current: int = attrs.field(default=0, init=False)

    def advance(self) -> int:
        """Count one more processed item and return the new ``current``."""
        if self.current >= self.total:
            msg = f"Progress cannot exceed total ({self.total})"
            raise ValueError(msg)
        self.current += 1
        return self.current

    @property
    def done(self) -> bool:
        return self.current == self.total

    def as_tuple(self) -> tuple[int, int]:
        return self.current, self.total


@dataclass(slots=True, frozen=True)
class ItemFailure:
    """Provider failure recorded for one link during a run."""

    item_id: str
    title: str
    error: str


def _empty_failures() -> list[ItemFailure]:
    return []


def _empty_ids() -> list[str]:
    return []


@dataclass(slots=True)
class EnrichmentReport:
    """Result handed back when a run returns."""

    outcome: JobOutcome
    progress: JobProgress
    items: list[LinkItem]
    succeeded: list[str] = field(default_factory=_empty_ids)
    failures: list[ItemFailure] = field(default_factory=_empty_failures)

    @property
    def was_started(self) -> bool:
        """False when a precondition stopped the run before any provider call."""
        return self.outcome in {JobOutcome.COMPLETED, JobOutcome.CANCELLED}


class LinkItemModel(BaseModel):
    """Pydantic model for a stored link."""

    id: str
    title: str
    url: str
    description: str | None = None
    category_id: str = DEFAULT_CATEGORY_ID

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> str:
        # Older exports used numeric timestamps as ids.
        return str(value)


class CategoryModel(BaseModel):
    """Pydantic model for a stored category."""

    id: str
    name: str
    icon: str = "Folder"
    password: str | None = None

    @field_validator("password", mode="before")
    @classmethod
    def _blank_password_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = str(value).strip()
        return stripped or None


class LinkItemListModel(RootModel[list[LinkItemModel]]):
    """Root list model for links (strict all-or-nothing validation)."""


class StoreDocumentModel(BaseModel):
    """Whole on-disk document kept by the JSON link store."""

    links: list[LinkItemModel] = Field(default_factory=list)
    categories: list[CategoryModel] = Field(default_factory=list)
