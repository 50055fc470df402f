"""Shared pytest fixtures for link enricher tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from link_enricher.models import LinkItem, Provider, ProviderConfig
from link_enricher.provider import ProviderError

if TYPE_CHECKING:
    from collections.abc import Callable


class ScriptedProvider:
    """Provider double returning scripted descriptions or errors per URL."""

    def __init__(self, replies: dict[str, str | Exception]) -> None:
        self._replies = replies
        self.calls: list[str] = []
        self.before_return: Callable[[str], None] | None = None

    def generate(self, title: str, url: str, config: ProviderConfig) -> str:  # noqa: ARG002
        self.calls.append(url)
        reply = self._replies.get(url, f"desc-{title}")
        if self.before_return is not None:
            self.before_return(url)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def provider_factory() -> type[ScriptedProvider]:
    """Factory for scripted provider doubles."""
    return ScriptedProvider


@pytest.fixture
def config() -> ProviderConfig:
    """A configuration with credentials present."""
    return ProviderConfig(provider=Provider.GEMINI, api_key="test-key", model="gemini-test")


@pytest.fixture
def sample_links() -> list[LinkItem]:
    """Three links, the middle one already described."""
    return [
        LinkItem(id="1", title="A", url="a.com", description=""),
        LinkItem(id="2", title="B", url="b.com", description="has one"),
        LinkItem(id="3", title="C", url="c.com", description=None),
    ]


@pytest.fixture
def failing_c() -> ScriptedProvider:
    """Provider that describes a.com and fails for c.com."""
    return ScriptedProvider({"a.com": "desc-A", "c.com": ProviderError("model unavailable")})
