"""Description generation through an external text-generation provider."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import openai
import requests
from openai import OpenAI
from pydantic import BaseModel, Field, ValidationError

from .config import DEFAULT_PROVIDER_TIMEOUT, GEMINI_API_BASE, MAX_DESCRIPTION_WORDS
from .models import Provider, ProviderConfig

if TYPE_CHECKING:  # pragma: no cover
    from openai.types.chat import ChatCompletionMessageParam

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = f"""You write descriptions for a personal link directory.
Given a website title and URL, reply with one concise sentence (at most
{MAX_DESCRIPTION_WORDS} words) saying what the site offers.
Write in the same language as the title. Reply with the sentence only: no
quotes, no markdown, no preamble.
"""

_QUOTE_PAIRS: dict[str, str] = {
    "\"": "\"",
    "'": "'",
    "`": "`",
    "“": "”",
    "‘": "’",
    "「": "」",
}


class ProviderError(RuntimeError):
    """Raised when the provider cannot produce a description for one link."""


class _GeminiPart(BaseModel):
    text: str = ""


class _GeminiContent(BaseModel):
    parts: list[_GeminiPart] = Field(default_factory=list)


class _GeminiCandidate(BaseModel):
    content: _GeminiContent = Field(default_factory=_GeminiContent)


class GeminiResponseModel(BaseModel):
    """Subset of the ``generateContent`` response the client relies on."""

    candidates: list[_GeminiCandidate] = Field(default_factory=list)


def build_user_prompt(title: str, url: str) -> str:
    """User turn shared by every vendor."""
    return f"Title: {title.strip() or '(untitled)'}\nURL: {url.strip()}"


def clean_description(text: str) -> str:
    """Strip whitespace and one wrapping pair of quotes from a model reply."""
    cleaned = text.strip()
    if len(cleaned) < 2:  # noqa: PLR2004
        return cleaned
    closing = _QUOTE_PAIRS.get(cleaned[0])
    if closing is None or cleaned[-1] != closing:
        return cleaned
    inner = cleaned[1:-1]
    if cleaned[0] in inner or closing in inner:
        # "Foo" and "Bar": the outer marks do not enclose the whole reply.
        return cleaned
    return inner.strip()


class ProviderClient:
    """Generates one description per call, for Gemini or any OpenAI-compatible API.

    Every ``generate`` call issues exactly one request. There is no retry and
    no fallback model: failures surface as ``ProviderError`` and the caller
    decides what to do with them.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_PROVIDER_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        """Initialise the client.

        Args:
            timeout: Per-request timeout in seconds for both vendors.
            session: Optional pre-built HTTP session used for Gemini requests.

        """
        self._timeout = timeout
        self._session = session or requests.Session()
        self._openai_clients: dict[ProviderConfig, OpenAI] = {}
        self._openai_override: object | None = None

    # Test/extension hook -----------------------------------------------------
    def set_openai_client(self, client: object) -> None:  # pragma: no cover - test helper
        """Inject a mock / custom OpenAI-like client (testing only)."""
        self._openai_override = client

    def generate(self, title: str, url: str, config: ProviderConfig) -> str:
        """Return a description for the link or raise ``ProviderError``."""
        if not config.has_credentials:
            msg = "API key is not configured"
            raise ProviderError(msg)
        model = config.effective_model
        LOGGER.debug("Requesting description from %s model %s for %s", config.provider.value, model, url)
        if config.provider is Provider.GEMINI:
            raw = self._generate_gemini(title, url, config, model)
        else:
            raw = self._generate_openai(title, url, config, model)
        description = clean_description(raw)
        if not description:
            msg = f"{config.provider.value} returned an empty description for {url}"
            raise ProviderError(msg)
        return description

    # --- Gemini -----------------------------------------------------------------------------

    def _generate_gemini(self, title: str, url: str, config: ProviderConfig, model: str) -> str:
        endpoint = f"{GEMINI_API_BASE}/models/{model}:generateContent"
        payload = {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT.strip()}]},
            "contents": [{"role": "user", "parts": [{"text": build_user_prompt(title, url)}]}],
        }
        try:
            response = self._session.post(
                endpoint,
                json=payload,
                headers={"x-goog-api-key": config.api_key},
                timeout=self._timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            msg = f"Gemini request failed with HTTP {status}"
            raise ProviderError(msg) from exc
        except (requests.RequestException, ValueError) as exc:
            msg = f"Gemini request failed: {exc}"
            raise ProviderError(msg) from exc

        try:
            parsed = GeminiResponseModel.model_validate(body)
        except ValidationError as exc:
            msg = "Gemini response has an unexpected shape"
            raise ProviderError(msg) from exc
        if not parsed.candidates:
            msg = "Gemini response missing candidates"
            raise ProviderError(msg)
        return "".join(part.text for part in parsed.candidates[0].content.parts)

    # --- OpenAI compatible ------------------------------------------------------------------

    def _openai_for(self, config: ProviderConfig) -> OpenAI:
        if self._openai_override is not None:
            return self._openai_override  # type: ignore[return-value]
        client = self._openai_clients.get(config)
        if client is None:
            client = OpenAI(
                api_key=config.api_key,
                base_url=config.base_url or None,
                timeout=self._timeout,
                max_retries=0,
            )
            self._openai_clients[config] = client
        return client

    def _generate_openai(self, title: str, url: str, config: ProviderConfig, model: str) -> str:
        messages: list[ChatCompletionMessageParam] = [
            {"role": "system", "content": SYSTEM_PROMPT.strip()},
            {"role": "user", "content": build_user_prompt(title, url)},
        ]
        try:
            response = self._openai_for(config).chat.completions.create(
                model=model,
                messages=messages,
            )
        except openai.OpenAIError as exc:
            msg = f"OpenAI-compatible request failed: {exc}"
            raise ProviderError(msg) from exc

        if not response.choices:
            msg = "OpenAI response missing choices"
            raise ProviderError(msg)
        content = response.choices[0].message.content
        if content is None:
            msg = "OpenAI response content empty"
            raise ProviderError(msg)
        return content
