"""Global configuration constants for link enricher."""

from __future__ import annotations

# Reserved identifier of the default/catch-all category. It can never be
# edited or deleted, and links of deleted categories fall back to it.
DEFAULT_CATEGORY_ID: str = "common"
DEFAULT_CATEGORY_NAME: str = "Common"
DEFAULT_CATEGORY_ICON: str = "Star"

# Default models used when the configuration leaves the model blank.
DEFAULT_GEMINI_MODEL: str = "gemini-2.5-flash"
DEFAULT_OPENAI_MODEL: str = "gpt-3.5-turbo"

GEMINI_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"

# Per-request timeout (seconds) applied by the provider client.
DEFAULT_PROVIDER_TIMEOUT: float = 30.0

# Upper bound on generated description length given to the model.
MAX_DESCRIPTION_WORDS: int = 30

# Environment variables read by ProviderConfig.from_env and the CLI.
ENV_PROVIDER = "LINKS_AI_PROVIDER"
ENV_API_KEY = "LINKS_AI_API_KEY"  # noqa: S105
ENV_BASE_URL = "LINKS_AI_BASE_URL"
ENV_MODEL = "LINKS_AI_MODEL"
ENV_ADMIN_PASSWORD = "LINKS_ADMIN_PASSWORD"  # noqa: S105
ENV_STORE_FILE = "LINKS_STORE_FILE"
