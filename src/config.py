"""Process-wide relay configuration, read once from the environment at startup."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant replying concisely for a Facebook Messenger chatbot."
)
DEFAULT_FALLBACK_REPLY = "Sorry, I couldn't process that right now. Please try again later."
DEFAULT_GRAPH_API_URL = "https://graph.facebook.com/v17.0"

# provider -> (base url, default model, provider-specific key variable)
PROVIDER_PRESETS: dict[str, tuple[str, str, str]] = {
    "openai": ("https://api.openai.com/v1", "gpt-3.5-turbo", "OPENAI_API_KEY"),
    "groq": ("https://api.groq.com/openai/v1", "llama-3.1-8b-instant", "GROQ_API_KEY"),
}


class ConfigurationError(Exception):
    """Raised when the relay cannot start because configuration is incomplete."""

    def __init__(self, missing: list[str], message: str | None = None) -> None:
        self.missing = missing
        super().__init__(
            message or f"Missing required environment variables: {', '.join(missing)}"
        )


class RelayConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    verify_token: str
    page_access_token: str
    llm_api_key: str
    llm_provider: str = "openai"
    llm_base_url: str = PROVIDER_PRESETS["openai"][0]
    llm_model: str = PROVIDER_PRESETS["openai"][1]
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    temperature: float = 0.7
    max_tokens: int = 500
    fallback_reply: str = DEFAULT_FALLBACK_REPLY
    graph_api_url: str = DEFAULT_GRAPH_API_URL
    app_secret: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelayConfig:
        """Build the configuration from environment variables.

        VERIFY_TOKEN, PAGE_ACCESS_TOKEN and an LLM key (LLM_API_KEY, or the
        provider's own variable such as GROQ_API_KEY) must all be non-empty.
        """
        env = os.environ if environ is None else environ

        provider = env.get("LLM_PROVIDER", "openai").strip().lower() or "openai"
        if provider not in PROVIDER_PRESETS:
            raise ConfigurationError(
                ["LLM_PROVIDER"],
                f"Unknown LLM_PROVIDER {provider!r}; expected one of "
                f"{', '.join(sorted(PROVIDER_PRESETS))}",
            )
        base_url, model, key_var = PROVIDER_PRESETS[provider]

        verify_token = env.get("VERIFY_TOKEN", "").strip()
        page_access_token = env.get("PAGE_ACCESS_TOKEN", "").strip()
        llm_api_key = (env.get("LLM_API_KEY") or env.get(key_var, "")).strip()

        missing: list[str] = []
        if not verify_token:
            missing.append("VERIFY_TOKEN")
        if not page_access_token:
            missing.append("PAGE_ACCESS_TOKEN")
        if not llm_api_key:
            missing.append(f"LLM_API_KEY (or {key_var})")
        if missing:
            raise ConfigurationError(missing)

        return cls(
            verify_token=verify_token,
            page_access_token=page_access_token,
            llm_api_key=llm_api_key,
            llm_provider=provider,
            llm_base_url=env.get("LLM_BASE_URL") or base_url,
            llm_model=env.get("LLM_MODEL") or model,
            system_prompt=env.get("LLM_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
            fallback_reply=env.get("FALLBACK_REPLY") or DEFAULT_FALLBACK_REPLY,
            graph_api_url=env.get("GRAPH_API_URL") or DEFAULT_GRAPH_API_URL,
            app_secret=env.get("APP_SECRET") or None,
        )
