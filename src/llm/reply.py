"""Reply generation against an OpenAI-compatible chat completion API.

Works with any provider exposing ``/chat/completions`` with the OpenAI
request and response shape (OpenAI, Groq). Failures never propagate: the
caller always gets a string it can send back to the user.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from src.config import RelayConfig

logger = logging.getLogger(__name__)


class ReplyGenerator:
    """Turns a single user utterance into one completion."""

    def __init__(self, config: RelayConfig) -> None:
        self._url = f"{config.llm_base_url.rstrip('/')}/chat/completions"
        self._api_key = config.llm_api_key
        self._model = config.llm_model
        self._system_prompt = config.system_prompt
        self._temperature = config.temperature
        self._max_tokens = config.max_tokens
        self._fallback = config.fallback_reply

    def build_request(self, text: str) -> dict[str, Any]:
        """Single-turn request body; no history is carried between calls."""
        messages: list[dict[str, str]] = []
        if self._system_prompt:
            messages.append({"role": "system", "content": self._system_prompt})
        messages.append({"role": "user", "content": text})
        return {
            "model": self._model,
            "messages": messages,
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }

    async def generate(self, text: str) -> str:
        """Return the trimmed completion text, or the fallback reply on any failure."""
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    self._url, json=self.build_request(text), headers=headers,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("LLM request to %s failed: %s", self._url, exc)
            return self._fallback

        if not resp.is_success:
            logger.error("LLM API error %s: %s", resp.status_code, resp.text)
            return self._fallback

        try:
            content = extract_content(resp.json())
        except ValueError:
            logger.error("LLM API returned a non-JSON body: %s", resp.text)
            return self._fallback

        if content is None:
            logger.warning("LLM response carried no completion content")
            return self._fallback
        return content


def extract_content(data: Any) -> str | None:
    """Pull ``choices[0].message.content`` out of a completion body.

    Returns None when the structure is missing or the content is blank.
    """
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content.strip():
        return None
    return content.strip()
