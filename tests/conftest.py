"""Shared test fixtures for messenger-llm-relay."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.config import RelayConfig

TEST_VERIFY_TOKEN = "test-verify-token"
TEST_PAGE_TOKEN = "test-page-token"
TEST_LLM_KEY = "test-llm-key"


def make_config(**kwargs: Any) -> RelayConfig:
    """Factory for RelayConfig with sensible defaults."""
    defaults: dict[str, Any] = {
        "verify_token": TEST_VERIFY_TOKEN,
        "page_access_token": TEST_PAGE_TOKEN,
        "llm_api_key": TEST_LLM_KEY,
        "llm_base_url": "https://llm.test/v1",
        "llm_model": "test-model",
        "graph_api_url": "https://graph.test/v17.0",
    }
    defaults.update(kwargs)
    return RelayConfig(**defaults)


def make_messaging_event(
    sender_id: str | None = "U1",
    text: str | None = "hello",
    **message_fields: Any,
) -> dict[str, Any]:
    """Factory for one entry.messaging item carrying a message."""
    event: dict[str, Any] = {}
    if sender_id is not None:
        event["sender"] = {"id": sender_id}
    message: dict[str, Any] = dict(message_fields)
    if text is not None:
        message["text"] = text
    event["message"] = message
    return event


def make_page_payload(*events: dict[str, Any]) -> dict[str, Any]:
    """Page payload with every given messaging event in a single entry."""
    if not events:
        events = (make_messaging_event(),)
    return {"object": "page", "entry": [{"id": "PAGE", "messaging": list(events)}]}


def make_response(
    status_code: int = 200,
    json: Any = None,
    text: str | None = None,
) -> httpx.Response:
    request = httpx.Request("POST", "https://test")
    if json is not None:
        return httpx.Response(status_code, json=json, request=request)
    return httpx.Response(status_code, text=text or "", request=request)


def make_completion(content: str) -> dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def mock_async_client(
    response: httpx.Response | None = None,
    side_effect: Exception | None = None,
) -> AsyncMock:
    """AsyncMock usable as ``async with httpx.AsyncClient() as client``."""
    client = AsyncMock()
    if side_effect is not None:
        client.post.side_effect = side_effect
    else:
        client.post.return_value = response or make_response()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


@pytest.fixture
def config() -> RelayConfig:
    return make_config()


@pytest.fixture
def mock_generator() -> MagicMock:
    generator = MagicMock()
    generator.generate = AsyncMock(return_value="hi there")
    return generator


@pytest.fixture
def mock_sender() -> MagicMock:
    sender = MagicMock()
    sender.send = AsyncMock(return_value=None)
    return sender
