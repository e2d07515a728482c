"""Outbound delivery through the Messenger Send API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from src.webhook.models import OutboundReply

if TYPE_CHECKING:
    from src.config import RelayConfig

logger = logging.getLogger(__name__)


class MessengerSender:
    """Posts text replies to ``/me/messages`` with the page access token."""

    def __init__(self, config: RelayConfig) -> None:
        self._url = f"{config.graph_api_url.rstrip('/')}/me/messages"
        self._access_token = config.page_access_token

    async def send(self, recipient_id: str, text: str) -> None:
        """Deliver one reply. Exactly one attempt; failures are logged, never raised."""
        await self.deliver(OutboundReply(recipient_id=recipient_id, text=text))

    async def deliver(self, reply: OutboundReply) -> None:
        payload = {
            "recipient": {"id": reply.recipient_id},
            "message": {"text": reply.text},
        }
        params = {"access_token": self._access_token}

        try:
            async with httpx.AsyncClient(verify=True) as client:
                resp = await client.post(self._url, json=payload, params=params)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("Send API request for %s failed: %s", reply.recipient_id, exc)
            return

        if resp.status_code >= 400:
            logger.error(
                "Send API rejected message to %s: %s %s",
                reply.recipient_id, resp.status_code, resp.text,
            )
            return
        logger.debug("Delivered reply to %s", reply.recipient_id)
