"""Messenger page webhook: verification handshake and event relay.

Handles the Meta subscription challenge (GET), optional HMAC verification
of delivery bodies, extraction of messaging events from ``object: page``
payloads, and per-event relay through the reply generator and sender.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import TYPE_CHECKING, Any

from src.webhook.models import (
    ATTACHMENT_NOTICE,
    FAILED,
    IGNORED,
    POSTBACK_ACK,
    REPLIED,
    SKIPPED_ECHO,
    SKIPPED_NO_SENDER,
    EventOutcome,
    InboundEvent,
    VerificationResult,
)

if TYPE_CHECKING:
    from src.config import RelayConfig
    from src.llm.reply import ReplyGenerator
    from src.webhook.sender import MessengerSender

logger = logging.getLogger(__name__)

ATTACHMENT_REPLY = "Thanks for the attachment! I can only reply to text messages for now."
POSTBACK_REPLY = "Thanks for interacting! You sent a postback: {payload}"


class MessengerWebhook:
    """Relays Messenger page events to the LLM and back."""

    def __init__(
        self,
        config: RelayConfig,
        generator: ReplyGenerator,
        sender: MessengerSender,
    ) -> None:
        self._verify_token = config.verify_token
        self._app_secret = config.app_secret
        self._generator = generator
        self._sender = sender

    def handle_verification(self, params: dict[str, str]) -> VerificationResult:
        """Answer the subscription challenge.

        200 with ``hub.challenge`` verbatim iff the mode is ``subscribe`` and the
        token matches; 403 otherwise.
        """
        mode = params.get("hub.mode")
        token = params.get("hub.verify_token", "")
        if mode == "subscribe" and hmac.compare_digest(
            token.encode(), self._verify_token.encode(),
        ):
            logger.info("Webhook verified")
            return VerificationResult(
                status_code=200, content=params.get("hub.challenge", ""),
            )
        logger.warning("Webhook verification failed (mode=%s)", mode)
        return VerificationResult(status_code=403)

    def verify_signature(self, headers: dict[str, str], body: bytes) -> bool:
        """Check ``X-Hub-Signature-256`` when an app secret is configured."""
        if not self._app_secret:
            return True
        signature = headers.get("x-hub-signature-256", "")
        if not signature.startswith("sha256="):
            return False
        expected = hmac.new(
            self._app_secret.encode(), body, hashlib.sha256,
        ).hexdigest()
        return hmac.compare_digest(signature[7:], expected)

    @staticmethod
    def is_page_event(payload: Any) -> bool:
        return (
            isinstance(payload, dict)
            and payload.get("object") == "page"
            and isinstance(payload.get("entry"), list)
        )

    @staticmethod
    def extract_events(payload: dict[str, Any]) -> list[InboundEvent]:
        """Flatten every messaging event of every entry, preserving order."""
        events: list[InboundEvent] = []
        for entry in payload.get("entry", []):
            if not isinstance(entry, dict):
                continue
            messaging = entry.get("messaging")
            if not isinstance(messaging, list):
                continue
            for item in messaging:
                if isinstance(item, dict):
                    events.append(_parse_event(item))
        return events

    async def handle_event(self, event: InboundEvent) -> EventOutcome:
        if event.is_echo:
            logger.debug("Skipping echo message")
            return EventOutcome(sender_id=event.sender_id, action=SKIPPED_ECHO)
        if not event.sender_id:
            return EventOutcome(sender_id=None, action=SKIPPED_NO_SENDER)

        action = IGNORED
        if event.text:
            logger.info("Received message from %s", event.sender_id)
            reply = await self._generator.generate(event.text)
            await self._sender.send(event.sender_id, reply)
            action = REPLIED
        elif event.has_attachments:
            await self._sender.send(event.sender_id, ATTACHMENT_REPLY)
            action = ATTACHMENT_NOTICE

        # A postback is answered on its own, even alongside a message.
        postback_acked = False
        if event.has_postback:
            payload = event.postback_payload or ""
            logger.info("Postback received from %s: %s", event.sender_id, payload)
            await self._sender.send(event.sender_id, POSTBACK_REPLY.format(payload=payload))
            postback_acked = True
            if action == IGNORED:
                action = POSTBACK_ACK

        return EventOutcome(
            sender_id=event.sender_id, action=action, postback_acked=postback_acked,
        )

    async def process(self, payload: dict[str, Any]) -> list[EventOutcome]:
        """Handle every event in the payload; one failure never stops the rest."""
        outcomes: list[EventOutcome] = []
        for event in self.extract_events(payload):
            try:
                outcome = await self.handle_event(event)
            except Exception as exc:
                logger.exception("Error processing event from %s", event.sender_id)
                outcome = EventOutcome(
                    sender_id=event.sender_id, action=FAILED, error=str(exc),
                )
            outcomes.append(outcome)

        failed = sum(1 for o in outcomes if o.action == FAILED)
        logger.info("Processed %d messaging events (%d failed)", len(outcomes), failed)
        return outcomes


def _parse_event(item: dict[str, Any]) -> InboundEvent:
    sender = item.get("sender")
    sender_id = sender.get("id") if isinstance(sender, dict) else None

    message = item.get("message")
    if not isinstance(message, dict):
        message = {}
    text = message.get("text")

    postback = item.get("postback")
    has_postback = isinstance(postback, dict)
    postback_payload = None
    if has_postback and postback.get("payload") is not None:
        postback_payload = str(postback["payload"])

    return InboundEvent(
        sender_id=str(sender_id) if sender_id not in (None, "") else None,
        text=text if isinstance(text, str) else None,
        is_echo=bool(message.get("is_echo")),
        has_attachments=bool(message.get("attachments")),
        has_postback=has_postback,
        postback_payload=postback_payload,
    )
