"""Data models for the Messenger relay pipeline."""

from __future__ import annotations

from dataclasses import dataclass

# EventOutcome.action values
REPLIED = "replied"
ATTACHMENT_NOTICE = "attachment_notice"
POSTBACK_ACK = "postback_ack"
SKIPPED_ECHO = "skipped_echo"
SKIPPED_NO_SENDER = "skipped_no_sender"
IGNORED = "ignored"
FAILED = "failed"


@dataclass
class InboundEvent:
    """One messaging event parsed from a page webhook entry."""

    sender_id: str | None
    text: str | None = None
    is_echo: bool = False
    has_attachments: bool = False
    has_postback: bool = False
    postback_payload: str | None = None

    def __post_init__(self) -> None:
        if self.postback_payload is not None:
            self.has_postback = True


@dataclass
class OutboundReply:
    """Text reply addressed to a conversation participant (PSID)."""

    recipient_id: str
    text: str


@dataclass
class EventOutcome:
    """What happened to a single event; used for logging only."""

    sender_id: str | None
    action: str
    error: str | None = None
    postback_acked: bool = False


@dataclass
class VerificationResult:
    """Result of the GET subscription handshake."""

    status_code: int
    content: str = ""
