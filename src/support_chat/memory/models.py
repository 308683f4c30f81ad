from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

ROLE_TO_SENDER = {"user": "user", "assistant": "ai"}
SENDER_TO_ROLE = {sender: role for role, sender in ROLE_TO_SENDER.items()}


def utc_now() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds")


@dataclass(frozen=True)
class Message:
    id: str
    conversation_id: str
    seq: int
    sender: str
    text: str
    created_at: str

    @property
    def role(self) -> str:
        return SENDER_TO_ROLE[self.sender]

    def as_turn(self) -> dict:
        return {"role": self.role, "text": self.text}


@dataclass(frozen=True)
class Conversation:
    id: str
    created_at: str
    updated_at: str
    messages: tuple[Message, ...] = field(default_factory=tuple)
