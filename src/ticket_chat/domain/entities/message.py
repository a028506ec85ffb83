from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Attachment:
    file_name: str
    url: str
    storage_key: str
    mime_type: str
    file_size: int


@dataclass(frozen=True, slots=True)
class SenderInfo:
    id: str
    name: str
    email: str | None
    role: str
    company_name: str | None = None


@dataclass(frozen=True, slots=True)
class ChatMessage:
    id: str
    ticket_id: str
    sender_id: str
    text: str | None
    message_type: str
    created_at: datetime
    attachments: tuple[Attachment, ...] = ()
    sender: SenderInfo | None = field(default=None, compare=False)
