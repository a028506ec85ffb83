from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ticket_chat.domain.entities.message import Attachment, ChatMessage
from ticket_chat.domain.value_objects.enums import MessageType


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    ticket_id: str
    text: str | None = None
    attachments: tuple[Attachment, ...] = ()
    message_type: MessageType = MessageType.TEXT


@dataclass(frozen=True, slots=True)
class Pagination:
    page: int
    limit: int
    total: int

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total

    def as_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "hasMore": self.has_more,
        }


@dataclass(frozen=True, slots=True)
class HistoryPage:
    messages: list[ChatMessage] = field(default_factory=list)
    pagination: Pagination = field(default_factory=lambda: Pagination(1, 50, 0))
