"""WebSocket envelopes and the JSON shapes of chat payloads."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ticket_chat.application.dto.message import HistoryPage, SendMessageDTO
from ticket_chat.domain.entities.message import Attachment, ChatMessage, SenderInfo
from ticket_chat.domain.value_objects.enums import MessageType


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # join_ticket | leave_ticket | send_message | typing_start | typing_stop | ping
    data: dict[str, Any] = {}
    ack: str | None = None


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str
    data: dict[str, Any] = {}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TicketRef(_CamelModel):
    ticket_id: str = Field(min_length=1)


class AttachmentIn(_CamelModel):
    file_name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    storage_key: str = Field(
        default="",
        validation_alias=AliasChoices("storageKey", "s3Key", "storage_key"),
    )
    mime_type: str = "application/octet-stream"
    file_size: int = Field(default=0, ge=0)

    def to_entity(self) -> Attachment:
        return Attachment(
            file_name=self.file_name,
            url=self.url,
            storage_key=self.storage_key,
            mime_type=self.mime_type,
            file_size=self.file_size,
        )


class SendMessagePayload(_CamelModel):
    ticket_id: str = Field(min_length=1)
    message: str | None = None
    message_type: MessageType = MessageType.TEXT
    attachments: list[AttachmentIn] = []

    def to_dto(self) -> SendMessageDTO:
        return SendMessageDTO(
            ticket_id=self.ticket_id,
            text=self.message.strip() if self.message else None,
            attachments=tuple(a.to_entity() for a in self.attachments),
            message_type=self.message_type,
        )


class AttachmentOut(_CamelModel):
    file_name: str
    url: str
    storage_key: str
    mime_type: str
    file_size: int


class SenderOut(_CamelModel):
    id: str
    name: str
    email: str | None = None
    role: str
    company_name: str | None = None


class ChatMessageOut(_CamelModel):
    id: str
    ticket_id: str
    sender_id: str
    message: str | None
    message_type: str
    attachments: list[AttachmentOut]
    created_at: datetime
    sender: SenderOut | None = None

    @classmethod
    def from_entity(cls, msg: ChatMessage) -> ChatMessageOut:
        return cls(
            id=msg.id,
            ticket_id=msg.ticket_id,
            sender_id=msg.sender_id,
            message=msg.text,
            message_type=msg.message_type,
            attachments=[_attachment_out(a) for a in msg.attachments],
            created_at=msg.created_at,
            sender=_sender_out(msg.sender) if msg.sender else None,
        )


def _attachment_out(a: Attachment) -> AttachmentOut:
    return AttachmentOut(
        file_name=a.file_name,
        url=a.url,
        storage_key=a.storage_key,
        mime_type=a.mime_type,
        file_size=a.file_size,
    )


def _sender_out(s: SenderInfo) -> SenderOut:
    return SenderOut(
        id=s.id,
        name=s.name,
        email=s.email,
        role=s.role,
        company_name=s.company_name,
    )


def message_to_wire(msg: ChatMessage) -> dict[str, Any]:
    return ChatMessageOut.from_entity(msg).model_dump(by_alias=True, mode="json")


def history_to_wire(history: HistoryPage) -> dict[str, Any]:
    return {
        "messages": [message_to_wire(m) for m in history.messages],
        "pagination": history.pagination.as_dict(),
    }
