from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from ticket_chat.domain.entities.message import Attachment, ChatMessage, SenderInfo
from ticket_chat.infrastructure.db.models.chat import TicketChatModel

# OMS timestamp columns are naive UTC (`timestamp(3)` without time zone).


def to_naive_utc(ts: datetime) -> datetime:
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


def as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


# JSONB attachment keys as the OMS dashboard stores them.


def attachment_to_json(attachment: Attachment) -> dict[str, Any]:
    return {
        "fileName": attachment.file_name,
        "url": attachment.url,
        "s3Key": attachment.storage_key,
        "mimeType": attachment.mime_type,
        "fileSize": attachment.file_size,
    }


def attachment_from_json(raw: dict[str, Any]) -> Attachment:
    return Attachment(
        file_name=raw.get("fileName", ""),
        url=raw.get("url", ""),
        storage_key=raw.get("s3Key", raw.get("storageKey", "")),
        mime_type=raw.get("mimeType", "application/octet-stream"),
        file_size=int(raw.get("fileSize", 0)),
    )


def model_to_entity(model: TicketChatModel, sender: SenderInfo | None = None) -> ChatMessage:
    return ChatMessage(
        id=model.id,
        ticket_id=model.ticket_id,
        sender_id=model.sender_id,
        text=model.message,
        message_type=model.message_type,
        created_at=as_utc(model.created_at),
        attachments=tuple(attachment_from_json(a) for a in model.attachments or ()),
        sender=sender,
    )


def entity_to_model(entity: ChatMessage) -> TicketChatModel:
    return TicketChatModel(
        id=entity.id,
        ticket_id=entity.ticket_id,
        sender_id=entity.sender_id,
        message=entity.text,
        attachments=[attachment_to_json(a) for a in entity.attachments] or None,
        message_type=entity.message_type,
        created_at=to_naive_utc(entity.created_at),
    )
