from __future__ import annotations

import uuid
from dataclasses import replace

from sqlalchemy.exc import SQLAlchemyError

from ticket_chat.application.dto.message import HistoryPage, Pagination, SendMessageDTO
from ticket_chat.application.dto.principal import Principal
from ticket_chat.application.exceptions import NotFoundError, PersistenceError, ValidationError
from ticket_chat.application.policies.permissions import assert_chat_access
from ticket_chat.application.ports.clock import Clock, SystemClock
from ticket_chat.application.uow import UnitOfWork
from ticket_chat.domain.entities.message import ChatMessage
from ticket_chat.domain.entities.ticket import Participant, TicketSummary
from ticket_chat.domain.entities.user import DEFAULT_ROLE, UserProfile
from ticket_chat.domain.value_objects.enums import ParticipantType, Role

_default_clock = SystemClock()


def validate_message(dto: SendMessageDTO, *, max_length: int) -> None:
    """Reject payloads that would create an empty or oversized message."""
    if not dto.ticket_id:
        raise ValidationError("ticketId is required")
    if not dto.text and not dto.attachments:
        raise ValidationError("Message or attachment is required")
    if dto.text is not None and len(dto.text) > max_length:
        raise ValidationError(f"Message too long (max {max_length} characters)")


async def send_message(
    dto: SendMessageDTO,
    sender_id: str,
    uow: UnitOfWork,
    clock: Clock = _default_clock,
) -> ChatMessage:
    """Persist a chat message and bump the ticket's last activity.

    Access is the caller's responsibility. Store failures surface as
    ``PersistenceError`` after the unit of work is rolled back.
    """
    now = clock.now()
    try:
        sender = await uow.users.get_profile(sender_id)
        message = ChatMessage(
            id=uuid.uuid4().hex,
            ticket_id=dto.ticket_id,
            sender_id=sender_id,
            text=dto.text or None,
            message_type=dto.message_type.value,
            created_at=now,
            attachments=dto.attachments,
            sender=sender.as_sender() if sender else None,
        )
        stored = await uow.messages_w.append(message)
        await uow.tickets_w.touch_last_message_at(dto.ticket_id, stored.created_at)
        await uow.commit()
    except (SQLAlchemyError, OSError) as exc:
        await uow.rollback()
        raise PersistenceError("Failed to store chat message") from exc
    return stored


async def list_history(
    ticket_id: str,
    page: int,
    limit: int,
    uow: UnitOfWork,
) -> HistoryPage:
    """One page of history, oldest-to-newest.

    Page 1 holds the latest ``limit`` messages, page 2 the ones before them.
    """
    page = max(page, 1)
    recent = await uow.messages.list_recent(ticket_id, offset=(page - 1) * limit, limit=limit)
    total = await uow.messages.count(ticket_id)

    senders = await uow.users.get_profiles({m.sender_id for m in recent})
    messages = [
        _with_sender(m, senders.get(m.sender_id))
        for m in reversed(recent)
    ]
    return HistoryPage(
        messages=messages,
        pagination=Pagination(page=page, limit=limit, total=total),
    )


def _with_sender(message: ChatMessage, profile: UserProfile | None) -> ChatMessage:
    if profile is None or message.sender is not None:
        return message
    return replace(message, sender=profile.as_sender())


async def list_participants(
    ticket_id: str,
    uow: UnitOfWork,
) -> tuple[TicketSummary, list[Participant]]:
    summary = await uow.tickets.get_summary(ticket_id)
    access = await uow.tickets.get_access(ticket_id)
    if summary is None or access is None:
        raise NotFoundError("Ticket not found")

    receipt = access.receipt
    ids = {access.created_by_id, access.assignee_id}
    if receipt is not None:
        ids |= {receipt.vendor_user_id, receipt.verified_by_id}
    profiles = await uow.users.get_profiles(i for i in ids if i)

    participants: list[Participant] = []

    def add(
        user_id: str | None,
        kind: ParticipantType,
        fallback_role: str,
        *,
        role: str | None = None,
    ) -> None:
        profile = profiles.get(user_id) if user_id else None
        if profile is None:
            return
        participants.append(
            Participant(
                id=profile.id,
                name=profile.name,
                email=profile.email,
                role=role or (profile.roles[0] if profile.roles else fallback_role),
                type=kind.value,
                company_name=profile.company_name if kind is ParticipantType.VENDOR else None,
            )
        )

    add(access.created_by_id, ParticipantType.CREATOR, Role.OPS)
    if access.assignee_id != access.created_by_id:
        add(access.assignee_id, ParticipantType.ASSIGNEE, DEFAULT_ROLE)
    if receipt is not None:
        add(receipt.vendor_user_id, ParticipantType.VENDOR, Role.VENDOR, role=Role.VENDOR)
        if receipt.verified_by_id != access.created_by_id:
            add(receipt.verified_by_id, ParticipantType.VERIFIER, Role.OPS)

    return summary, participants


async def get_chat_view(
    ticket_id: str,
    principal: Principal,
    page: int,
    limit: int,
    uow: UnitOfWork,
) -> tuple[HistoryPage, TicketSummary, list[Participant]]:
    await assert_chat_access(ticket_id, principal.id, uow)
    history = await list_history(ticket_id, page, limit, uow)
    summary, participants = await list_participants(ticket_id, uow)
    return history, summary, participants


async def get_participants(
    ticket_id: str,
    principal: Principal,
    uow: UnitOfWork,
) -> tuple[TicketSummary, list[Participant]]:
    await assert_chat_access(ticket_id, principal.id, uow)
    return await list_participants(ticket_id, uow)
