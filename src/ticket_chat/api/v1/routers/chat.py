from __future__ import annotations

from fastapi import APIRouter, Query

from ticket_chat.api.deps import CurrentPrincipal, GatewayDep, UoWDep
from ticket_chat.api.v1.schemas.chat import (
    ChatViewResponse,
    ParticipantsResponse,
    PresenceResponse,
    SendChatMessageRequest,
    SentMessageResponse,
)
from ticket_chat.application.policies.permissions import assert_chat_access
from ticket_chat.config import settings
from ticket_chat.infrastructure.ws.protocol import ChatMessageOut
from ticket_chat.services import chat_service

router = APIRouter(prefix="/api/v1/tickets", tags=["ticket-chat"])


@router.get(
    "/{ticket_id}/chat",
    response_model=ChatViewResponse,
    response_model_by_alias=True,
)
async def get_chat(
    ticket_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.CHAT_HISTORY_LIMIT, ge=1, le=settings.CHAT_MAX_PAGE_SIZE),
) -> ChatViewResponse:
    history, ticket, participants = await chat_service.get_chat_view(
        ticket_id, principal, page, limit, uow,
    )
    return ChatViewResponse.build_view(history, ticket, participants)


@router.post(
    "/{ticket_id}/chat",
    response_model=SentMessageResponse,
    response_model_by_alias=True,
    status_code=201,
)
async def send_chat_message(
    ticket_id: str,
    body: SendChatMessageRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
) -> SentMessageResponse:
    """Post a message without a socket. Live room members get `new_message`."""
    dto = body.to_dto(ticket_id)
    chat_service.validate_message(dto, max_length=settings.CHAT_MAX_MESSAGE_LENGTH)
    await assert_chat_access(ticket_id, principal.id, uow)
    message = await gateway.post_message(dto, principal.id, uow)
    return SentMessageResponse(message=ChatMessageOut.from_entity(message))


@router.get(
    "/{ticket_id}/chat/participants",
    response_model=ParticipantsResponse,
    response_model_by_alias=True,
)
async def get_participants(
    ticket_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> ParticipantsResponse:
    ticket, participants = await chat_service.get_participants(ticket_id, principal, uow)
    return ParticipantsResponse.build(ticket, participants)


@router.get(
    "/{ticket_id}/chat/presence",
    response_model=PresenceResponse,
    response_model_by_alias=True,
)
async def get_presence(
    ticket_id: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
    gateway: GatewayDep,
) -> PresenceResponse:
    await assert_chat_access(ticket_id, principal.id, uow)
    return PresenceResponse(ticket_id=ticket_id, active_users=gateway.active_users(ticket_id))
