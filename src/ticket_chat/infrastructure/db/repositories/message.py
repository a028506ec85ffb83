from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_chat.domain.entities.message import ChatMessage
from ticket_chat.infrastructure.db.mappers import message as mapper
from ticket_chat.infrastructure.db.models.chat import TicketChatModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_recent(
        self,
        ticket_id: str,
        *,
        offset: int = 0,
        limit: int = 50,
    ) -> list[ChatMessage]:
        stmt = (
            select(TicketChatModel)
            .where(TicketChatModel.ticket_id == ticket_id)
            .order_by(TicketChatModel.created_at.desc(), TicketChatModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def count(self, ticket_id: str) -> int:
        stmt = select(func.count()).select_from(TicketChatModel).where(
            TicketChatModel.ticket_id == ticket_id
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, message: ChatMessage) -> ChatMessage:
        model = mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        return mapper.model_to_entity(model, sender=message.sender)
