from __future__ import annotations

from typing import Protocol

from ticket_chat.application.repositories.message import MessageReader, MessageWriter
from ticket_chat.application.repositories.ticket import TicketReader, TicketWriter
from ticket_chat.application.repositories.user import UserReader


class UnitOfWork(Protocol):
    tickets: TicketReader
    tickets_w: TicketWriter
    users: UserReader
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
