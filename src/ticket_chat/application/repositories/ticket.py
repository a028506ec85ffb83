from __future__ import annotations

from datetime import datetime
from typing import Protocol

from ticket_chat.domain.entities.ticket import TicketAccess, TicketSummary


class TicketReader(Protocol):
    async def get_access(self, ticket_id: str) -> TicketAccess | None:
        """Ticket relationships the chat access rules look at."""
        ...

    async def get_summary(self, ticket_id: str) -> TicketSummary | None: ...


class TicketWriter(Protocol):
    async def touch_last_message_at(self, ticket_id: str, ts: datetime) -> None: ...
