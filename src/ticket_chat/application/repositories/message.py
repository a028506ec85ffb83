from __future__ import annotations

from typing import Protocol

from ticket_chat.domain.entities.message import ChatMessage


class MessageReader(Protocol):
    async def list_recent(
        self,
        ticket_id: str,
        *,
        offset: int = 0,
        limit: int = 50,
    ) -> list[ChatMessage]:
        """Newest-first window of a ticket's messages, ``offset`` rows back from the latest."""
        ...

    async def count(self, ticket_id: str) -> int: ...


class MessageWriter(Protocol):
    async def append(self, message: ChatMessage) -> ChatMessage: ...
