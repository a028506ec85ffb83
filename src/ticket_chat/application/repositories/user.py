from __future__ import annotations

from typing import Iterable, Protocol

from ticket_chat.domain.entities.user import UserProfile


class UserReader(Protocol):
    async def get_profile(self, user_id: str) -> UserProfile | None: ...

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
        """Batch lookup keyed by user id; unknown ids are left out."""
        ...
