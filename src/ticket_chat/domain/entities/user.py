from __future__ import annotations

from dataclasses import dataclass

from ticket_chat.domain.entities.message import SenderInfo

DEFAULT_ROLE = "USER"


@dataclass(frozen=True, slots=True)
class UserProfile:
    id: str
    name: str
    email: str | None
    roles: tuple[str, ...] = ()
    company_name: str | None = None

    @property
    def primary_role(self) -> str:
        return self.roles[0] if self.roles else DEFAULT_ROLE

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def as_sender(self) -> SenderInfo:
        return SenderInfo(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.primary_role,
            company_name=self.company_name,
        )
