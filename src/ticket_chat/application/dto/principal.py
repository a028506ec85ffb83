from __future__ import annotations

from dataclasses import dataclass, field

from ticket_chat.domain.value_objects.enums import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from the access token."""

    id: str
    roles: frozenset[str] = field(default_factory=frozenset)
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles
