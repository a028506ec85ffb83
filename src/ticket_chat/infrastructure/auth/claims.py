from __future__ import annotations

from typing import Any

from ticket_chat.application.dto.principal import Principal


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Build a principal from OMS access-token claims.

    Tokens carry ``userId`` (falling back to ``sub``) and a ``roles`` list;
    refresh tokens are rejected.
    """
    token_type = payload.get("type", "access")
    if token_type != "access":
        raise ValueError("Invalid token type")
    user_id = payload.get("userId") or payload.get("sub")
    if not user_id:
        raise ValueError("Token has no subject")
    roles = payload.get("roles") or []
    return Principal(
        id=str(user_id),
        roles=frozenset(str(r).upper() for r in roles),
        email=payload.get("email"),
    )
