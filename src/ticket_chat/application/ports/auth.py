from __future__ import annotations

from typing import Protocol

from ticket_chat.application.dto.principal import Principal


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Principal:
        """Decode an OMS access token into the caller's principal.

        Raises on a bad signature, expiry, wrong issuer or audience, or a
        non-access token; callers map any failure to an authentication error.
        """
        ...
