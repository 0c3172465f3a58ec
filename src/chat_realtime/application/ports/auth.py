from __future__ import annotations

from typing import Protocol
from uuid import UUID


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> UUID:
        """Return the identity id carried by the token or raise AuthError."""
        ...
