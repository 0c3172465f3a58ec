from __future__ import annotations

from uuid import UUID

import jwt

from chat_realtime.application.exceptions import AuthError
from chat_realtime.infrastructure.auth.claims import identity_from_claims


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> UUID:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as exc:
            raise AuthError("Invalid or expired token") from exc
        return identity_from_claims(payload)
