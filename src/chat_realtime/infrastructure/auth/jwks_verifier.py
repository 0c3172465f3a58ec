from __future__ import annotations

import asyncio
import logging
from uuid import UUID

import jwt
from jwt import PyJWKClient

from chat_realtime.application.exceptions import AuthError
from chat_realtime.infrastructure.auth.claims import identity_from_claims

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify JWTs using a remote JWKS endpoint."""

    def __init__(self, jwks_url: str) -> None:
        self._jwks_url = jwks_url
        self._jwk_client = PyJWKClient(jwks_url)

    async def verify(self, token: str) -> UUID:
        try:
            # key fetch is blocking HTTP
            signing_key = await asyncio.to_thread(
                self._jwk_client.get_signing_key_from_jwt, token,
            )
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256", "ES256"],
            )
        except jwt.PyJWTError as exc:
            logger.debug("JWKS verification failed: %s", exc)
            raise AuthError("Invalid or expired token") from exc
        return identity_from_claims(payload)
