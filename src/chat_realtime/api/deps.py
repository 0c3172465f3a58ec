"""Dependency helpers shared by the routers."""
from __future__ import annotations

import logging
from uuid import UUID

from starlette.requests import HTTPConnection

from chat_realtime.application.exceptions import AuthError
from chat_realtime.application.ports.auth import TokenVerifier
from chat_realtime.application.uow import UnitOfWorkFactory
from chat_realtime.config import settings
from chat_realtime.infrastructure.auth.hs256_verifier import HS256Verifier
from chat_realtime.infrastructure.auth.jwks_verifier import JWKSVerifier
from chat_realtime.infrastructure.ws.hub import RealtimeHub

logger = logging.getLogger(__name__)


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


def get_hub(conn: HTTPConnection) -> RealtimeHub:
    return conn.app.state.hub


def bearer_token(conn: HTTPConnection) -> str | None:
    header = conn.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def authenticate(
    token: str | None,
    verifier: TokenVerifier,
    uow_factory: UnitOfWorkFactory,
) -> UUID:
    """Resolve a token to an identity that exists in the store."""
    if not token:
        raise AuthError("Missing token")
    identity_id = await verifier.verify(token)
    async with uow_factory() as uow:
        identity = await uow.identities.get_by_id(identity_id)
    if identity is None:
        raise AuthError("Unknown identity")
    return identity.id
