from __future__ import annotations

from typing import Any
from uuid import UUID

from chat_realtime.application.exceptions import AuthError


def identity_from_claims(payload: dict[str, Any]) -> UUID:
    """Extract the identity id from ``sub`` (or the legacy ``userId`` claim)."""
    raw = payload.get("sub") or payload.get("userId")
    if not raw:
        raise AuthError("Token carries no subject")
    try:
        return UUID(str(raw))
    except ValueError as exc:
        raise AuthError("Token subject is not a valid identity id") from exc
