from __future__ import annotations

from chat_realtime.domain.entities.identity import Identity
from chat_realtime.infrastructure.db.models.identity import IdentityModel


def model_to_entity(model: IdentityModel) -> Identity:
    return Identity(
        id=model.id,
        username=model.username,
        status=model.status,
        last_seen_at=model.last_seen_at,
    )
