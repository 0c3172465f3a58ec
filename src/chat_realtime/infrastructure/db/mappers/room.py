from __future__ import annotations

from chat_realtime.domain.entities.room import Room
from chat_realtime.infrastructure.db.models.room import RoomModel


def model_to_entity(model: RoomModel) -> Room:
    return Room(
        id=model.id,
        name=model.name,
        description=model.description,
        owner_id=model.owner_id,
        is_private=model.is_private,
        created_at=model.created_at,
        member_ids=frozenset(m.identity_id for m in model.members),
    )
