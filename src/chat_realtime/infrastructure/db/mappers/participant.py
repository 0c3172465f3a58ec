from __future__ import annotations

from chat_realtime.domain.entities.participant import Participant
from chat_realtime.infrastructure.db.models.participant import ParticipantModel


def model_to_entity(model: ParticipantModel) -> Participant:
    return Participant(
        conversation_id=model.conversation_id,
        identity_id=model.identity_id,
        unread_count=model.unread_count,
        joined_at=model.joined_at,
    )


def entity_to_model(entity: Participant) -> ParticipantModel:
    return ParticipantModel(
        conversation_id=entity.conversation_id,
        identity_id=entity.identity_id,
        unread_count=entity.unread_count,
        joined_at=entity.joined_at,
    )
