from __future__ import annotations

from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.infrastructure.db.mappers import participant as participant_mapper
from chat_realtime.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        is_group=model.is_group,
        name=model.name,
        last_message_id=model.last_message_id,
        last_message_at=model.last_message_at,
        created_at=model.created_at,
        updated_at=model.updated_at,
        participants=tuple(
            participant_mapper.model_to_entity(p) for p in model.participants
        ),
    )


def entity_to_model(entity: Conversation) -> ConversationModel:
    return ConversationModel(
        id=entity.id,
        is_group=entity.is_group,
        name=entity.name,
        last_message_id=entity.last_message_id,
        last_message_at=entity.last_message_at,
        created_at=entity.created_at,
        updated_at=entity.updated_at,
    )
