from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from chat_realtime.domain.entities.conversation import Conversation


class ParticipantResponse(BaseModel):
    identity_id: UUID
    unread_count: int
    joined_at: datetime

    model_config = {"from_attributes": True}


class ConversationResponse(BaseModel):
    id: UUID
    is_group: bool
    name: str | None
    last_message_id: UUID | None
    last_message_at: datetime | None
    created_at: datetime
    updated_at: datetime
    participants: list[ParticipantResponse]

    model_config = {"from_attributes": True}


def conversation_payload(conv: Conversation) -> dict[str, Any]:
    return ConversationResponse.model_validate(conv).model_dump(mode="json")
