"""WebSocket message envelope and payload models."""
from __future__ import annotations

from typing import Any, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from chat_realtime.application.exceptions import ValidationError
from chat_realtime.domain.entities.message import Attachment
from chat_realtime.domain.value_objects.enums import MessageType, PresenceStatus


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # message:send | channel:join | typing:start | ping ...
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # message:new | presence:status | error | pong ...
    data: dict[str, Any] = {}


class ContainerPayload(BaseModel):
    container_id: UUID


class SendMessagePayload(BaseModel):
    container_id: UUID
    content: str | None = Field(None, max_length=10_000)
    type: MessageType = MessageType.TEXT
    reply_to: UUID | None = None
    file_url: str | None = Field(None, max_length=2048)
    file_name: str | None = Field(None, max_length=255)
    file_size: int | None = Field(None, ge=0)

    def attachment(self) -> Attachment | None:
        if self.file_url is None:
            return None
        return Attachment(self.file_url, self.file_name, self.file_size)


class MessageRefPayload(BaseModel):
    message_id: UUID


class EditMessagePayload(BaseModel):
    message_id: UUID
    content: str = Field(..., max_length=10_000)


class ReactPayload(BaseModel):
    message_id: UUID
    emoji: str = Field(..., min_length=1, max_length=32)


class MarkReadPayload(BaseModel):
    container_id: UUID
    message_ids: list[UUID] = Field(..., min_length=1, max_length=500)


class StatusPayload(BaseModel):
    status: PresenceStatus


class OpenConversationPayload(BaseModel):
    participant_id: UUID


P = TypeVar("P", bound=BaseModel)


def parse_payload(model: type[P], data: dict[str, Any]) -> P:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "data"
        raise ValidationError(f"{field}: {first['msg']}") from exc
