from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from chat_realtime.domain.entities.message import Message


class ReadReceiptResponse(BaseModel):
    identity_id: UUID
    read_at: datetime

    model_config = {"from_attributes": True}


class ReactionResponse(BaseModel):
    identity_id: UUID
    emoji: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AttachmentResponse(BaseModel):
    file_url: str
    file_name: str | None
    file_size: int | None

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    id: UUID
    sender_id: UUID
    container_id: UUID
    container_kind: str
    type: str
    state: str
    content: str | None
    reply_to_id: UUID | None
    attachment: AttachmentResponse | None
    created_at: datetime
    edited_at: datetime | None
    deleted_at: datetime | None
    read_by: list[ReadReceiptResponse]
    reactions: list[ReactionResponse]

    @classmethod
    def from_entity(cls, msg: Message) -> MessageResponse:
        return cls(
            id=msg.id,
            sender_id=msg.sender_id,
            container_id=msg.container.id,
            container_kind=msg.container.kind,
            type=msg.type,
            state=msg.state,
            content=msg.content,
            reply_to_id=msg.reply_to_id,
            attachment=(
                AttachmentResponse.model_validate(msg.attachment) if msg.attachment else None
            ),
            created_at=msg.created_at,
            edited_at=msg.edited_at,
            deleted_at=msg.deleted_at,
            read_by=[ReadReceiptResponse.model_validate(r) for r in msg.read_by],
            reactions=[ReactionResponse.model_validate(r) for r in msg.reactions],
        )


def message_payload(msg: Message) -> dict[str, Any]:
    return MessageResponse.from_entity(msg).model_dump(mode="json")


def reactions_payload(msg: Message) -> list[dict[str, Any]]:
    return [ReactionResponse.model_validate(r).model_dump(mode="json") for r in msg.reactions]
