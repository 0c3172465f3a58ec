from __future__ import annotations

from chat_realtime.domain.entities.message import (
    Attachment,
    Message,
    Reaction,
    ReadReceipt,
)
from chat_realtime.domain.value_objects.container import ContainerRef
from chat_realtime.domain.value_objects.enums import ContainerKind
from chat_realtime.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    if model.conversation_id is not None:
        container = ContainerRef(ContainerKind.CONVERSATION, model.conversation_id)
    elif model.room_id is not None:
        container = ContainerRef(ContainerKind.ROOM, model.room_id)
    else:
        raise ValueError(f"Message {model.id} belongs to no container")

    attachment = None
    if model.file_url:
        attachment = Attachment(
            file_url=model.file_url,
            file_name=model.file_name,
            file_size=model.file_size,
        )

    return Message(
        id=model.id,
        sender_id=model.sender_id,
        container=container,
        type=model.type,
        state=model.state,
        content=model.content,
        reply_to_id=model.reply_to_id,
        attachment=attachment,
        version=model.version,
        created_at=model.created_at,
        edited_at=model.edited_at,
        deleted_at=model.deleted_at,
        read_by=tuple(
            ReadReceipt(identity_id=r.identity_id, read_at=r.read_at)
            for r in model.read_receipts
        ),
        reactions=tuple(
            Reaction(identity_id=r.identity_id, emoji=r.emoji, created_at=r.created_at)
            for r in model.reactions
        ),
    )


def entity_to_values(entity: Message) -> dict:
    """Column values for an INSERT of a new message."""
    attachment = entity.attachment
    return {
        "id": entity.id,
        "sender_id": entity.sender_id,
        "conversation_id": entity.container.id if entity.container.is_conversation else None,
        "room_id": None if entity.container.is_conversation else entity.container.id,
        "type": entity.type,
        "state": entity.state,
        "content": entity.content,
        "reply_to_id": entity.reply_to_id,
        "file_url": attachment.file_url if attachment else None,
        "file_name": attachment.file_name if attachment else None,
        "file_size": attachment.file_size if attachment else None,
        "version": entity.version,
        "created_at": entity.created_at,
    }
