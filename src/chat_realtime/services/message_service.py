from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from chat_realtime.application.exceptions import ConcurrencyConflict, NotFoundError
from chat_realtime.application.policies import lifecycle
from chat_realtime.application.policies.permissions import assert_container_access
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.entities.message import Attachment, Message
from chat_realtime.domain.value_objects.container import ContainerRef
from chat_realtime.domain.value_objects.enums import MessageState, MessageType
from chat_realtime.services import unread_service

logger = logging.getLogger(__name__)


async def create_message(
    sender_id: uuid.UUID,
    container: ContainerRef,
    content: str | None,
    msg_type: MessageType,
    uow: UnitOfWork,
    *,
    reply_to: uuid.UUID | None = None,
    attachment: Attachment | None = None,
) -> Message:
    """Persist a new active message.

    For conversations the last-message pointer and the unread counters are
    updated in the same unit of work, under the conversation's row lock.
    """
    await assert_container_access(sender_id, container, uow)
    content = lifecycle.normalize_content(msg_type, content)

    if reply_to is not None:
        parent = await uow.messages.get_by_id(reply_to)
        if parent is None or parent.container != container:
            raise NotFoundError("Reply target not found")

    if container.is_conversation:
        await uow.conversations_w.lock_for_update(container.id)

    msg = Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        container=container,
        type=msg_type.value,
        state=MessageState.ACTIVE,
        content=content,
        reply_to_id=reply_to,
        attachment=attachment,
        version=1,
        created_at=datetime.now(timezone.utc),
    )
    msg = await uow.messages_w.create(msg)

    if container.is_conversation:
        await uow.conversations_w.set_last_message(container.id, msg.id, msg.created_at)
        await unread_service.increment(container.id, sender_id, uow)

    await uow.commit()
    return msg


async def edit_message(
    message_id: uuid.UUID,
    requester_id: uuid.UUID,
    content: str | None,
    uow: UnitOfWork,
) -> Message:
    message = await _get_message(message_id, uow)
    lifecycle.assert_sender(message, requester_id, "edit")
    edited = lifecycle.apply_edit(message, content, datetime.now(timezone.utc))
    await _conditional_update(
        message,
        {"content": edited.content, "state": edited.state, "edited_at": edited.edited_at},
        uow,
    )
    await uow.commit()
    return edited


async def delete_message(
    message_id: uuid.UUID,
    requester_id: uuid.UUID,
    uow: UnitOfWork,
) -> Message:
    message = await _get_message(message_id, uow)
    lifecycle.assert_sender(message, requester_id, "delete")
    deleted = lifecycle.apply_delete(message, datetime.now(timezone.utc))
    await _conditional_update(
        message,
        {"content": deleted.content, "state": deleted.state, "deleted_at": deleted.deleted_at},
        uow,
    )
    await uow.commit()
    return deleted


async def toggle_reaction(
    message_id: uuid.UUID,
    requester_id: uuid.UUID,
    emoji: str,
    uow: UnitOfWork,
) -> Message:
    message = await _get_message(message_id, uow)
    await assert_container_access(requester_id, message.container, uow)
    now = datetime.now(timezone.utc)
    updated, added = lifecycle.apply_reaction_toggle(message, requester_id, emoji, now)

    await _conditional_update(message, {}, uow)
    if added:
        await uow.messages_w.add_reaction(message.id, requester_id, emoji, now)
    else:
        await uow.messages_w.remove_reaction(message.id, requester_id, emoji)
    await uow.commit()
    return updated


async def _get_message(message_id: uuid.UUID, uow: UnitOfWork) -> Message:
    message = await uow.messages.get_by_id(message_id)
    if message is None:
        raise NotFoundError("Message not found")
    return message


async def _conditional_update(message: Message, values: dict, uow: UnitOfWork) -> None:
    applied = await uow.messages_w.update_if_version(message.id, message.version, values)
    if not applied:
        logger.info("Conflicting update on message %s (version %d)", message.id, message.version)
        raise ConcurrencyConflict("Message was modified concurrently, retry")
