"""Message state machine.

    active --edit--> edited --edit--> edited
    active | edited --delete--> deleted   (terminal)
    active | edited --react--> unchanged state

Every function here is pure: it validates a transition and returns the
message as it will look once the conditional write commits.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Iterable
from uuid import UUID

from chat_realtime.application.exceptions import (
    AuthorizationError,
    InvalidStateError,
    ValidationError,
)
from chat_realtime.domain.entities.message import (
    DELETED_PLACEHOLDER,
    Message,
    Reaction,
)
from chat_realtime.domain.value_objects.container import ContainerRef
from chat_realtime.domain.value_objects.enums import MessageState, MessageType


def normalize_content(msg_type: str, content: str | None) -> str | None:
    """Strip content; text messages must not end up blank."""
    if content is not None:
        content = content.strip()
    if msg_type == MessageType.TEXT and not content:
        raise ValidationError("Message content is required")
    return content or None


def assert_sender(message: Message, requester_id: UUID, action: str) -> None:
    if message.sender_id != requester_id:
        raise AuthorizationError(f"Not authorized to {action} this message")


def assert_mutable(message: Message) -> None:
    if message.state == MessageState.DELETED:
        raise InvalidStateError("Message has been deleted")


def apply_edit(message: Message, content: str | None, now: datetime) -> Message:
    assert_mutable(message)
    return dataclasses.replace(
        message,
        content=normalize_content(message.type, content),
        state=MessageState.EDITED,
        edited_at=now,
        version=message.version + 1,
    )


def apply_delete(message: Message, now: datetime) -> Message:
    assert_mutable(message)
    return dataclasses.replace(
        message,
        content=DELETED_PLACEHOLDER,
        state=MessageState.DELETED,
        deleted_at=now,
        version=message.version + 1,
    )


def apply_reaction_toggle(
    message: Message,
    identity_id: UUID,
    emoji: str,
    now: datetime,
) -> tuple[Message, bool]:
    """Toggle (identity_id, emoji). Returns (message, added)."""
    assert_mutable(message)
    kept = tuple(
        r for r in message.reactions
        if not (r.identity_id == identity_id and r.emoji == emoji)
    )
    added = len(kept) == len(message.reactions)
    if added:
        kept = kept + (Reaction(identity_id=identity_id, emoji=emoji, created_at=now),)
    return dataclasses.replace(message, reactions=kept, version=message.version + 1), added


def receipt_candidates(
    messages: Iterable[Message],
    container: ContainerRef,
    reader_id: UUID,
) -> list[UUID]:
    """Ids of messages that should get a read receipt from reader_id."""
    return [
        m.id
        for m in messages
        if m.container == container
        and m.sender_id != reader_id
        and m.state != MessageState.DELETED
        and not m.has_read_receipt_from(reader_id)
    ]
