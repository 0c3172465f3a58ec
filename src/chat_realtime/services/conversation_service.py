from __future__ import annotations

import uuid
from datetime import datetime, timezone

from chat_realtime.application.exceptions import NotFoundError, ValidationError
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.domain.entities.participant import Participant


async def get_or_create_direct_conversation(
    identity_id: uuid.UUID,
    participant_id: uuid.UUID,
    uow: UnitOfWork,
) -> tuple[Conversation, bool]:
    """Return the direct conversation between two identities, creating it if needed.

    Returns (conversation, created) where created=True if a new conversation was made.
    """
    if participant_id == identity_id:
        raise ValidationError("Cannot create a conversation with yourself")

    if await uow.identities.get_by_id(participant_id) is None:
        raise NotFoundError("User not found")

    existing = await uow.conversations.get_direct_between(identity_id, participant_id)
    if existing is not None:
        return existing, False

    now = datetime.now(timezone.utc)
    conversation = Conversation(
        id=uuid.uuid4(),
        is_group=False,
        name=None,
        last_message_id=None,
        last_message_at=None,
        created_at=now,
        updated_at=now,
    )
    conversation = await uow.conversations_w.create(conversation)

    for subject in (identity_id, participant_id):
        await uow.participants_w.add(
            Participant(
                conversation_id=conversation.id,
                identity_id=subject,
                unread_count=0,
                joined_at=now,
            )
        )

    await uow.commit()
    created = await uow.conversations.get_by_id(conversation.id)
    return created or conversation, True
