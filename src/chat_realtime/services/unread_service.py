"""Per-participant unread counters on conversations.

Callers must hold the conversation's row lock (``conversations_w.lock_for_update``)
inside the same unit of work, so writes to one conversation are single-writer.
"""
from __future__ import annotations

import uuid

from chat_realtime.application.uow import UnitOfWork


async def increment(
    conversation_id: uuid.UUID,
    except_identity_id: uuid.UUID,
    uow: UnitOfWork,
) -> None:
    await uow.participants_w.increment_unread(conversation_id, except_identity_id)


async def reset(
    conversation_id: uuid.UUID,
    identity_id: uuid.UUID,
    uow: UnitOfWork,
) -> None:
    await uow.participants_w.reset_unread(conversation_id, identity_id)
