from __future__ import annotations

import uuid
from datetime import datetime, timezone

from chat_realtime.application.policies.lifecycle import receipt_candidates
from chat_realtime.application.policies.permissions import assert_container_access
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.value_objects.container import ContainerRef
from chat_realtime.services import unread_service


async def mark_read(
    container: ContainerRef,
    reader_id: uuid.UUID,
    message_ids: list[uuid.UUID],
    uow: UnitOfWork,
) -> list[uuid.UUID]:
    """Add read receipts from reader_id and reset its unread counter.

    Idempotent: messages that already carry a receipt from the reader, the
    reader's own messages and deleted messages are skipped. Returns the ids
    that received a new receipt.
    """
    await assert_container_access(reader_id, container, uow)

    if container.is_conversation:
        await uow.conversations_w.lock_for_update(container.id)

    messages = await uow.messages.list_by_ids(list(dict.fromkeys(message_ids)))
    candidates = receipt_candidates(messages, container, reader_id)
    receipted: list[uuid.UUID] = []
    if candidates:
        receipted = await uow.messages_w.add_read_receipts(
            candidates, reader_id, datetime.now(timezone.utc),
        )

    if container.is_conversation:
        await unread_service.reset(container.id, reader_id, uow)

    await uow.commit()
    return receipted
