from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.domain.entities.message import Message
from chat_realtime.infrastructure.db.mappers import message as mapper
from chat_realtime.infrastructure.db.models.message import (
    MessageModel,
    MessageReactionModel,
    MessageReadReceiptModel,
)


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, message_id: UUID) -> Message | None:
        stmt = (
            select(MessageModel)
            .where(MessageModel.id == message_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_by_ids(self, message_ids: list[UUID]) -> list[Message]:
        if not message_ids:
            return []
        stmt = (
            select(MessageModel)
            .where(MessageModel.id.in_(message_ids))
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, message: Message) -> Message:
        await self._session.execute(
            insert(MessageModel).values(**mapper.entity_to_values(message))
        )
        return message

    async def update_if_version(
        self,
        message_id: UUID,
        expected_version: int,
        values: dict[str, Any],
    ) -> bool:
        """Conditional update; False means someone else committed first."""
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.id == message_id,
                MessageModel.version == expected_version,
            )
            .values(**values, version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def add_reaction(
        self,
        message_id: UUID,
        identity_id: UUID,
        emoji: str,
        ts: datetime,
    ) -> None:
        stmt = (
            pg_insert(MessageReactionModel)
            .values(message_id=message_id, identity_id=identity_id, emoji=emoji, created_at=ts)
            .on_conflict_do_nothing(constraint="uq_message_reaction")
        )
        await self._session.execute(stmt)

    async def remove_reaction(
        self,
        message_id: UUID,
        identity_id: UUID,
        emoji: str,
    ) -> None:
        stmt = delete(MessageReactionModel).where(
            MessageReactionModel.message_id == message_id,
            MessageReactionModel.identity_id == identity_id,
            MessageReactionModel.emoji == emoji,
        )
        await self._session.execute(stmt)

    async def add_read_receipts(
        self,
        message_ids: list[UUID],
        identity_id: UUID,
        ts: datetime,
    ) -> list[UUID]:
        if not message_ids:
            return []
        stmt = (
            pg_insert(MessageReadReceiptModel)
            .values([
                {"message_id": mid, "identity_id": identity_id, "read_at": ts}
                for mid in message_ids
            ])
            .on_conflict_do_nothing(constraint="uq_read_receipt")
            .returning(MessageReadReceiptModel.message_id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())
