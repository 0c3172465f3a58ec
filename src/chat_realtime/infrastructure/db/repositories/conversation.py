from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.infrastructure.db.mappers import conversation as mapper
from chat_realtime.infrastructure.db.models.conversation import ConversationModel
from chat_realtime.infrastructure.db.models.participant import ParticipantModel


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        stmt = (
            select(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def get_direct_between(
        self,
        identity_a: UUID,
        identity_b: UUID,
    ) -> Conversation | None:
        pa = aliased(ParticipantModel)
        pb = aliased(ParticipantModel)
        stmt = (
            select(ConversationModel)
            .join(pa, pa.conversation_id == ConversationModel.id)
            .join(pb, pb.conversation_id == ConversationModel.id)
            .where(
                ConversationModel.is_group.is_(False),
                pa.identity_id == identity_a,
                pb.identity_id == identity_b,
            )
            .order_by(ConversationModel.created_at.asc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, conversation: Conversation) -> Conversation:
        model = mapper.entity_to_model(conversation)
        self._session.add(model)
        await self._session.flush()
        return conversation

    async def lock_for_update(self, conversation_id: UUID) -> None:
        stmt = (
            select(ConversationModel.id)
            .where(ConversationModel.id == conversation_id)
            .with_for_update()
        )
        await self._session.execute(stmt)

    async def set_last_message(
        self,
        conversation_id: UUID,
        message_id: UUID,
        ts: datetime,
    ) -> None:
        stmt = (
            update(ConversationModel)
            .where(
                ConversationModel.id == conversation_id,
                or_(
                    ConversationModel.last_message_at.is_(None),
                    ConversationModel.last_message_at <= ts,
                ),
            )
            .values(last_message_id=message_id, last_message_at=ts)
        )
        await self._session.execute(stmt)
