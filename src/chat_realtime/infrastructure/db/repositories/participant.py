from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.domain.entities.participant import Participant
from chat_realtime.infrastructure.db.mappers import participant as mapper
from chat_realtime.infrastructure.db.models.participant import ParticipantModel


class ParticipantReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def is_participant(
        self,
        conversation_id: UUID,
        identity_id: UUID,
    ) -> bool:
        stmt = (
            select(ParticipantModel.id)
            .where(
                ParticipantModel.conversation_id == conversation_id,
                ParticipantModel.identity_id == identity_id,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None


class ParticipantWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, participant: Participant) -> None:
        model = mapper.entity_to_model(participant)
        self._session.add(model)
        await self._session.flush()

    async def increment_unread(
        self,
        conversation_id: UUID,
        except_identity_id: UUID,
    ) -> None:
        stmt = (
            update(ParticipantModel)
            .where(
                ParticipantModel.conversation_id == conversation_id,
                ParticipantModel.identity_id != except_identity_id,
            )
            .values(unread_count=ParticipantModel.unread_count + 1)
        )
        await self._session.execute(stmt)

    async def reset_unread(self, conversation_id: UUID, identity_id: UUID) -> None:
        stmt = (
            update(ParticipantModel)
            .where(
                ParticipantModel.conversation_id == conversation_id,
                ParticipantModel.identity_id == identity_id,
            )
            .values(unread_count=0)
        )
        await self._session.execute(stmt)
