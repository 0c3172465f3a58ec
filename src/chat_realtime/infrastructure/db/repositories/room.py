from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.domain.entities.room import Room
from chat_realtime.infrastructure.db.mappers import room as mapper
from chat_realtime.infrastructure.db.models.room import RoomMemberModel, RoomModel


class RoomReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, room_id: UUID) -> Room | None:
        result = await self._session.get(RoomModel, room_id)
        return mapper.model_to_entity(result) if result else None

    async def is_member(self, room_id: UUID, identity_id: UUID) -> bool:
        stmt = (
            select(RoomMemberModel.id)
            .where(
                RoomMemberModel.room_id == room_id,
                RoomMemberModel.identity_id == identity_id,
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None
