from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from chat_realtime.domain.entities.identity import Identity
from chat_realtime.infrastructure.db.mappers import identity as mapper
from chat_realtime.infrastructure.db.models.identity import IdentityModel


class IdentityReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, identity_id: UUID) -> Identity | None:
        result = await self._session.get(IdentityModel, identity_id)
        return mapper.model_to_entity(result) if result else None


class IdentityWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def update_presence(
        self,
        identity_id: UUID,
        status: str,
        last_seen_at: datetime,
    ) -> None:
        stmt = (
            update(IdentityModel)
            .where(IdentityModel.id == identity_id)
            .values(status=status, last_seen_at=last_seen_at)
        )
        await self._session.execute(stmt)
