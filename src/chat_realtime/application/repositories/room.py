from __future__ import annotations

from typing import Protocol
from uuid import UUID

from chat_realtime.domain.entities.room import Room


class RoomReader(Protocol):
    async def get_by_id(self, room_id: UUID) -> Room | None: ...

    async def is_member(self, room_id: UUID, identity_id: UUID) -> bool: ...
