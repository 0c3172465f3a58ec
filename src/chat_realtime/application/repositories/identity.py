from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from chat_realtime.domain.entities.identity import Identity


class IdentityReader(Protocol):
    async def get_by_id(self, identity_id: UUID) -> Identity | None: ...


class IdentityWriter(Protocol):
    async def update_presence(
        self, identity_id: UUID, status: str, last_seen_at: datetime
    ) -> None: ...
