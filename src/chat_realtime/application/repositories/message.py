from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from chat_realtime.domain.entities.message import Message


class MessageReader(Protocol):
    async def get_by_id(self, message_id: UUID) -> Message | None: ...

    async def list_by_ids(self, message_ids: list[UUID]) -> list[Message]: ...


class MessageWriter(Protocol):
    async def create(self, message: Message) -> Message: ...

    async def update_if_version(
        self,
        message_id: UUID,
        expected_version: int,
        values: dict[str, Any],
    ) -> bool:
        """Apply values and bump the version only if it still equals expected_version."""
        ...

    async def add_reaction(
        self, message_id: UUID, identity_id: UUID, emoji: str, ts: datetime
    ) -> None: ...

    async def remove_reaction(
        self, message_id: UUID, identity_id: UUID, emoji: str
    ) -> None: ...

    async def add_read_receipts(
        self, message_ids: list[UUID], identity_id: UUID, ts: datetime
    ) -> list[UUID]:
        """Insert receipts, skipping existing ones. Returns ids that got a new receipt."""
        ...
