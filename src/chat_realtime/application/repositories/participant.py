from __future__ import annotations

from typing import Protocol
from uuid import UUID

from chat_realtime.domain.entities.participant import Participant


class ParticipantReader(Protocol):
    async def is_participant(
        self,
        conversation_id: UUID,
        identity_id: UUID,
    ) -> bool: ...


class ParticipantWriter(Protocol):
    async def add(self, participant: Participant) -> None: ...

    async def increment_unread(
        self, conversation_id: UUID, except_identity_id: UUID
    ) -> None:
        """Add one to every participant's counter except the given identity's."""
        ...

    async def reset_unread(self, conversation_id: UUID, identity_id: UUID) -> None: ...
