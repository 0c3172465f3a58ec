from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from chat_realtime.domain.entities.participant import Participant


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    is_group: bool
    name: str | None
    last_message_id: UUID | None
    last_message_at: datetime | None
    created_at: datetime
    updated_at: datetime
    participants: tuple[Participant, ...] = ()

    @property
    def participant_ids(self) -> frozenset[UUID]:
        return frozenset(p.identity_id for p in self.participants)

    def unread_count_for(self, identity_id: UUID) -> int:
        for p in self.participants:
            if p.identity_id == identity_id:
                return p.unread_count
        return 0
