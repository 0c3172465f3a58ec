from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Room:
    id: UUID
    name: str
    description: str | None
    owner_id: UUID
    is_private: bool
    created_at: datetime
    member_ids: frozenset[UUID] = field(default_factory=frozenset)
