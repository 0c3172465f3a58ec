from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Identity:
    id: UUID
    username: str
    status: str
    last_seen_at: datetime | None
