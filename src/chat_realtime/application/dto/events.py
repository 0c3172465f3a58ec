from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any
from uuid import UUID


class DeliveryMode(StrEnum):
    BROADCAST_ALL = "broadcast_all"
    CHANNEL_EXCLUDING_SENDER = "channel_excluding_sender"
    UNICAST_SENDER = "unicast_sender"
    BROADCAST_GLOBAL = "broadcast_global"
    IDENTITIES = "identities"


@dataclass(frozen=True, slots=True)
class RealtimeEvent:
    """An outbound fact plus the rule that picks its recipients."""

    type: str
    data: dict[str, Any]
    delivery: DeliveryMode
    container_id: UUID | None = None
    origin_session_id: str | None = None
    exclude_identity_id: UUID | None = None
    target_identity_ids: tuple[UUID, ...] = ()
