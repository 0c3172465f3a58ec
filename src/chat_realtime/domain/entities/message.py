from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from chat_realtime.domain.value_objects.container import ContainerRef

DELETED_PLACEHOLDER = "This message was deleted"


@dataclass(frozen=True, slots=True)
class ReadReceipt:
    identity_id: UUID
    read_at: datetime


@dataclass(frozen=True, slots=True)
class Reaction:
    identity_id: UUID
    emoji: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Attachment:
    file_url: str
    file_name: str | None = None
    file_size: int | None = None


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    sender_id: UUID
    container: ContainerRef
    type: str
    state: str
    content: str | None
    reply_to_id: UUID | None
    attachment: Attachment | None
    version: int
    created_at: datetime
    edited_at: datetime | None = None
    deleted_at: datetime | None = None
    read_by: tuple[ReadReceipt, ...] = ()
    reactions: tuple[Reaction, ...] = ()

    def has_read_receipt_from(self, identity_id: UUID) -> bool:
        return any(r.identity_id == identity_id for r in self.read_by)
