from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from chat_realtime.domain.value_objects.enums import ContainerKind


@dataclass(frozen=True, slots=True)
class ContainerRef:
    """A message container: either a conversation or a room."""

    kind: ContainerKind
    id: UUID

    @property
    def is_conversation(self) -> bool:
        return self.kind == ContainerKind.CONVERSATION
