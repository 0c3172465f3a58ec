from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from chat_realtime.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def get_direct_between(
        self, identity_a: UUID, identity_b: UUID
    ) -> Conversation | None:
        """Find the non-group conversation whose participants include both identities."""
        ...


class ConversationWriter(Protocol):
    async def create(self, conversation: Conversation) -> Conversation: ...

    async def lock_for_update(self, conversation_id: UUID) -> None:
        """Take the conversation's row lock until the unit of work ends."""
        ...

    async def set_last_message(
        self, conversation_id: UUID, message_id: UUID, ts: datetime
    ) -> None: ...
