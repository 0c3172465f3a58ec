from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from chat_realtime.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from chat_realtime.application.repositories.identity import IdentityReader, IdentityWriter
from chat_realtime.application.repositories.message import MessageReader, MessageWriter
from chat_realtime.application.repositories.participant import (
    ParticipantReader,
    ParticipantWriter,
)
from chat_realtime.application.repositories.room import RoomReader


class UnitOfWork(Protocol):
    identities: IdentityReader
    identities_w: IdentityWriter
    conversations: ConversationReader
    conversations_w: ConversationWriter
    participants: ParticipantReader
    participants_w: ParticipantWriter
    rooms: RoomReader
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UnitOfWorkFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
