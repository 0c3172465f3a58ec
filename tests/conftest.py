"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import dataclasses
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import pytest

from chat_realtime.api.v1.actions import ACTIONS
from chat_realtime.domain.entities.conversation import Conversation
from chat_realtime.domain.entities.identity import Identity
from chat_realtime.domain.entities.message import Message, Reaction, ReadReceipt
from chat_realtime.domain.entities.participant import Participant
from chat_realtime.domain.entities.room import Room
from chat_realtime.domain.value_objects.container import ContainerRef
from chat_realtime.domain.value_objects.enums import (
    ContainerKind,
    MessageState,
    MessageType,
    PresenceStatus,
)
from chat_realtime.infrastructure.ws.hub import RealtimeHub

FIXED_NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current


@dataclass
class FakeStore:
    """State shared by every FakeUoW opened from the same factory.

    Writes land immediately; commit/rollback only release conversation locks.
    """

    identities: dict[UUID, Identity] = field(default_factory=dict)
    conversations: dict[UUID, Conversation] = field(default_factory=dict)
    participants: dict[tuple[UUID, UUID], Participant] = field(default_factory=dict)
    rooms: dict[UUID, Room] = field(default_factory=dict)
    messages: dict[UUID, Message] = field(default_factory=dict)
    reactions: dict[UUID, list[Reaction]] = field(default_factory=dict)
    receipts: dict[UUID, list[ReadReceipt]] = field(default_factory=dict)
    conversation_locks: dict[UUID, asyncio.Lock] = field(default_factory=dict)
    presence_writes: list[tuple[UUID, str]] = field(default_factory=list)
    fail_presence_writes: bool = False

    def message(self, message_id: UUID) -> Message:
        msg = self.messages[message_id]
        return dataclasses.replace(
            msg,
            read_by=tuple(self.receipts.get(message_id, ())),
            reactions=tuple(self.reactions.get(message_id, ())),
        )

    def unread(self, conversation_id: UUID, identity_id: UUID) -> int:
        return self.participants[(conversation_id, identity_id)].unread_count


# ---- identities ----


@dataclass
class FakeIdentityReader:
    _store: FakeStore

    async def get_by_id(self, identity_id: UUID) -> Identity | None:
        return self._store.identities.get(identity_id)


@dataclass
class FakeIdentityWriter:
    _store: FakeStore

    async def update_presence(self, identity_id: UUID, status: str, last_seen_at: datetime) -> None:
        await asyncio.sleep(0)
        if self._store.fail_presence_writes:
            raise RuntimeError("database unavailable")
        identity = self._store.identities[identity_id]
        self._store.identities[identity_id] = dataclasses.replace(
            identity, status=status, last_seen_at=last_seen_at,
        )
        self._store.presence_writes.append((identity_id, status))


# ---- conversations ----


@dataclass
class FakeConversationReader:
    _store: FakeStore

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        conv = self._store.conversations.get(conversation_id)
        if conv is None:
            return None
        participants = tuple(
            p for (cid, _), p in self._store.participants.items() if cid == conversation_id
        )
        return dataclasses.replace(conv, participants=participants)

    async def get_direct_between(self, identity_a: UUID, identity_b: UUID) -> Conversation | None:
        for conv in self._store.conversations.values():
            if conv.is_group:
                continue
            keys = {(conv.id, identity_a), (conv.id, identity_b)}
            if keys <= self._store.participants.keys():
                return await self.get_by_id(conv.id)
        return None


@dataclass
class FakeConversationWriter:
    _store: FakeStore
    _uow: FakeUoW

    async def create(self, conversation: Conversation) -> Conversation:
        self._store.conversations[conversation.id] = conversation
        return conversation

    async def lock_for_update(self, conversation_id: UUID) -> None:
        lock = self._store.conversation_locks.setdefault(conversation_id, asyncio.Lock())
        if lock in self._uow.held_locks:
            return
        await lock.acquire()
        self._uow.held_locks.append(lock)

    async def set_last_message(self, conversation_id: UUID, message_id: UUID, ts: datetime) -> None:
        conv = self._store.conversations[conversation_id]
        if conv.last_message_at is None or conv.last_message_at <= ts:
            self._store.conversations[conversation_id] = dataclasses.replace(
                conv, last_message_id=message_id, last_message_at=ts, updated_at=ts,
            )


# ---- participants ----


@dataclass
class FakeParticipantReader:
    _store: FakeStore

    async def is_participant(self, conversation_id: UUID, identity_id: UUID) -> bool:
        return (conversation_id, identity_id) in self._store.participants


@dataclass
class FakeParticipantWriter:
    _store: FakeStore

    async def add(self, participant: Participant) -> None:
        self._store.participants[(participant.conversation_id, participant.identity_id)] = participant

    async def increment_unread(self, conversation_id: UUID, except_identity_id: UUID) -> None:
        # read and write on either side of a yield, like a non-atomic ORM update would
        current = {
            key: p for key, p in self._store.participants.items()
            if key[0] == conversation_id and key[1] != except_identity_id
        }
        await asyncio.sleep(0)
        for key, p in current.items():
            self._store.participants[key] = dataclasses.replace(p, unread_count=p.unread_count + 1)

    async def reset_unread(self, conversation_id: UUID, identity_id: UUID) -> None:
        key = (conversation_id, identity_id)
        p = self._store.participants.get(key)
        if p is not None:
            self._store.participants[key] = dataclasses.replace(p, unread_count=0)


# ---- rooms ----


@dataclass
class FakeRoomReader:
    _store: FakeStore

    async def get_by_id(self, room_id: UUID) -> Room | None:
        return self._store.rooms.get(room_id)

    async def is_member(self, room_id: UUID, identity_id: UUID) -> bool:
        room = self._store.rooms.get(room_id)
        return room is not None and identity_id in room.member_ids


# ---- messages ----


@dataclass
class FakeMessageReader:
    _store: FakeStore

    async def get_by_id(self, message_id: UUID) -> Message | None:
        await asyncio.sleep(0)
        if message_id not in self._store.messages:
            return None
        return self._store.message(message_id)

    async def list_by_ids(self, message_ids: list[UUID]) -> list[Message]:
        return [self._store.message(mid) for mid in message_ids if mid in self._store.messages]


@dataclass
class FakeMessageWriter:
    _store: FakeStore

    async def create(self, message: Message) -> Message:
        self._store.messages[message.id] = message
        return message

    async def update_if_version(
        self,
        message_id: UUID,
        expected_version: int,
        values: dict[str, Any],
    ) -> bool:
        msg = self._store.messages.get(message_id)
        if msg is None or msg.version != expected_version:
            return False
        self._store.messages[message_id] = dataclasses.replace(
            msg, version=expected_version + 1, **values,
        )
        return True

    async def add_reaction(self, message_id: UUID, identity_id: UUID, emoji: str, ts: datetime) -> None:
        reactions = self._store.reactions.setdefault(message_id, [])
        if not any(r.identity_id == identity_id and r.emoji == emoji for r in reactions):
            reactions.append(Reaction(identity_id=identity_id, emoji=emoji, created_at=ts))

    async def remove_reaction(self, message_id: UUID, identity_id: UUID, emoji: str) -> None:
        self._store.reactions[message_id] = [
            r for r in self._store.reactions.get(message_id, [])
            if not (r.identity_id == identity_id and r.emoji == emoji)
        ]

    async def add_read_receipts(self, message_ids: list[UUID], identity_id: UUID, ts: datetime) -> list[UUID]:
        added = []
        for mid in message_ids:
            receipts = self._store.receipts.setdefault(mid, [])
            if any(r.identity_id == identity_id for r in receipts):
                continue
            receipts.append(ReadReceipt(identity_id=identity_id, read_at=ts))
            added.append(mid)
        return added


class FakeUoW:
    """In-memory UoW for unit tests."""

    def __init__(self, store: FakeStore | None = None) -> None:
        self.store = store or FakeStore()
        self.held_locks: list[asyncio.Lock] = []
        self._committed = False
        self._rolled_back = False

        self.identities = FakeIdentityReader(self.store)
        self.identities_w = FakeIdentityWriter(self.store)
        self.conversations = FakeConversationReader(self.store)
        self.conversations_w = FakeConversationWriter(self.store, self)
        self.participants = FakeParticipantReader(self.store)
        self.participants_w = FakeParticipantWriter(self.store)
        self.rooms = FakeRoomReader(self.store)
        self.messages = FakeMessageReader(self.store)
        self.messages_w = FakeMessageWriter(self.store)

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True
        self._release()

    async def rollback(self) -> None:
        self._rolled_back = True
        self._release()

    def _release(self) -> None:
        while self.held_locks:
            self.held_locks.pop().release()

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            await self.rollback()
        self._release()


class FakeTransport:
    """Stands in for a WebSocket; records decoded outbound frames."""

    def __init__(self) -> None:
        self.frames: list[dict[str, Any]] = []
        self.fail = False

    async def send_text(self, data: str) -> None:
        await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(json.loads(data))

    def types(self) -> list[str]:
        return [f["type"] for f in self.frames]

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        return [f["data"] for f in self.frames if f["type"] == event_type]


# ---- builders ----


def make_identity(store: FakeStore, username: str = "alice") -> Identity:
    identity = Identity(
        id=uuid.uuid4(),
        username=username,
        status=PresenceStatus.OFFLINE,
        last_seen_at=None,
    )
    store.identities[identity.id] = identity
    return identity


def make_conversation(store: FakeStore, *members: UUID, is_group: bool = False) -> ContainerRef:
    conv = Conversation(
        id=uuid.uuid4(),
        is_group=is_group,
        name=None,
        last_message_id=None,
        last_message_at=None,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )
    store.conversations[conv.id] = conv
    for identity_id in members:
        store.participants[(conv.id, identity_id)] = Participant(
            conversation_id=conv.id,
            identity_id=identity_id,
            unread_count=0,
            joined_at=FIXED_NOW,
        )
    return ContainerRef(ContainerKind.CONVERSATION, conv.id)


def make_room(store: FakeStore, owner: UUID, *members: UUID) -> ContainerRef:
    room = Room(
        id=uuid.uuid4(),
        name=f"room-{len(store.rooms)}",
        description=None,
        owner_id=owner,
        is_private=False,
        created_at=FIXED_NOW,
        member_ids=frozenset((owner, *members)),
    )
    store.rooms[room.id] = room
    return ContainerRef(ContainerKind.ROOM, room.id)


def make_message(
    store: FakeStore,
    container: ContainerRef,
    sender_id: UUID,
    *,
    content: str = "hello",
    state: str = MessageState.ACTIVE,
    version: int = 1,
) -> Message:
    msg = Message(
        id=uuid.uuid4(),
        sender_id=sender_id,
        container=container,
        type=MessageType.TEXT,
        state=state,
        content=content,
        reply_to_id=None,
        attachment=None,
        version=version,
        created_at=FIXED_NOW,
    )
    store.messages[msg.id] = msg
    return msg


# ---- fixtures ----


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def uow(store) -> FakeUoW:
    return FakeUoW(store)


@pytest.fixture
def uow_factory(store):
    return lambda: FakeUoW(store)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def hub(uow_factory, clock) -> RealtimeHub:
    return RealtimeHub(uow_factory, ACTIONS, clock=clock)


@pytest.fixture
def alice(store) -> Identity:
    return make_identity(store, "alice")


@pytest.fixture
def bob(store) -> Identity:
    return make_identity(store, "bob")


@pytest.fixture
def carol(store) -> Identity:
    return make_identity(store, "carol")
