from __future__ import annotations

import asyncio

import pytest

from chat_realtime.application.dto.events import DeliveryMode
from chat_realtime.application.exceptions import ValidationError
from chat_realtime.domain.value_objects.enums import PresenceStatus
from chat_realtime.infrastructure.ws.presence import PresenceTracker
from chat_realtime.infrastructure.ws.registry import ConnectionRegistry
from tests.conftest import FakeTransport


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def tracker(registry, uow_factory, clock):
    return PresenceTracker(registry, uow_factory, clock)


@pytest.mark.asyncio
async def test_first_session_announces_online(store, registry, tracker, clock, alice):
    registry.register("s1", alice.id, FakeTransport())

    event = await tracker.on_connect(alice.id)

    assert event.type == "presence:status"
    assert event.delivery == DeliveryMode.BROADCAST_GLOBAL
    assert event.exclude_identity_id == alice.id
    assert event.data["status"] == "online"
    assert event.data["last_seen"] == clock.current.isoformat()
    assert store.identities[alice.id].status == "online"
    assert tracker.status_of(alice.id) == PresenceStatus.ONLINE


@pytest.mark.asyncio
async def test_second_session_is_silent(store, registry, tracker, alice):
    registry.register("s1", alice.id, FakeTransport())
    await tracker.on_connect(alice.id)
    registry.register("s2", alice.id, FakeTransport())

    assert await tracker.on_connect(alice.id) is None
    assert store.presence_writes == [(alice.id, "online")]


@pytest.mark.asyncio
async def test_offline_only_after_last_session(store, registry, tracker, alice):
    registry.register("s1", alice.id, FakeTransport())
    registry.register("s2", alice.id, FakeTransport())
    await tracker.on_connect(alice.id)

    registry.unregister("s1")
    assert await tracker.on_disconnect(alice.id) is None

    registry.unregister("s2")
    event = await tracker.on_disconnect(alice.id)
    assert event.data["status"] == "offline"
    assert store.identities[alice.id].status == "offline"
    assert tracker.status_of(alice.id) == PresenceStatus.OFFLINE


@pytest.mark.asyncio
async def test_racing_connect_and_disconnect_end_consistent(store, registry, tracker, alice):
    registry.register("s1", alice.id, FakeTransport())
    await tracker.on_connect(alice.id)

    # the last session closes while a new one opens
    registry.unregister("s1")
    registry.register("s2", alice.id, FakeTransport())
    results = await asyncio.gather(tracker.on_disconnect(alice.id), tracker.on_connect(alice.id))

    assert results == [None, None]
    assert store.identities[alice.id].status == "online"
    assert tracker.status_of(alice.id) == PresenceStatus.ONLINE


@pytest.mark.asyncio
async def test_set_status_away_and_back(store, registry, tracker, alice):
    registry.register("s1", alice.id, FakeTransport())
    await tracker.on_connect(alice.id)

    away = await tracker.set_status(alice.id, PresenceStatus.AWAY)
    assert away.data["status"] == "away"
    assert await tracker.set_status(alice.id, PresenceStatus.AWAY) is None

    back = await tracker.set_status(alice.id, PresenceStatus.ONLINE)
    assert back.data["status"] == "online"


@pytest.mark.asyncio
async def test_away_survives_another_connect(store, registry, tracker, alice):
    registry.register("s1", alice.id, FakeTransport())
    await tracker.on_connect(alice.id)
    await tracker.set_status(alice.id, PresenceStatus.AWAY)

    registry.register("s2", alice.id, FakeTransport())
    assert await tracker.on_connect(alice.id) is None
    assert tracker.status_of(alice.id) == PresenceStatus.AWAY
    assert store.identities[alice.id].status == "away"

    registry.unregister("s1")
    registry.unregister("s2")
    await tracker.on_disconnect(alice.id)
    assert tracker.status_of(alice.id) == PresenceStatus.OFFLINE

@pytest.mark.asyncio
async def test_set_status_offline_rejected(registry, tracker, alice):
    registry.register("s1", alice.id, FakeTransport())
    with pytest.raises(ValidationError):
        await tracker.set_status(alice.id, PresenceStatus.OFFLINE)


@pytest.mark.asyncio
async def test_failed_write_skips_broadcast(store, registry, tracker, alice):
    registry.register("s1", alice.id, FakeTransport())
    store.fail_presence_writes = True

    assert await tracker.on_connect(alice.id) is None
    assert tracker.status_of(alice.id) == PresenceStatus.OFFLINE

    store.fail_presence_writes = False
    event = await tracker.on_connect(alice.id)
    assert event.data["status"] == "online"
