from __future__ import annotations

import asyncio
import uuid

import pytest

from chat_realtime.infrastructure.ws.locks import KeyedLock
from chat_realtime.infrastructure.ws.registry import ConnectionRegistry
from tests.conftest import FakeTransport


def test_identity_with_many_sessions():
    registry = ConnectionRegistry()
    identity = uuid.uuid4()

    registry.register("s1", identity, FakeTransport())
    registry.register("s2", identity, FakeTransport())

    assert registry.sessions_for(identity) == {"s1", "s2"}
    assert registry.identity_for("s1") == identity
    assert registry.online_identities() == {identity}
    assert len(registry) == 2

    registry.unregister("s1")
    assert registry.sessions_for(identity) == {"s2"}
    assert registry.online_identities() == {identity}

    registry.unregister("s2")
    assert registry.sessions_for(identity) == frozenset()
    assert registry.online_identities() == frozenset()


def test_unregister_unknown_session_is_noop():
    registry = ConnectionRegistry()
    assert registry.unregister("missing") is None
    assert registry.identity_for("missing") is None


def test_duplicate_session_id_rejected():
    registry = ConnectionRegistry()
    registry.register("s1", uuid.uuid4(), FakeTransport())
    with pytest.raises(ValueError):
        registry.register("s1", uuid.uuid4(), FakeTransport())


def test_snapshot_unaffected_by_later_changes():
    registry = ConnectionRegistry()
    identity = uuid.uuid4()
    registry.register("s1", identity, FakeTransport())

    snapshot = registry.sessions_for(identity)
    registry.register("s2", identity, FakeTransport())

    assert snapshot == {"s1"}


@pytest.mark.asyncio
async def test_concurrent_sends_do_not_interleave():
    registry = ConnectionRegistry()
    transport = FakeTransport()
    conn = registry.register("s1", uuid.uuid4(), transport)

    await asyncio.gather(*(conn.send_text(f'{{"type": "t{n}", "data": {{}}}}') for n in range(20)))

    assert sorted(transport.types()) == sorted(f"t{n}" for n in range(20))


@pytest.mark.asyncio
async def test_drain_waits_for_inflight_action():
    registry = ConnectionRegistry()
    conn = registry.register("s1", uuid.uuid4(), FakeTransport())
    done = []

    async def action():
        await asyncio.sleep(0.01)
        done.append(True)

    conn.inflight = asyncio.create_task(action())
    await conn.drain()

    assert done == [True]


@pytest.mark.asyncio
async def test_keyed_lock_serializes_per_key_and_cleans_up():
    locks = KeyedLock()
    order = []

    async def worker(key, tag):
        async with locks.hold(key):
            order.append(f"{tag}-in")
            await asyncio.sleep(0)
            order.append(f"{tag}-out")

    await asyncio.gather(worker("a", 1), worker("a", 2))

    assert order == ["1-in", "1-out", "2-in", "2-out"]
    assert len(locks) == 0


class StalledTransport:
    async def send_text(self, data: str) -> None:
        await asyncio.sleep(3600)


@pytest.mark.asyncio
async def test_stalled_client_times_out_and_releases_lock():
    registry = ConnectionRegistry(send_timeout=0.01)
    conn = registry.register("s1", uuid.uuid4(), StalledTransport())

    with pytest.raises(asyncio.TimeoutError):
        await conn.send_text("{}")
    with pytest.raises(asyncio.TimeoutError):
        await conn.send_text("{}")
