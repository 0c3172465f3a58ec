"""In-process registry of live WebSocket sessions."""
from __future__ import annotations

import asyncio
import logging
from typing import Protocol
from uuid import UUID

logger = logging.getLogger(__name__)


class SessionTransport(Protocol):
    async def send_text(self, data: str) -> None: ...


class Connection:
    """One live session: its owner, its transport and its in-flight action."""

    __slots__ = ("session_id", "identity_id", "_transport", "_send_timeout", "_send_lock", "inflight")

    def __init__(
        self,
        session_id: str,
        identity_id: UUID,
        transport: SessionTransport,
        send_timeout: float | None = None,
    ) -> None:
        self.session_id = session_id
        self.identity_id = identity_id
        self._transport = transport
        self._send_timeout = send_timeout
        self._send_lock = asyncio.Lock()
        self.inflight: asyncio.Task[None] | None = None

    async def send_text(self, raw: str) -> None:
        # frames from concurrent deliveries must not interleave; a stalled
        # client times out instead of holding the lock
        async with self._send_lock:
            await asyncio.wait_for(self._transport.send_text(raw), self._send_timeout)

    async def drain(self) -> None:
        """Wait until the in-flight action (if any) has committed or failed."""
        task = self.inflight
        if task is not None and not task.done():
            await asyncio.wait({task})


class ConnectionRegistry:
    """Maps sessions to identities and back; an identity may hold many sessions.

    Per-identity session sets are immutable and replaced on every change, so
    a broadcast iterating a snapshot sees either the old or the new set.
    """

    def __init__(self, send_timeout: float | None = None) -> None:
        self._send_timeout = send_timeout
        self._connections: dict[str, Connection] = {}
        self._by_identity: dict[UUID, frozenset[str]] = {}

    def register(
        self,
        session_id: str,
        identity_id: UUID,
        transport: SessionTransport,
    ) -> Connection:
        if session_id in self._connections:
            raise ValueError(f"Session {session_id} is already registered")
        conn = Connection(session_id, identity_id, transport, self._send_timeout)
        self._connections[session_id] = conn
        self._by_identity[identity_id] = self._by_identity.get(identity_id, frozenset()) | {session_id}
        logger.debug(
            "Session registered: %s identity=%s (sessions=%d)",
            session_id, identity_id, len(self._by_identity[identity_id]),
        )
        return conn

    def unregister(self, session_id: str) -> Connection | None:
        conn = self._connections.pop(session_id, None)
        if conn is None:
            return None
        remaining = self._by_identity.get(conn.identity_id, frozenset()) - {session_id}
        if remaining:
            self._by_identity[conn.identity_id] = remaining
        else:
            self._by_identity.pop(conn.identity_id, None)
        logger.debug(
            "Session unregistered: %s identity=%s (sessions=%d)",
            session_id, conn.identity_id, len(remaining),
        )
        return conn

    def get(self, session_id: str) -> Connection | None:
        return self._connections.get(session_id)

    def identity_for(self, session_id: str) -> UUID | None:
        conn = self._connections.get(session_id)
        return conn.identity_id if conn else None

    def sessions_for(self, identity_id: UUID) -> frozenset[str]:
        return self._by_identity.get(identity_id, frozenset())

    def all_sessions(self) -> frozenset[str]:
        return frozenset(self._connections)

    def online_identities(self) -> frozenset[UUID]:
        return frozenset(self._by_identity)

    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)
