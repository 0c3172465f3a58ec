"""Session lifecycle and action execution for the realtime endpoint."""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping
from uuid import UUID

from chat_realtime.application.dto.events import DeliveryMode, RealtimeEvent
from chat_realtime.application.exceptions import AppError
from chat_realtime.application.ports.bus import EventPublisher
from chat_realtime.application.ports.clock import Clock
from chat_realtime.application.uow import UnitOfWorkFactory
from chat_realtime.infrastructure.ws.channels import ChannelRouter
from chat_realtime.infrastructure.ws.dispatcher import EventDispatcher
from chat_realtime.infrastructure.ws.presence import PresenceTracker
from chat_realtime.infrastructure.ws.protocol import WsInbound
from chat_realtime.infrastructure.ws.registry import (
    Connection,
    ConnectionRegistry,
    SessionTransport,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ActionContext:
    session_id: str
    identity_id: UUID
    uow_factory: UnitOfWorkFactory
    registry: ConnectionRegistry
    channels: ChannelRouter
    presence: PresenceTracker


ActionHandler = Callable[[ActionContext, dict[str, Any]], Awaitable[list[RealtimeEvent]]]


def error_event(session_id: str, action: str, code: str, detail: str) -> RealtimeEvent:
    return RealtimeEvent(
        type="error",
        data={"code": code, "detail": detail, "action": action},
        delivery=DeliveryMode.UNICAST_SENDER,
        origin_session_id=session_id,
    )


def room_membership_event(event_type: str, identity_id: UUID, room_id: UUID) -> RealtimeEvent:
    return RealtimeEvent(
        type=event_type,
        data={"identity_id": str(identity_id), "room_id": str(room_id)},
        delivery=DeliveryMode.CHANNEL_EXCLUDING_SENDER,
        container_id=room_id,
        exclude_identity_id=identity_id,
    )


class RealtimeHub:
    """Owns registry, channels, presence and dispatcher for one process.

    Each inbound action runs to completion even if the socket drops midway:
    the action task is shielded from the read loop's cancellation, and
    ``close_session`` waits for it before tearing the session down.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        actions: Mapping[str, ActionHandler],
        *,
        publisher: EventPublisher | None = None,
        pubsub_channel: str = "",
        clock: Clock | None = None,
        send_timeout: float | None = None,
    ) -> None:
        self.uow_factory = uow_factory
        self.registry = ConnectionRegistry(send_timeout)
        self.channels = ChannelRouter(self.registry)
        self.presence = PresenceTracker(self.registry, uow_factory, clock)
        self.dispatcher = EventDispatcher(self.registry, self.channels, publisher, pubsub_channel)
        self._actions = actions

    async def open_session(self, identity_id: UUID, transport: SessionTransport) -> Connection:
        conn = self.registry.register(uuid.uuid4().hex, identity_id, transport)
        logger.info("Session opened: %s identity=%s", conn.session_id, identity_id)
        event = await self.presence.on_connect(identity_id)
        if event is not None:
            await self.dispatcher.deliver(event)
        return conn

    async def close_session(self, session_id: str) -> None:
        conn = self.registry.get(session_id)
        if conn is None:
            return
        await conn.drain()

        left = self.channels.leave_all(session_id)
        self.registry.unregister(session_id)
        logger.info("Session closed: %s identity=%s", session_id, conn.identity_id)

        remaining = self.registry.sessions_for(conn.identity_id)
        for container in left:
            if container.is_conversation or self.channels.subscribers(container.id) & remaining:
                continue
            await self.dispatcher.deliver(
                room_membership_event("room:user-left", conn.identity_id, container.id)
            )

        event = await self.presence.on_disconnect(conn.identity_id)
        if event is not None:
            await self.dispatcher.deliver(event)

    async def handle(self, session_id: str, inbound: WsInbound) -> None:
        conn = self.registry.get(session_id)
        if conn is None:
            return
        task = asyncio.create_task(
            self._run_action(conn, inbound), name=f"ws-action-{session_id}",
        )
        conn.inflight = task
        await asyncio.shield(task)

    async def shutdown(self) -> None:
        pending = [
            conn.inflight
            for conn in self.registry.connections()
            if conn.inflight is not None and not conn.inflight.done()
        ]
        if pending:
            logger.info("Waiting for %d in-flight actions", len(pending))
            await asyncio.wait(pending)

    async def _run_action(self, conn: Connection, inbound: WsInbound) -> None:
        handler = self._actions.get(inbound.type)
        if handler is None:
            events = [
                error_event(conn.session_id, inbound.type, "unknown_type", f"Unknown type {inbound.type}"),
            ]
        else:
            ctx = ActionContext(
                session_id=conn.session_id,
                identity_id=conn.identity_id,
                uow_factory=self.uow_factory,
                registry=self.registry,
                channels=self.channels,
                presence=self.presence,
            )
            try:
                events = await handler(ctx, inbound.data)
            except AppError as exc:
                logger.info(
                    "Action %s rejected for session %s: %s", inbound.type, conn.session_id, exc.code,
                )
                events = [error_event(conn.session_id, inbound.type, exc.code, exc.detail)]
            except Exception:
                logger.exception("Action %s failed for session %s", inbound.type, conn.session_id)
                events = [error_event(conn.session_id, inbound.type, "internal_error", "Internal error")]

        for event in events:
            await self.dispatcher.deliver(event)
