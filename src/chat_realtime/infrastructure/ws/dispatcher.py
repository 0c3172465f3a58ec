"""Turns RealtimeEvents into frames on the right sessions."""
from __future__ import annotations

import asyncio
import logging

from chat_realtime.application.dto.events import DeliveryMode, RealtimeEvent
from chat_realtime.application.ports.bus import EventPublisher
from chat_realtime.infrastructure.ws.channels import ChannelRouter
from chat_realtime.infrastructure.ws.protocol import WsOutbound
from chat_realtime.infrastructure.ws.registry import Connection, ConnectionRegistry

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Resolves recipients for each delivery mode and sends concurrently.

    Delivery is fire-and-forget: a failed send is logged and skipped, the
    remaining recipients still receive the frame. With a publisher attached,
    everything except replies to the origin session goes through the bus and
    comes back via ``deliver_local`` on every instance.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        channels: ChannelRouter,
        publisher: EventPublisher | None = None,
        pubsub_channel: str = "",
    ) -> None:
        self._registry = registry
        self._channels = channels
        self._publisher = publisher
        self._pubsub_channel = pubsub_channel

    def use_publisher(self, publisher: EventPublisher, pubsub_channel: str) -> None:
        self._publisher = publisher
        self._pubsub_channel = pubsub_channel

    def resolve_targets(self, event: RealtimeEvent) -> frozenset[str]:
        mode = event.delivery
        if mode == DeliveryMode.UNICAST_SENDER:
            if event.origin_session_id and self._registry.get(event.origin_session_id):
                return frozenset({event.origin_session_id})
            return frozenset()

        if mode == DeliveryMode.BROADCAST_GLOBAL:
            targets = self._registry.all_sessions()
        elif mode == DeliveryMode.IDENTITIES:
            targets = frozenset()
            for identity_id in event.target_identity_ids:
                targets |= self._registry.sessions_for(identity_id)
        elif event.container_id is None:
            return frozenset()
        else:
            targets = self._channels.subscribers(event.container_id)
            if mode == DeliveryMode.BROADCAST_ALL and event.origin_session_id:
                if self._registry.get(event.origin_session_id):
                    targets = targets | {event.origin_session_id}

        if event.exclude_identity_id is not None:
            targets = targets - self._registry.sessions_for(event.exclude_identity_id)
        return targets

    async def deliver(self, event: RealtimeEvent) -> None:
        if self._publisher is not None and event.delivery != DeliveryMode.UNICAST_SENDER:
            try:
                await self._publisher.publish(self._pubsub_channel, event)
                return
            except Exception:
                logger.exception("Publish of %s failed, delivering locally only", event.type)
        await self.deliver_local(event)

    async def deliver_local(self, event: RealtimeEvent) -> int:
        """Send to recipients connected to this process; returns the number reached."""
        targets = self.resolve_targets(event)
        if not targets:
            return 0

        raw = WsOutbound(type=event.type, data=event.data).model_dump_json()
        conns = []
        for session_id in targets:
            conn = self._registry.get(session_id)
            if conn is not None:
                conns.append(conn)
        results = await asyncio.gather(*(self._send(conn, raw) for conn in conns))
        return sum(results)

    async def _send(self, conn: Connection, raw: str) -> bool:
        try:
            await conn.send_text(raw)
        except Exception:
            logger.debug("Send to session %s failed", conn.session_id, exc_info=True)
            return False
        return True
