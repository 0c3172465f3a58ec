"""Redis Pub/Sub fan-out between service instances.

Every instance publishes the events its own actions produce and delivers
whatever arrives on the channel to its local sessions, its own publications
included.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

from chat_realtime.application.dto.events import RealtimeEvent
from chat_realtime.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)

OnEventCallback = Callable[[RealtimeEvent], Coroutine[Any, Any, Any]]


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def publish(self, channel: str, event: RealtimeEvent) -> None:
        receivers = await self._redis.publish(channel, serialize_event(event))
        logger.debug("Published %s to %s (%d receivers)", event.type, channel, receivers)


class RedisPubSubSubscriber:
    """Background listener; resubscribes after the connection drops."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        on_event: OnEventCallback,
        *,
        reconnect_delay: float = 2.0,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._on_event = on_event
        self._reconnect_delay = reconnect_delay
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Redis Pub/Sub subscriber stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self._listen()
            except RedisConnectionError:
                logger.warning(
                    "Pub/Sub connection lost, retrying in %.1fs", self._reconnect_delay,
                    exc_info=True,
                )
                await asyncio.sleep(self._reconnect_delay)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                await self._handle(message["data"])
        finally:
            await pubsub.aclose()

    async def _handle(self, raw: str | bytes) -> None:
        try:
            event = deserialize_event(raw)
        except (ValueError, KeyError, TypeError):
            logger.exception("Dropping malformed pubsub message")
            return
        try:
            await self._on_event(event)
        except Exception:
            logger.exception("Local delivery of %s failed", event.type)
