"""Channel subscriptions: which sessions receive events for a container."""
from __future__ import annotations

import logging
from uuid import UUID

from chat_realtime.application.exceptions import AuthorizationError, NotFoundError
from chat_realtime.application.policies.permissions import (
    assert_container_access,
    resolve_container,
)
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.value_objects.container import ContainerRef
from chat_realtime.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class ChannelRouter:
    """Subscriber sets keyed by container id.

    Membership is authorized once, at join time. A channel exists only while
    it has at least one subscriber.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry
        self._channels: dict[UUID, frozenset[str]] = {}
        self._joined: dict[str, dict[UUID, ContainerRef]] = {}

    async def join(
        self,
        session_id: str,
        container_id: UUID,
        uow: UnitOfWork,
    ) -> ContainerRef:
        identity_id = self._registry.identity_for(session_id)
        if identity_id is None:
            raise AuthorizationError("Session is not registered")

        existing = self.container_for(session_id, container_id)
        if existing is not None:
            return existing

        container = await resolve_container(container_id, uow)
        await assert_container_access(identity_id, container, uow)

        if self._registry.get(session_id) is None:
            raise NotFoundError("Session is no longer connected")

        self._channels[container.id] = self._channels.get(container.id, frozenset()) | {session_id}
        self._joined.setdefault(session_id, {})[container.id] = container
        logger.info("Session %s joined %s %s", session_id, container.kind, container.id)
        return container

    def leave(self, session_id: str, container_id: UUID) -> ContainerRef | None:
        """Unsubscribe; returns the container that was left, if any."""
        joined = self._joined.get(session_id)
        container = joined.pop(container_id, None) if joined else None
        if joined is not None and not joined:
            del self._joined[session_id]

        subs = self._channels.get(container_id)
        if subs is not None and session_id in subs:
            remaining = subs - {session_id}
            if remaining:
                self._channels[container_id] = remaining
            else:
                del self._channels[container_id]
        return container

    def leave_all(self, session_id: str) -> list[ContainerRef]:
        left = []
        for container_id in list(self._joined.get(session_id, {})):
            container = self.leave(session_id, container_id)
            if container is not None:
                left.append(container)
        return left

    def subscribers(self, container_id: UUID) -> frozenset[str]:
        return self._channels.get(container_id, frozenset())

    def container_for(self, session_id: str, container_id: UUID) -> ContainerRef | None:
        return self._joined.get(session_id, {}).get(container_id)

    def has_channel(self, container_id: UUID) -> bool:
        return container_id in self._channels
