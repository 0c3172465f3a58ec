"""Online/away/offline tracking derived from live session counts."""
from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from chat_realtime.application.dto.events import DeliveryMode, RealtimeEvent
from chat_realtime.application.exceptions import ValidationError
from chat_realtime.application.ports.clock import Clock, SystemClock
from chat_realtime.application.uow import UnitOfWorkFactory
from chat_realtime.domain.value_objects.enums import PresenceStatus
from chat_realtime.infrastructure.ws.locks import KeyedLock
from chat_realtime.infrastructure.ws.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Announces an identity when its first session opens and its last one closes.

    Transitions for one identity are serialized, so a connect racing a
    disconnect can never leave the stored status disagreeing with the
    registry. The registry must already reflect the change when
    ``on_connect``/``on_disconnect`` is called.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        uow_factory: UnitOfWorkFactory,
        clock: Clock | None = None,
    ) -> None:
        self._registry = registry
        self._uow_factory = uow_factory
        self._clock = clock or SystemClock()
        self._locks = KeyedLock()
        self._status: dict[UUID, PresenceStatus] = {}

    def status_of(self, identity_id: UUID) -> PresenceStatus:
        return self._status.get(identity_id, PresenceStatus.OFFLINE)

    async def on_connect(self, identity_id: UUID) -> RealtimeEvent | None:
        async with self._locks.hold(identity_id):
            if identity_id in self._status or not self._registry.sessions_for(identity_id):
                return None
            return await self._transition_logged(identity_id, PresenceStatus.ONLINE)

    async def on_disconnect(self, identity_id: UUID) -> RealtimeEvent | None:
        async with self._locks.hold(identity_id):
            if identity_id not in self._status or self._registry.sessions_for(identity_id):
                return None
            return await self._transition_logged(identity_id, PresenceStatus.OFFLINE)

    async def set_status(self, identity_id: UUID, status: PresenceStatus) -> RealtimeEvent | None:
        """Explicit online/away switch requested by a connected client."""
        if status == PresenceStatus.OFFLINE:
            raise ValidationError("Status must be online or away")
        async with self._locks.hold(identity_id):
            if not self._registry.sessions_for(identity_id):
                return None
            if self._status.get(identity_id) == status:
                return None
            return await self._transition(identity_id, status)

    async def _transition_logged(self, identity_id: UUID, status: PresenceStatus) -> RealtimeEvent | None:
        # connection lifecycle must not fail on a presence write
        try:
            return await self._transition(identity_id, status)
        except Exception:
            logger.exception("Failed to persist presence %s for %s", status, identity_id)
            return None

    async def _transition(self, identity_id: UUID, status: PresenceStatus) -> RealtimeEvent:
        now = self._clock.now()
        async with self._uow_factory() as uow:
            await uow.identities_w.update_presence(identity_id, status.value, now)
            await uow.commit()

        if status == PresenceStatus.OFFLINE:
            self._status.pop(identity_id, None)
        else:
            self._status[identity_id] = status
        logger.info("Presence %s -> %s", identity_id, status)
        return _presence_event(identity_id, status, now)


def _presence_event(identity_id: UUID, status: PresenceStatus, at: datetime) -> RealtimeEvent:
    return RealtimeEvent(
        type="presence:status",
        data={
            "identity_id": str(identity_id),
            "status": status.value,
            "last_seen": at.isoformat(),
        },
        delivery=DeliveryMode.BROADCAST_GLOBAL,
        exclude_identity_id=identity_id,
    )
