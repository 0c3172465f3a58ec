from __future__ import annotations

from typing import Protocol

from chat_realtime.application.dto.events import RealtimeEvent


class EventPublisher(Protocol):
    async def publish(self, channel: str, event: RealtimeEvent) -> None: ...
