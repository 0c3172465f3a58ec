from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from chat_realtime.application.dto.events import DeliveryMode, RealtimeEvent


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_event(event: RealtimeEvent) -> str:
    envelope = {
        "event": event.type,
        "data": event.data,
        "delivery": event.delivery.value,
        "container_id": event.container_id,
        "origin_session_id": event.origin_session_id,
        "exclude_identity_id": event.exclude_identity_id,
        "target_identity_ids": list(event.target_identity_ids),
    }
    return json.dumps(envelope, cls=_Encoder)


def _uuid_or_none(raw: str | None) -> UUID | None:
    return UUID(raw) if raw else None


def deserialize_event(raw: str | bytes) -> RealtimeEvent:
    data = json.loads(raw)
    return RealtimeEvent(
        type=data["event"],
        data=data["data"],
        delivery=DeliveryMode(data["delivery"]),
        container_id=_uuid_or_none(data.get("container_id")),
        origin_session_id=data.get("origin_session_id"),
        exclude_identity_id=_uuid_or_none(data.get("exclude_identity_id")),
        target_identity_ids=tuple(UUID(i) for i in data.get("target_identity_ids", ())),
    )
