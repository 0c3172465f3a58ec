from __future__ import annotations

from enum import StrEnum


class PresenceStatus(StrEnum):
    ONLINE = "online"
    AWAY = "away"
    OFFLINE = "offline"


class ContainerKind(StrEnum):
    CONVERSATION = "conversation"
    ROOM = "room"


class MessageType(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


class MessageState(StrEnum):
    ACTIVE = "active"
    EDITED = "edited"
    DELETED = "deleted"
