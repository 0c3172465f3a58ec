from __future__ import annotations

from uuid import UUID

from chat_realtime.application.exceptions import AuthorizationError, NotFoundError
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.value_objects.container import ContainerRef
from chat_realtime.domain.value_objects.enums import ContainerKind


async def resolve_container(container_id: UUID, uow: UnitOfWork) -> ContainerRef:
    """Resolve an id to a conversation, falling back to a room."""
    conversation = await uow.conversations.get_by_id(container_id)
    if conversation is not None:
        return ContainerRef(ContainerKind.CONVERSATION, conversation.id)

    room = await uow.rooms.get_by_id(container_id)
    if room is not None:
        return ContainerRef(ContainerKind.ROOM, room.id)

    raise NotFoundError("Conversation or room not found")


async def assert_container_access(
    identity_id: UUID,
    container: ContainerRef,
    uow: UnitOfWork,
) -> ContainerRef:
    """Raise if the identity is not a participant/member of the container."""
    if container.kind == ContainerKind.CONVERSATION:
        allowed = await uow.participants.is_participant(container.id, identity_id)
        if not allowed:
            raise AuthorizationError("Not a participant of this conversation")
    else:
        allowed = await uow.rooms.is_member(container.id, identity_id)
        if not allowed:
            raise AuthorizationError("Not a member of this room")
    return container
