"""Handlers for inbound WebSocket actions, keyed by event type.

Each handler validates its payload, runs the service call in its own unit of
work and returns the events to deliver. Errors propagate to the hub, which
turns them into an ``error`` frame for the calling session.
"""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from chat_realtime.api.v1.schemas.conversation import conversation_payload
from chat_realtime.api.v1.schemas.message import message_payload, reactions_payload
from chat_realtime.application.dto.events import DeliveryMode, RealtimeEvent
from chat_realtime.application.exceptions import AuthorizationError
from chat_realtime.application.policies.permissions import resolve_container
from chat_realtime.application.uow import UnitOfWork
from chat_realtime.domain.value_objects.container import ContainerRef
from chat_realtime.domain.value_objects.enums import ContainerKind
from chat_realtime.infrastructure.ws.hub import (
    ActionContext,
    ActionHandler,
    room_membership_event,
)
from chat_realtime.infrastructure.ws.protocol import (
    ContainerPayload,
    EditMessagePayload,
    MarkReadPayload,
    MessageRefPayload,
    OpenConversationPayload,
    ReactPayload,
    SendMessagePayload,
    StatusPayload,
    parse_payload,
)
from chat_realtime.services import (
    conversation_service,
    message_service,
    read_state_service,
)

logger = logging.getLogger(__name__)

ACTIONS: dict[str, ActionHandler] = {}


def action(event_type: str):
    def register(handler: ActionHandler) -> ActionHandler:
        ACTIONS[event_type] = handler
        return handler
    return register


def _reply(ctx: ActionContext, event_type: str, data: dict[str, Any]) -> RealtimeEvent:
    return RealtimeEvent(
        type=event_type,
        data=data,
        delivery=DeliveryMode.UNICAST_SENDER,
        origin_session_id=ctx.session_id,
    )


def _to_channel(ctx: ActionContext, event_type: str, container_id: UUID, data: dict[str, Any]) -> RealtimeEvent:
    """Everyone in the channel, the acting session included."""
    return RealtimeEvent(
        type=event_type,
        data=data,
        delivery=DeliveryMode.BROADCAST_ALL,
        container_id=container_id,
        origin_session_id=ctx.session_id,
    )


def _to_others(ctx: ActionContext, event_type: str, container_id: UUID, data: dict[str, Any]) -> RealtimeEvent:
    return RealtimeEvent(
        type=event_type,
        data=data,
        delivery=DeliveryMode.CHANNEL_EXCLUDING_SENDER,
        container_id=container_id,
        origin_session_id=ctx.session_id,
        exclude_identity_id=ctx.identity_id,
    )


async def _container(ctx: ActionContext, container_id: UUID, uow: UnitOfWork) -> ContainerRef:
    joined = ctx.channels.container_for(ctx.session_id, container_id)
    if joined is not None:
        return joined
    return await resolve_container(container_id, uow)


def _identity_still_in(ctx: ActionContext, container_id: UUID) -> bool:
    """True if another session of the acting identity is subscribed to the container."""
    others = ctx.registry.sessions_for(ctx.identity_id) - {ctx.session_id}
    return bool(ctx.channels.subscribers(container_id) & others)


# ---- channels ----


@action("channel:join")
async def join_channel(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    payload = parse_payload(ContainerPayload, data)
    rejoin = ctx.channels.container_for(ctx.session_id, payload.container_id) is not None
    async with ctx.uow_factory() as uow:
        container = await ctx.channels.join(ctx.session_id, payload.container_id, uow)

    events = [
        _reply(ctx, "channel:joined", {
            "container_id": str(container.id),
            "container_kind": container.kind.value,
        }),
    ]
    # only the identity's first session in the room is announced
    if (
        container.kind == ContainerKind.ROOM
        and not rejoin
        and not _identity_still_in(ctx, container.id)
    ):
        events.append(room_membership_event("room:user-joined", ctx.identity_id, container.id))
    return events


@action("channel:leave")
async def leave_channel(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    payload = parse_payload(ContainerPayload, data)
    container = ctx.channels.leave(ctx.session_id, payload.container_id)

    events = [_reply(ctx, "channel:left", {"container_id": str(payload.container_id)})]
    if (
        container is not None
        and container.kind == ContainerKind.ROOM
        and not _identity_still_in(ctx, container.id)
    ):
        events.append(room_membership_event("room:user-left", ctx.identity_id, container.id))
    return events


# ---- messages ----


@action("message:send")
async def send_message(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    payload = parse_payload(SendMessagePayload, data)
    async with ctx.uow_factory() as uow:
        container = await _container(ctx, payload.container_id, uow)
        msg = await message_service.create_message(
            ctx.identity_id,
            container,
            payload.content,
            payload.type,
            uow,
            reply_to=payload.reply_to,
            attachment=payload.attachment(),
        )

    return [
        _to_channel(ctx, "message:new", container.id, {
            "container_id": str(container.id),
            "message": message_payload(msg),
        }),
    ]


@action("message:edit")
async def edit_message(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    payload = parse_payload(EditMessagePayload, data)
    async with ctx.uow_factory() as uow:
        msg = await message_service.edit_message(
            payload.message_id, ctx.identity_id, payload.content, uow,
        )

    return [
        _to_channel(ctx, "message:edited", msg.container.id, {
            "container_id": str(msg.container.id),
            "message": message_payload(msg),
        }),
    ]


@action("message:delete")
async def delete_message(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    payload = parse_payload(MessageRefPayload, data)
    async with ctx.uow_factory() as uow:
        msg = await message_service.delete_message(payload.message_id, ctx.identity_id, uow)

    return [
        _to_channel(ctx, "message:deleted", msg.container.id, {
            "container_id": str(msg.container.id),
            "message_id": str(msg.id),
            "content": msg.content,
            "deleted_at": msg.deleted_at.isoformat() if msg.deleted_at else None,
        }),
    ]


@action("message:react")
async def react(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    payload = parse_payload(ReactPayload, data)
    async with ctx.uow_factory() as uow:
        msg = await message_service.toggle_reaction(
            payload.message_id, ctx.identity_id, payload.emoji, uow,
        )

    return [
        _to_channel(ctx, "message:reacted", msg.container.id, {
            "container_id": str(msg.container.id),
            "message_id": str(msg.id),
            "reactions": reactions_payload(msg),
        }),
    ]


@action("messages:read")
async def mark_read(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    """Tell the others which messages just gained a receipt; nothing if none did."""
    payload = parse_payload(MarkReadPayload, data)
    async with ctx.uow_factory() as uow:
        container = await _container(ctx, payload.container_id, uow)
        receipted = await read_state_service.mark_read(
            container, ctx.identity_id, payload.message_ids, uow,
        )

    if not receipted:
        return []
    return [
        _to_others(ctx, "messages:read", container.id, {
            "container_id": str(container.id),
            "message_ids": [str(mid) for mid in receipted],
            "read_by": str(ctx.identity_id),
        }),
    ]


# ---- typing ----


async def _typing(ctx: ActionContext, data: dict[str, Any], event_type: str) -> list[RealtimeEvent]:
    payload = parse_payload(ContainerPayload, data)
    if ctx.channels.container_for(ctx.session_id, payload.container_id) is None:
        raise AuthorizationError("Join the channel before sending typing updates")
    return [
        _to_others(ctx, event_type, payload.container_id, {
            "container_id": str(payload.container_id),
            "identity_id": str(ctx.identity_id),
        }),
    ]


@action("typing:start")
async def typing_start(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    return await _typing(ctx, data, "typing:user")


@action("typing:stop")
async def typing_stop(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    return await _typing(ctx, data, "typing:stopped")


# ---- presence ----


@action("presence:update")
async def update_presence(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    payload = parse_payload(StatusPayload, data)
    event = await ctx.presence.set_status(ctx.identity_id, payload.status)
    return [event] if event is not None else []


@action("users:online")
async def list_online(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    online = sorted(ctx.registry.online_identities(), key=str)
    return [
        _reply(ctx, "users:online-list", {
            "identity_ids": [str(identity_id) for identity_id in online],
            "statuses": {str(i): ctx.presence.status_of(i).value for i in online},
        }),
    ]


# ---- conversations ----


@action("conversation:open")
async def open_conversation(ctx: ActionContext, data: dict[str, Any]) -> list[RealtimeEvent]:
    payload = parse_payload(OpenConversationPayload, data)
    async with ctx.uow_factory() as uow:
        conv, created = await conversation_service.get_or_create_direct_conversation(
            ctx.identity_id, payload.participant_id, uow,
        )

    body = conversation_payload(conv)
    events = [_reply(ctx, "conversation:opened", {"conversation": body, "created": created})]
    if created:
        logger.info("Direct conversation %s created by %s", conv.id, ctx.identity_id)
        events.append(
            RealtimeEvent(
                type="conversation:new",
                data={"conversation": body},
                delivery=DeliveryMode.IDENTITIES,
                target_identity_ids=(payload.participant_id,),
            )
        )
    return events
