from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from chat_realtime.api.deps import authenticate, bearer_token, get_hub
from chat_realtime.api.middleware.correlation_id import correlation_id_ctx
from chat_realtime.application.exceptions import AuthError
from chat_realtime.config import settings
from chat_realtime.infrastructure.ws.hub import RealtimeHub
from chat_realtime.infrastructure.ws.protocol import WsInbound, WsOutbound
from chat_realtime.infrastructure.ws.registry import Connection

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

AUTH_FAILED_CLOSE_CODE = 4001


@router.websocket("/ws/chat")
async def ws_chat(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    hub = get_hub(websocket)
    try:
        identity_id = await authenticate(
            token or bearer_token(websocket),
            websocket.app.state.verifier,
            hub.uow_factory,
        )
    except AuthError as exc:
        logger.debug("WS auth failed: %s", exc.detail)
        await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason="Authentication failed")
        return

    await websocket.accept()
    conn = await hub.open_session(identity_id, websocket)
    cid_token = correlation_id_ctx.set(conn.session_id)

    heartbeat_task = asyncio.create_task(
        _heartbeat(conn), name=f"ws-heartbeat-{conn.session_id}",
    )
    try:
        await _read_loop(websocket, conn, hub)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for session %s", conn.session_id)
    finally:
        heartbeat_task.cancel()
        await hub.close_session(conn.session_id)
        correlation_id_ctx.reset(cid_token)


async def _heartbeat(conn: Connection) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    frame = WsOutbound(type="pong", data={}).model_dump_json()
    try:
        while True:
            await asyncio.sleep(interval)
            await conn.send_text(frame)
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped for session %s", conn.session_id, exc_info=True)


async def _read_loop(ws: WebSocket, conn: Connection, hub: RealtimeHub) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PydanticValidationError:
            await conn.send_text(
                WsOutbound(type="error", data={"code": "invalid_payload"}).model_dump_json()
            )
            continue

        if msg.type == "ping":
            await conn.send_text(WsOutbound(type="pong", data={}).model_dump_json())
            continue

        await hub.handle(conn.session_id, msg)
