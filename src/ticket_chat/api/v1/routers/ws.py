from __future__ import annotations

import asyncio
import logging
import uuid

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PayloadError

from ticket_chat.api.middleware.correlation_id import correlation_id_ctx
from ticket_chat.application.exceptions import AuthenticationError
from ticket_chat.config import settings
from ticket_chat.domain.value_objects.enums import ChatErrorType
from ticket_chat.infrastructure.ws.manager import ConnectionManager
from ticket_chat.infrastructure.ws.protocol import WsInbound, WsOutbound
from ticket_chat.services.chat_gateway import ChatConnection, ChatGateway

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

WS_CLOSE_AUTH_FAILED = 4001


def _bearer(header: str | None) -> str | None:
    if header and header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


@router.websocket("/ws/tickets/chat")
async def ws_ticket_chat(
    websocket: WebSocket,
    token: str | None = Query(None),
) -> None:
    gateway: ChatGateway = websocket.app.state.gateway
    manager: ConnectionManager = websocket.app.state.ws_manager

    credential = token or _bearer(websocket.headers.get("authorization"))
    try:
        principal = await gateway.authenticate(credential)
    except AuthenticationError as exc:
        await websocket.close(code=WS_CLOSE_AUTH_FAILED, reason=exc.detail)
        return

    connection_id = uuid.uuid4().hex
    cid_token = correlation_id_ctx.set(connection_id)
    await websocket.accept()
    manager.attach(connection_id, websocket)
    conn = await gateway.open_connection(principal, connection_id)

    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name=f"ws-heartbeat-{connection_id}",
    )
    try:
        await _read_loop(websocket, gateway, conn)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for user=%s", principal.id)
    finally:
        heartbeat_task.cancel()
        await gateway.disconnect(conn)
        manager.detach(connection_id)
        correlation_id_ctx.reset(cid_token)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(WsOutbound(type="pong", data={}).model_dump_json())
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _read_loop(ws: WebSocket, gateway: ChatGateway, conn: ChatConnection) -> None:
    # One event at a time: a connection's handlers never interleave.
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except PayloadError:
            await ws.send_text(
                WsOutbound(
                    type="error",
                    data={
                        "type": ChatErrorType.VALIDATION_ERROR.value,
                        "message": "Invalid payload",
                    },
                ).model_dump_json()
            )
            continue

        if msg.type == "ping":
            await ws.send_text(WsOutbound(type="pong", data={}).model_dump_json())
            continue

        response = await gateway.dispatch(conn, msg.type, msg.data)
        if msg.ack is not None and response is not None:
            await ws.send_text(
                WsOutbound(type="ack", data={"ack": msg.ack, **response}).model_dump_json()
            )
