# WebSocket transport for live notifications (/ws/notifications).
# Server push only; clients may send {"type": "ping"} and get a pong back.

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from starlette.exceptions import WebSocketException

from ..crud import crud_user
from ..database import get_db_session
from ..models.user import User
from ..realtime.fanout import Envelope, notify
from ..utils.json import loads
from .auth import decode_access_token

logger = logging.getLogger(__name__)
router = APIRouter()

PING_INTERVAL_DEFAULT = 30.0
PONG_TIMEOUT = 45.0
WS_4401_UNAUTHORIZED = 4401


def _extract_token(ws: WebSocket) -> Optional[str]:
    token = ws.query_params.get("token")
    if token:
        return token.strip()
    auth = ws.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip()
    return ws.cookies.get("access_token")


def _load_user(email: str) -> Optional[User]:
    with get_db_session() as db:
        user = crud_user.get_user_by_email(db, email)
        if user is not None:
            db.expunge(user)
        return user


async def _current_user_from_token(token: Optional[str]) -> Optional[User]:
    if not token:
        return None
    email = decode_access_token(token)
    if not email:
        return None
    return await run_in_threadpool(_load_user, email)


@router.websocket("/ws/notifications")
async def notifications_ws(
    websocket: WebSocket,
    heartbeat: float = Query(PING_INTERVAL_DEFAULT),
):
    user = await _current_user_from_token(_extract_token(websocket))
    if user is None or not user.is_active:
        logger.info("ws.notifications.auth_failed path=%s", websocket.url.path)
        raise WebSocketException(code=WS_4401_UNAUTHORIZED, reason="Invalid token")

    await websocket.accept()
    user_id = int(user.id)
    await notify.connect(user_id, websocket)
    logger.info("ws.notifications.connect user_id=%s", user_id)

    last_pong = time.time()

    async def ping_loop() -> None:
        while True:
            await asyncio.sleep(max(heartbeat, 1.0))
            if (time.time() - last_pong) > max(PONG_TIMEOUT, heartbeat * 2):
                await websocket.close(code=1001)
                break
            await websocket.send_text(Envelope(type="ping").to_json())

    pinger = asyncio.create_task(ping_loop())
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                env = Envelope.from_raw(loads(raw))
            except ValueError:
                continue
            if env.type == "ping":
                await websocket.send_text(Envelope(type="pong").to_json())
            elif env.type == "pong":
                last_pong = time.time()
    except WebSocketDisconnect:
        pass
    finally:
        pinger.cancel()
        notify.disconnect(user_id, websocket)
        logger.info("ws.notifications.disconnect user_id=%s", user_id)
