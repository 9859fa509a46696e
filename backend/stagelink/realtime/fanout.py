"""In-process fan-out of notification envelopes to connected websockets."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

from ..utils.json import dumps

logger = logging.getLogger(__name__)

SEND_TIMEOUT = 10.0


@dataclass
class Envelope:
    v: int = 1
    type: str = ""
    topic: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None

    @staticmethod
    def from_raw(raw: Any) -> "Envelope":
        if isinstance(raw, dict):
            return Envelope(
                v=int(raw.get("v", 1)),
                type=str(raw.get("type") or ""),
                topic=(str(raw["topic"]) if raw.get("topic") is not None else None),
                payload=(raw.get("payload") if isinstance(raw.get("payload"), dict) else None),
            )
        return Envelope()

    def to_json(self) -> str:
        data: Dict[str, Any] = {"v": self.v, "type": (self.type or "message")}
        if self.topic is not None:
            data["topic"] = self.topic
        if self.payload is not None:
            data["payload"] = self.payload
        return dumps(data)


class NotifyFanout:
    def __init__(self) -> None:
        self.user_sockets: Dict[int, Set[WebSocket]] = {}
        # Loop that owns the sockets; pushes from worker threads are handed to it
        self.loop: Optional[asyncio.AbstractEventLoop] = None

    async def connect(self, user_id: int, ws: WebSocket) -> None:
        self.loop = asyncio.get_running_loop()
        self.user_sockets.setdefault(int(user_id), set()).add(ws)

    def disconnect(self, user_id: int, ws: WebSocket) -> None:
        conns = self.user_sockets.get(int(user_id))
        if not conns:
            return
        conns.discard(ws)
        if not conns:
            del self.user_sockets[int(user_id)]

    async def push(self, user_id: int, env: Envelope) -> int:
        """Send to every socket of the user; returns how many received it."""
        env.topic = env.topic or f"notifications:{int(user_id)}"
        delivered = 0
        for ws in list(self.user_sockets.get(int(user_id), set())):
            try:
                await asyncio.wait_for(ws.send_text(env.to_json()), timeout=SEND_TIMEOUT)
                delivered += 1
            except Exception as exc:
                logger.info("Dropping notification socket for user %s: %s", user_id, exc)
                self.disconnect(int(user_id), ws)
        return delivered


class NotificationsManager:
    """Entry point used by the dispatcher to push a persisted notification."""

    def __init__(self, fanout: NotifyFanout) -> None:
        self.fanout = fanout

    async def broadcast(self, user_id: int, message: Any) -> None:
        if isinstance(message, Envelope):
            env = message
        else:
            env = Envelope(type="notification", payload=message if isinstance(message, dict) else {"data": message})
        await self.fanout.push(int(user_id), env)


notify = NotifyFanout()
notifications_manager = NotificationsManager(notify)
