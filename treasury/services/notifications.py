from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

logger = logging.getLogger(__name__)

SubscriberKey = Tuple[int, int]


class NotificationCenter:
    """Registry of live WebSocket subscribers keyed by ``(user_id, organization_id)``.

    Sockets are registered by :meth:`connect` and removed by :meth:`disconnect`
    or automatically the first time a send to them fails.
    """

    def __init__(self) -> None:
        self._connections: Dict[SubscriberKey, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def configure_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        logger.debug("NotificationCenter bound to event loop %s", loop)

    def subscriber_count(self, organization_id: Optional[int] = None) -> int:
        return sum(
            len(sockets)
            for (_, org_id), sockets in self._connections.items()
            if organization_id is None or org_id == organization_id
        )

    async def connect(self, user_id: int, organization_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections[(user_id, organization_id)].add(websocket)
        logger.debug("WebSocket connected for user %s in organization %s", user_id, organization_id)

    async def disconnect(self, user_id: int, organization_id: int, websocket: WebSocket) -> None:
        key = (user_id, organization_id)
        async with self._lock:
            connections = self._connections.get(key)
            if connections is not None:
                connections.discard(websocket)
                if not connections:
                    self._connections.pop(key, None)
        logger.debug("WebSocket disconnected for user %s in organization %s", user_id, organization_id)

    async def _send(self, key: SubscriberKey, websocket: WebSocket, payload: dict) -> None:
        if websocket.application_state != WebSocketState.CONNECTED:
            await self.disconnect(key[0], key[1], websocket)
            return
        try:
            await websocket.send_json(payload)
        except Exception:
            logger.warning("Dropping notification subscriber for user %s after failed send", key[0])
            await self.disconnect(key[0], key[1], websocket)

    async def publish_to_organization(self, organization_id: int, payload: dict) -> int:
        async with self._lock:
            targets: List[Tuple[SubscriberKey, WebSocket]] = [
                (key, websocket)
                for key, sockets in self._connections.items()
                if key[1] == organization_id
                for websocket in sockets
            ]
        for key, websocket in targets:
            await self._send(key, websocket, payload)
        return len(targets)

    def _ensure_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if not self._loop or self._loop.is_closed():
            logger.debug("NotificationCenter loop not configured; skipping dispatch.")
            return None
        return self._loop

    def dispatch(self, organization_id: int, event_type: str, data: Dict[str, Any]) -> None:
        """Schedule an event for the organization's subscribers from synchronous code."""
        loop = self._ensure_loop()
        if not loop:
            return
        payload = {
            "type": event_type,
            "organization_id": organization_id,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        asyncio.run_coroutine_threadsafe(self.publish_to_organization(organization_id, payload), loop)

    async def shutdown(self) -> None:
        async with self._lock:
            connections = list(self._connections.items())
            self._connections.clear()
        self._loop = None
        for _, websockets in connections:
            for websocket in websockets:
                if websocket.application_state == WebSocketState.CONNECTED:
                    try:
                        await websocket.close()
                    except RuntimeError:
                        continue


notification_center = NotificationCenter()


async def notification_websocket_handler(user_id: int, organization_id: int, websocket: WebSocket) -> None:
    await notification_center.connect(user_id, organization_id, websocket)
    try:
        await websocket.send_json({"type": "connected", "organization_id": organization_id})
        while True:
            try:
                await websocket.receive_text()
            except WebSocketDisconnect:
                break
    finally:
        await notification_center.disconnect(user_id, organization_id, websocket)
