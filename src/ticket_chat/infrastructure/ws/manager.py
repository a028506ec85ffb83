"""In-process WebSocket connection manager."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import WebSocket

from ticket_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Holds this instance's sockets and their topic subscriptions.

    Implements ``TopicFanout`` for a single process.
    """

    def __init__(self) -> None:
        self._sockets: dict[str, WebSocket] = {}
        self._topics: dict[str, set[str]] = {}
        self._by_connection: dict[str, set[str]] = {}

    def attach(self, connection_id: str, ws: WebSocket) -> None:
        self._sockets[connection_id] = ws
        logger.debug("WS attached: %s (total=%d)", connection_id, len(self._sockets))

    def detach(self, connection_id: str) -> None:
        self.unsubscribe_all(connection_id)
        self._sockets.pop(connection_id, None)
        logger.debug("WS detached: %s", connection_id)

    def subscribe(self, connection_id: str, topic: str) -> None:
        self._topics.setdefault(topic, set()).add(connection_id)
        self._by_connection.setdefault(connection_id, set()).add(topic)

    def unsubscribe(self, connection_id: str, topic: str) -> None:
        subs = self._topics.get(topic)
        if subs is not None:
            subs.discard(connection_id)
            if not subs:
                del self._topics[topic]
        topics = self._by_connection.get(connection_id)
        if topics is not None:
            topics.discard(topic)
            if not topics:
                del self._by_connection[connection_id]

    def unsubscribe_all(self, connection_id: str) -> None:
        for topic in list(self._by_connection.get(connection_id, ())):
            self.unsubscribe(connection_id, topic)

    def is_subscribed(self, connection_id: str, topic: str) -> bool:
        return connection_id in self._topics.get(topic, ())

    async def publish(
        self,
        topic: str,
        event: str,
        data: dict[str, Any],
        *,
        exclude: frozenset[str] = frozenset(),
    ) -> None:
        """Send an event to every local connection subscribed to ``topic``."""
        raw = WsOutbound(type=event, data=data).model_dump_json()
        targets = [cid for cid in self._topics.get(topic, ()) if cid not in exclude]
        for cid in targets:
            await self._send_raw(cid, raw)

    async def send(self, connection_id: str, event: str, data: dict[str, Any]) -> None:
        raw = WsOutbound(type=event, data=data).model_dump_json()
        await self._send_raw(connection_id, raw)

    async def _send_raw(self, connection_id: str, raw: str) -> None:
        ws = self._sockets.get(connection_id)
        if ws is None:
            return
        try:
            await ws.send_text(raw)
        except Exception:
            # The read loop notices the dead socket and runs the gateway disconnect.
            logger.debug("WS send failed, dropping %s", connection_id, exc_info=True)
            self._sockets.pop(connection_id, None)
