from __future__ import annotations

from typing import Any, Protocol


class TopicFanout(Protocol):
    """Topic-based delivery of outbound events to live connections.

    The gateway only talks to connections through this port, so the same core
    runs over in-process WebSockets or a cross-instance Redis channel.
    """

    def subscribe(self, connection_id: str, topic: str) -> None: ...

    def unsubscribe(self, connection_id: str, topic: str) -> None: ...

    def unsubscribe_all(self, connection_id: str) -> None: ...

    def is_subscribed(self, connection_id: str, topic: str) -> bool: ...

    async def publish(
        self,
        topic: str,
        event: str,
        data: dict[str, Any],
        *,
        exclude: frozenset[str] = frozenset(),
    ) -> None: ...

    async def send(self, connection_id: str, event: str, data: dict[str, Any]) -> None: ...
