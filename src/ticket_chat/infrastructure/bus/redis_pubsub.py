"""Cross-instance fan-out over Redis Pub/Sub."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import redis.asyncio as aioredis

from ticket_chat.infrastructure.bus.serializer import (
    FanoutEnvelope,
    deserialize_envelope,
    serialize_envelope,
)
from ticket_chat.infrastructure.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)


class RedisFanout:
    """``TopicFanout`` that relays topic publishes through a Redis channel.

    Subscriptions and direct sends stay local; every instance (this one
    included) receives the relayed publish and delivers it to its own sockets.
    Connection ids are unique per process, so ``exclude`` is safe to relay.
    """

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        local: ConnectionManager,
        *,
        retry_delay: float = 5.0,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._local = local
        self._retry_delay = retry_delay
        self._task: asyncio.Task[None] | None = None

    def subscribe(self, connection_id: str, topic: str) -> None:
        self._local.subscribe(connection_id, topic)

    def unsubscribe(self, connection_id: str, topic: str) -> None:
        self._local.unsubscribe(connection_id, topic)

    def unsubscribe_all(self, connection_id: str) -> None:
        self._local.unsubscribe_all(connection_id)

    def is_subscribed(self, connection_id: str, topic: str) -> bool:
        return self._local.is_subscribed(connection_id, topic)

    async def send(self, connection_id: str, event: str, data: dict[str, Any]) -> None:
        await self._local.send(connection_id, event, data)

    async def publish(
        self,
        topic: str,
        event: str,
        data: dict[str, Any],
        *,
        exclude: frozenset[str] = frozenset(),
    ) -> None:
        raw = serialize_envelope(FanoutEnvelope(topic=topic, event=event, data=data, exclude=exclude))
        await self._redis.publish(self._channel, raw)

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-fanout-subscriber")
        logger.info("Redis fan-out subscriber started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Redis fan-out subscriber stopped")

    async def _listen(self) -> None:
        # Resubscribes after a dropped connection; publishes sent meanwhile are lost.
        while True:
            pubsub = self._redis.pubsub()
            try:
                await pubsub.subscribe(self._channel)
                async for message in pubsub.listen():
                    if message["type"] == "message":
                        await self._relay(message["data"])
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "Redis fan-out subscriber error, retrying in %ss", self._retry_delay,
                )
            finally:
                await self._close(pubsub)
            await asyncio.sleep(self._retry_delay)

    async def _relay(self, raw: str | bytes) -> None:
        try:
            envelope = deserialize_envelope(raw)
            await self._local.publish(
                envelope.topic,
                envelope.event,
                envelope.data,
                exclude=envelope.exclude,
            )
        except Exception:
            logger.exception("Error relaying fan-out message")

    async def _close(self, pubsub: Any) -> None:
        try:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()
        except Exception:
            logger.debug("Redis pubsub close failed", exc_info=True)
