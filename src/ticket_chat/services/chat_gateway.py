"""Real-time ticket chat: connection lifecycle, rooms, messages, typing.

The gateway is transport-agnostic. It sees connections only through their
ids and reaches them through a ``TopicFanout``; the WebSocket router feeds it
inbound events one at a time per connection.

Every privileged action (join, send, typing) re-evaluates chat access, since
ticket assignment and roles can change while a socket is open. Failures of
in-room actions are reported to the originating connection only and never
close it; only authentication failures are fatal.
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import ValidationError as PayloadError

from ticket_chat.application.dto.message import SendMessageDTO
from ticket_chat.application.dto.principal import Principal
from ticket_chat.application.exceptions import (
    AuthenticationError,
    PersistenceError,
    ValidationError,
)
from ticket_chat.application.policies.permissions import has_chat_access
from ticket_chat.application.ports.auth import TokenVerifier
from ticket_chat.application.ports.clock import Clock, SystemClock
from ticket_chat.application.ports.fanout import TopicFanout
from ticket_chat.application.uow import UnitOfWork
from ticket_chat.domain.entities.message import ChatMessage
from ticket_chat.domain.value_objects.enums import ChatErrorType
from ticket_chat.domain.value_objects.ids import ticket_topic, user_topic
from ticket_chat.infrastructure.ws.protocol import (
    SendMessagePayload,
    TicketRef,
    history_to_wire,
    message_to_wire,
)
from ticket_chat.services import chat_service
from ticket_chat.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)

UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]

SEND_FAILED = "Failed to send message"


@dataclass(eq=False, slots=True)
class ChatConnection:
    connection_id: str
    principal: Principal
    joined_rooms: set[str] = field(default_factory=set)

    @property
    def principal_id(self) -> str:
        return self.principal.id


class ChatGateway:
    def __init__(
        self,
        fanout: TopicFanout,
        verifier: TokenVerifier,
        uow_factory: UoWFactory,
        *,
        clock: Clock | None = None,
        history_limit: int = 50,
        max_message_length: int = 5000,
    ) -> None:
        self._fanout = fanout
        self._verifier = verifier
        self._uow_factory = uow_factory
        self._clock = clock or SystemClock()
        self._history_limit = history_limit
        self._max_message_length = max_message_length
        self._registry = PresenceRegistry()
        # Sends to one room are persisted and broadcast one at a time.
        self._send_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def registry(self) -> PresenceRegistry:
        return self._registry

    # -- connection lifecycle --------------------------------------------

    async def authenticate(self, credential: str | None) -> Principal:
        """Verify the handshake credential. Touches no gateway state."""
        if not credential:
            logger.warning("Chat connection rejected: no token provided")
            raise AuthenticationError("Authentication token required")
        try:
            return await self._verifier.verify(credential)
        except Exception as exc:
            logger.warning("Chat authentication failed: %s", exc)
            raise AuthenticationError("Invalid or expired token") from exc

    async def open_connection(self, principal: Principal, connection_id: str) -> ChatConnection:
        conn = ChatConnection(connection_id=connection_id, principal=principal)
        self._registry.register_connection(principal.id, connection_id)
        self._fanout.subscribe(connection_id, user_topic(principal.id))
        logger.info("Client connected user=%s connection=%s", principal.id, connection_id)

        await self._fanout.send(
            connection_id,
            "connected",
            {"userId": principal.id, "message": "Connected to ticket chat server"},
        )
        return conn

    async def disconnect(self, conn: ChatConnection) -> None:
        for ticket_id in sorted(conn.joined_rooms):
            await self._leave_room(conn, ticket_id)
        self._fanout.unsubscribe_all(conn.connection_id)
        offline = self._registry.unregister_connection(conn.principal_id, conn.connection_id)
        logger.info(
            "Client disconnected user=%s connection=%s offline=%s",
            conn.principal_id, conn.connection_id, offline,
        )

    def shutdown(self) -> None:
        self._registry.clear()
        self._send_locks.clear()

    # -- inbound events --------------------------------------------------

    async def dispatch(
        self,
        conn: ChatConnection,
        event: str,
        data: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Route one inbound event. Returns the callback response for ``send_message``."""
        if event == "send_message":
            return await self.send_message(conn, data)

        if event not in ("join_ticket", "leave_ticket", "typing_start", "typing_stop"):
            await self._emit_error(conn, ChatErrorType.VALIDATION_ERROR, f"Unknown event: {event}")
            return None

        try:
            ticket_id = TicketRef.model_validate(data).ticket_id
        except PayloadError:
            if not event.startswith("typing"):
                await self._emit_error(conn, ChatErrorType.VALIDATION_ERROR, "ticketId is required")
            return None

        if event == "join_ticket":
            await self.join_ticket(conn, ticket_id)
        elif event == "leave_ticket":
            await self.leave_ticket(conn, ticket_id)
        else:
            await self.typing(conn, ticket_id, is_typing=event == "typing_start")
        return None

    async def join_ticket(self, conn: ChatConnection, ticket_id: str) -> bool:
        try:
            async with self._uow_factory() as uow:
                if not await has_chat_access(ticket_id, conn.principal_id, uow):
                    logger.warning(
                        "Access denied for ticket room user=%s ticket=%s",
                        conn.principal_id, ticket_id,
                    )
                    await self._emit_error(
                        conn,
                        ChatErrorType.ACCESS_DENIED,
                        "You do not have access to this ticket",
                    )
                    return False

                topic = ticket_topic(ticket_id)
                self._fanout.subscribe(conn.connection_id, topic)
                conn.joined_rooms.add(ticket_id)
                arrived = self._registry.join_room(ticket_id, conn.principal_id, conn.connection_id)
                if arrived:
                    await self._fanout.publish(
                        topic,
                        "user_joined",
                        self._presence_payload(conn, ticket_id),
                        exclude=frozenset({conn.connection_id}),
                    )
                logger.info(
                    "User joined ticket room user=%s ticket=%s connection=%s",
                    conn.principal_id, ticket_id, conn.connection_id,
                )

                await self._fanout.send(
                    conn.connection_id,
                    "joined_ticket",
                    {"ticketId": ticket_id, "message": "Successfully joined ticket chat"},
                )
                history = await chat_service.list_history(ticket_id, 1, self._history_limit, uow)
            await self._fanout.send(conn.connection_id, "messages_history", history_to_wire(history))
            return True
        except Exception:
            logger.exception(
                "Error joining ticket room user=%s ticket=%s", conn.principal_id, ticket_id,
            )
            await self._emit_error(conn, ChatErrorType.JOIN_ERROR, "Failed to join ticket chat")
            return False

    async def leave_ticket(self, conn: ChatConnection, ticket_id: str) -> None:
        await self._leave_room(conn, ticket_id)
        await self._fanout.send(
            conn.connection_id,
            "left_ticket",
            {"ticketId": ticket_id, "message": "Left ticket chat"},
        )

    async def send_message(self, conn: ChatConnection, data: dict[str, Any]) -> dict[str, Any]:
        try:
            dto = SendMessagePayload.model_validate(data).to_dto()
            chat_service.validate_message(dto, max_length=self._max_message_length)
        except PayloadError:
            return await self._reject(conn, ChatErrorType.VALIDATION_ERROR, "Invalid message payload")
        except ValidationError as exc:
            return await self._reject(conn, ChatErrorType.VALIDATION_ERROR, exc.detail)

        ticket_id = dto.ticket_id
        try:
            async with self._uow_factory() as uow:
                allowed = await has_chat_access(ticket_id, conn.principal_id, uow)
            if not allowed:
                logger.warning(
                    "Send denied user=%s ticket=%s", conn.principal_id, ticket_id,
                )
                return await self._reject(
                    conn, ChatErrorType.ACCESS_DENIED, "Access denied to this ticket",
                )

            if ticket_id not in conn.joined_rooms:
                await self.join_ticket(conn, ticket_id)
                # A failed history load still leaves the room subscribed.
                if ticket_id not in conn.joined_rooms:
                    return {"success": False, "error": SEND_FAILED}

            async with self._uow_factory() as uow:
                message = await self.post_message(dto, conn.principal_id, uow)
        except PersistenceError as exc:
            logger.error(
                "Error sending message user=%s ticket=%s: %s",
                conn.principal_id, ticket_id, exc.__cause__ or exc,
            )
            return await self._reject(conn, ChatErrorType.SEND_ERROR, SEND_FAILED)
        except Exception:
            logger.exception(
                "Error sending message user=%s ticket=%s", conn.principal_id, ticket_id,
            )
            return await self._reject(conn, ChatErrorType.SEND_ERROR, SEND_FAILED)

        logger.info(
            "Message sent id=%s ticket=%s user=%s", message.id, ticket_id, conn.principal_id,
        )
        return {"success": True}

    async def post_message(
        self,
        dto: SendMessageDTO,
        sender_id: str,
        uow: UnitOfWork,
    ) -> ChatMessage:
        """Persist a message and broadcast ``new_message`` to its room.

        Shared by the socket and REST send paths. Both steps run under the
        room's lock, so subscribers see messages in commit order. Access and
        payload checks are the caller's job.
        """
        async with self._room_lock(dto.ticket_id):
            message = await chat_service.send_message(dto, sender_id, uow, self._clock)
            await self._fanout.publish(
                ticket_topic(dto.ticket_id),
                "new_message",
                {
                    "message": message_to_wire(message),
                    "ticketId": dto.ticket_id,
                    "timestamp": self._timestamp(),
                },
            )
        return message

    async def typing(self, conn: ChatConnection, ticket_id: str, *, is_typing: bool) -> None:
        """Relay a typing indicator to the other participants. Never errors to the sender."""
        try:
            async with self._uow_factory() as uow:
                if not await has_chat_access(ticket_id, conn.principal_id, uow):
                    return
                # Looked up per event so a renamed user shows up immediately.
                user = await uow.users.get_profile(conn.principal_id)
            if user is None:
                return

            exclude = frozenset(self._registry.connections_of(conn.principal_id))
            await self._fanout.publish(
                ticket_topic(ticket_id),
                "user_typing" if is_typing else "user_stopped_typing",
                {
                    "userId": conn.principal_id,
                    "userName": user.name,
                    "ticketId": ticket_id,
                    "timestamp": self._timestamp(),
                },
                exclude=exclude | {conn.connection_id},
            )
        except Exception:
            logger.exception(
                "Error handling typing indicator user=%s ticket=%s",
                conn.principal_id, ticket_id,
            )

    # -- outbound helpers ------------------------------------------------

    async def notify_principal(self, principal_id: str, event: str, data: dict[str, Any]) -> None:
        """Deliver an event to every live connection of one principal."""
        await self._fanout.publish(user_topic(principal_id), event, data)

    def active_users(self, ticket_id: str) -> list[str]:
        return sorted(self._registry.subscribers_of(ticket_id))

    def is_user_connected(self, principal_id: str) -> bool:
        return self._registry.is_connected(principal_id)

    # -- internals -------------------------------------------------------

    async def _leave_room(self, conn: ChatConnection, ticket_id: str) -> None:
        topic = ticket_topic(ticket_id)
        self._fanout.unsubscribe(conn.connection_id, topic)
        conn.joined_rooms.discard(ticket_id)
        gone = self._registry.leave_room(ticket_id, conn.principal_id, conn.connection_id)
        if not gone:
            return
        try:
            await self._fanout.publish(topic, "user_left", self._presence_payload(conn, ticket_id))
        except Exception:
            logger.exception(
                "Error leaving ticket room user=%s ticket=%s", conn.principal_id, ticket_id,
            )
            return
        logger.info("User left ticket room user=%s ticket=%s", conn.principal_id, ticket_id)

    def _room_lock(self, ticket_id: str) -> asyncio.Lock:
        lock = self._send_locks.get(ticket_id)
        if lock is None:
            lock = asyncio.Lock()
            self._send_locks[ticket_id] = lock
        return lock

    def _presence_payload(self, conn: ChatConnection, ticket_id: str) -> dict[str, Any]:
        return {
            "userId": conn.principal_id,
            "ticketId": ticket_id,
            "timestamp": self._timestamp(),
        }

    def _timestamp(self) -> str:
        return self._clock.now().isoformat()

    async def _emit_error(self, conn: ChatConnection, error_type: ChatErrorType, message: str) -> None:
        await self._fanout.send(
            conn.connection_id, "error", {"type": error_type.value, "message": message},
        )

    async def _reject(
        self,
        conn: ChatConnection,
        error_type: ChatErrorType,
        message: str,
    ) -> dict[str, Any]:
        await self._emit_error(conn, error_type, message)
        return {"success": False, "error": message}
