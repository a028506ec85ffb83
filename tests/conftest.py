"""Shared test fixtures."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

import pytest

from ticket_chat.application.dto.principal import Principal
from ticket_chat.domain.entities.message import ChatMessage
from ticket_chat.domain.entities.ticket import ReceiptLink, TicketAccess, TicketSummary
from ticket_chat.domain.entities.user import UserProfile
from ticket_chat.domain.value_objects.enums import MessageType, Role

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

TICKET_ID = "ticket-1"
CREATOR_ID = "user-creator"
ASSIGNEE_ID = "user-assignee"
VENDOR_ID = "user-vendor"
VERIFIER_ID = "user-verifier"
OUTSIDER_ID = "user-outsider"
ADMIN_ID = "user-admin"
ACCOUNTS_ID = "user-accounts"


def make_user(
    user_id: str,
    *,
    roles: Iterable[str] = (),
    name: str | None = None,
    company_name: str | None = None,
) -> UserProfile:
    return UserProfile(
        id=user_id,
        name=name or user_id.replace("user-", "").title(),
        email=f"{user_id}@example.com",
        roles=tuple(roles),
        company_name=company_name,
    )


def make_ticket(
    *,
    ticket_id: str = TICKET_ID,
    created_by: str = CREATOR_ID,
    assignee: str | None = ASSIGNEE_ID,
    receipt: ReceiptLink | None = None,
) -> TicketAccess:
    return TicketAccess(
        ticket_id=ticket_id,
        created_by_id=created_by,
        assignee_id=assignee,
        receipt=receipt,
    )


def make_message(
    *,
    ticket_id: str = TICKET_ID,
    sender_id: str = CREATOR_ID,
    text: str | None = "hello",
    created_at: datetime | None = None,
) -> ChatMessage:
    return ChatMessage(
        id=uuid.uuid4().hex,
        ticket_id=ticket_id,
        sender_id=sender_id,
        text=text,
        message_type=MessageType.TEXT.value,
        created_at=created_at or T0,
    )


def make_history(count: int, *, ticket_id: str = TICKET_ID) -> list[ChatMessage]:
    return [
        make_message(
            ticket_id=ticket_id,
            text=f"message {i}",
            created_at=T0 + timedelta(seconds=i),
        )
        for i in range(1, count + 1)
    ]


class FixedClock:
    def __init__(self, now: datetime = T0) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now


class FakeVerifier:
    """Accepts ``token-<user id>``; anything else is rejected."""

    async def verify(self, token: str) -> Principal:
        if not token.startswith("token-"):
            raise ValueError("bad token")
        return Principal(id=token.removeprefix("token-"))


@dataclass
class FakeTicketReader:
    _access: dict[str, TicketAccess] = field(default_factory=dict)
    _summaries: dict[str, TicketSummary] = field(default_factory=dict)
    fail: bool = False

    def add(self, ticket: TicketAccess) -> None:
        self._access[ticket.ticket_id] = ticket
        self._summaries[ticket.ticket_id] = TicketSummary(
            id=ticket.ticket_id,
            ticket_number=f"TKT-{ticket.ticket_id}",
            title="Damaged goods",
            status="OPEN",
            priority="HIGH",
        )

    async def get_access(self, ticket_id: str) -> TicketAccess | None:
        if self.fail:
            raise ConnectionError("db down")
        return self._access.get(ticket_id)

    async def get_summary(self, ticket_id: str) -> TicketSummary | None:
        return self._summaries.get(ticket_id)


@dataclass
class FakeTicketWriter:
    touched: dict[str, datetime] = field(default_factory=dict)

    async def touch_last_message_at(self, ticket_id: str, ts: datetime) -> None:
        self.touched[ticket_id] = ts


@dataclass
class FakeUserReader:
    _profiles: dict[str, UserProfile] = field(default_factory=dict)

    def add(self, *profiles: UserProfile) -> None:
        for p in profiles:
            self._profiles[p.id] = p

    async def get_profile(self, user_id: str) -> UserProfile | None:
        return self._profiles.get(user_id)

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
        return {uid: self._profiles[uid] for uid in user_ids if uid in self._profiles}


@dataclass
class FakeMessageReader:
    _messages: list[ChatMessage] = field(default_factory=list)

    async def list_recent(
        self,
        ticket_id: str,
        *,
        offset: int = 0,
        limit: int = 50,
    ) -> list[ChatMessage]:
        rows = sorted(
            (m for m in self._messages if m.ticket_id == ticket_id),
            key=lambda m: m.created_at,
            reverse=True,
        )
        return rows[offset:offset + limit]

    async def count(self, ticket_id: str) -> int:
        return sum(1 for m in self._messages if m.ticket_id == ticket_id)


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    fail_with: Exception | None = None

    async def append(self, message: ChatMessage) -> ChatMessage:
        if self.fail_with is not None:
            raise self.fail_with
        self._reader._messages.append(message)
        return message


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests. Also usable as its own factory."""
    tickets: FakeTicketReader = field(default_factory=FakeTicketReader)
    tickets_w: FakeTicketWriter = field(default_factory=FakeTicketWriter)
    users: FakeUserReader = field(default_factory=FakeUserReader)
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    _committed: bool = False
    _rolled_back: bool = False

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)

    def __call__(self) -> FakeUoW:
        return self

    async def __aenter__(self) -> FakeUoW:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        self._rolled_back = True


@dataclass
class RecordingFanout:
    """In-memory ``TopicFanout`` that records every delivery in order."""
    _topics: dict[str, set[str]] = field(default_factory=dict)
    deliveries: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)

    def subscribe(self, connection_id: str, topic: str) -> None:
        self._topics.setdefault(topic, set()).add(connection_id)

    def unsubscribe(self, connection_id: str, topic: str) -> None:
        subs = self._topics.get(topic)
        if subs is not None:
            subs.discard(connection_id)
            if not subs:
                del self._topics[topic]

    def unsubscribe_all(self, connection_id: str) -> None:
        for topic in list(self._topics):
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
        for cid in sorted(self._topics.get(topic, ())):
            if cid not in exclude:
                self.deliveries.append((cid, event, data))

    async def send(self, connection_id: str, event: str, data: dict[str, Any]) -> None:
        self.deliveries.append((connection_id, event, data))

    def events(self, connection_id: str) -> list[str]:
        return [e for cid, e, _ in self.deliveries if cid == connection_id]

    def payloads(self, connection_id: str, event: str) -> list[dict[str, Any]]:
        return [d for cid, e, d in self.deliveries if cid == connection_id and e == event]

    def clear(self) -> None:
        self.deliveries.clear()


@pytest.fixture
def uow() -> FakeUoW:
    """A ticket with a creator (OPS), an assignee, a vendor and a verifier."""
    uow = FakeUoW()
    uow.tickets.add(
        make_ticket(receipt=ReceiptLink(verified_by_id=VERIFIER_ID, vendor_user_id=VENDOR_ID)),
    )
    uow.users.add(
        make_user(CREATOR_ID, roles=[Role.OPS]),
        make_user(ASSIGNEE_ID),
        make_user(VENDOR_ID, roles=[Role.VENDOR], company_name="Green Farms"),
        make_user(VERIFIER_ID, roles=[Role.OPS]),
        make_user(OUTSIDER_ID),
        make_user(ADMIN_ID, roles=[Role.ADMIN]),
        make_user(ACCOUNTS_ID, roles=[Role.ACCOUNTS]),
    )
    return uow


@pytest.fixture
def fanout() -> RecordingFanout:
    return RecordingFanout()
