from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ReceiptLink:
    """Goods receipt note linked to a ticket, flattened down to the vendor user."""

    verified_by_id: str | None
    vendor_user_id: str | None


@dataclass(frozen=True, slots=True)
class TicketAccess:
    ticket_id: str
    created_by_id: str
    assignee_id: str | None
    receipt: ReceiptLink | None = None


@dataclass(frozen=True, slots=True)
class TicketSummary:
    id: str
    ticket_number: str
    title: str
    status: str
    priority: str


@dataclass(frozen=True, slots=True)
class Participant:
    id: str
    name: str
    email: str | None
    role: str
    type: str
    company_name: str | None = None
