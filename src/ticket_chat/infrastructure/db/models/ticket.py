"""Read-only mappings of the ticket / goods-receipt / dispatch chain.

Only ``TicketModel.last_message_at`` is ever written by this service.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, String, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from ticket_chat.infrastructure.db.base import Base


class DispatchModel(Base):
    __tablename__ = "dispatches"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    dispatch_number: Mapped[str] = mapped_column("dispatchNumber", String, nullable=False)
    vendor_id: Mapped[str] = mapped_column(
        "vendorId", String, ForeignKey("vendor_profiles.id"), nullable=False,
    )


class GoodsReceiptNoteModel(Base):
    __tablename__ = "goods_receipt_notes"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    grn_number: Mapped[str] = mapped_column("grnNumber", String, nullable=False)
    dispatch_id: Mapped[str] = mapped_column(
        "dispatchId", String, ForeignKey("dispatches.id"), nullable=False,
    )
    verified_by_id: Mapped[str | None] = mapped_column(
        "verifiedById", String, ForeignKey("users.id"), nullable=True,
    )


class TicketModel(Base):
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    ticket_number: Mapped[str] = mapped_column("ticketNumber", String, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="OPEN")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="MEDIUM")
    goods_receipt_note_id: Mapped[str | None] = mapped_column(
        "goodsReceiptNoteId", String, ForeignKey("goods_receipt_notes.id"), nullable=True,
    )
    created_by_id: Mapped[str] = mapped_column(
        "createdById", String, ForeignKey("users.id"), nullable=False,
    )
    assignee_id: Mapped[str | None] = mapped_column(
        "assigneeId", String, ForeignKey("users.id"), nullable=True,
    )
    last_message_at: Mapped[datetime | None] = mapped_column(
        "lastMessageAt", TIMESTAMP(precision=3), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        "createdAt",
        TIMESTAMP(precision=3),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
