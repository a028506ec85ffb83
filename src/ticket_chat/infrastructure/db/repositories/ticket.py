from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_chat.domain.entities.ticket import ReceiptLink, TicketAccess, TicketSummary
from ticket_chat.infrastructure.db.mappers.message import to_naive_utc
from ticket_chat.infrastructure.db.models.ticket import (
    DispatchModel,
    GoodsReceiptNoteModel,
    TicketModel,
)
from ticket_chat.infrastructure.db.models.user import VendorProfileModel


class TicketReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_access(self, ticket_id: str) -> TicketAccess | None:
        # ticket -> goods receipt note -> dispatch -> vendor profile -> owning user
        stmt = (
            select(
                TicketModel.id,
                TicketModel.created_by_id,
                TicketModel.assignee_id,
                TicketModel.goods_receipt_note_id,
                GoodsReceiptNoteModel.verified_by_id,
                VendorProfileModel.user_id,
            )
            .outerjoin(
                GoodsReceiptNoteModel,
                GoodsReceiptNoteModel.id == TicketModel.goods_receipt_note_id,
            )
            .outerjoin(DispatchModel, DispatchModel.id == GoodsReceiptNoteModel.dispatch_id)
            .outerjoin(VendorProfileModel, VendorProfileModel.id == DispatchModel.vendor_id)
            .where(TicketModel.id == ticket_id)
        )
        row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None

        tid, created_by_id, assignee_id, grn_id, verified_by_id, vendor_user_id = row
        receipt = None
        if grn_id is not None:
            receipt = ReceiptLink(verified_by_id=verified_by_id, vendor_user_id=vendor_user_id)
        return TicketAccess(
            ticket_id=tid,
            created_by_id=created_by_id,
            assignee_id=assignee_id,
            receipt=receipt,
        )

    async def get_summary(self, ticket_id: str) -> TicketSummary | None:
        model = await self._session.get(TicketModel, ticket_id)
        if model is None:
            return None
        return TicketSummary(
            id=model.id,
            ticket_number=model.ticket_number,
            title=model.title,
            status=model.status,
            priority=model.priority,
        )


class TicketWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def touch_last_message_at(self, ticket_id: str, ts: datetime) -> None:
        stmt = (
            update(TicketModel)
            .where(TicketModel.id == ticket_id)
            .values(last_message_at=to_naive_utc(ts))
        )
        await self._session.execute(stmt)
