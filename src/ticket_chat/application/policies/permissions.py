from __future__ import annotations

import logging

from ticket_chat.application.exceptions import AccessDeniedError
from ticket_chat.application.uow import UnitOfWork
from ticket_chat.domain.entities.ticket import TicketAccess
from ticket_chat.domain.entities.user import UserProfile
from ticket_chat.domain.value_objects.enums import Role

logger = logging.getLogger(__name__)


def _grants(ticket: TicketAccess, user: UserProfile) -> bool:
    if user.has_role(Role.ADMIN):
        return True
    if ticket.created_by_id == user.id:
        return True
    if ticket.assignee_id is not None and ticket.assignee_id == user.id:
        return True

    receipt = ticket.receipt
    if receipt is not None:
        if receipt.vendor_user_id is not None and receipt.vendor_user_id == user.id:
            return True
        if user.has_role(Role.OPS) and receipt.verified_by_id == user.id:
            return True

    # Accounts sees every ticket chat (payment and invoice disputes).
    return user.has_role(Role.ACCOUNTS)


async def has_chat_access(ticket_id: str, principal_id: str, uow: UnitOfWork) -> bool:
    """Whether ``principal_id`` may read and write the chat of ``ticket_id``.

    Roles and ticket relationships are read from the store on every call.
    Missing records and lookup failures deny.
    """
    try:
        ticket = await uow.tickets.get_access(ticket_id)
        if ticket is None:
            return False
        user = await uow.users.get_profile(principal_id)
        if user is None:
            return False
    except Exception:
        logger.exception(
            "Chat access lookup failed ticket=%s principal=%s", ticket_id, principal_id,
        )
        return False
    return _grants(ticket, user)


async def assert_chat_access(ticket_id: str, principal_id: str, uow: UnitOfWork) -> None:
    if not await has_chat_access(ticket_id, principal_id, uow):
        raise AccessDeniedError("Access denied to this ticket")
