"""Import all models so Base.metadata knows every table."""
from ticket_chat.infrastructure.db.models.chat import TicketChatModel
from ticket_chat.infrastructure.db.models.ticket import (
    DispatchModel,
    GoodsReceiptNoteModel,
    TicketModel,
)
from ticket_chat.infrastructure.db.models.user import (
    RoleModel,
    UserModel,
    UserRoleModel,
    VendorProfileModel,
)

__all__ = [
    "DispatchModel",
    "GoodsReceiptNoteModel",
    "RoleModel",
    "TicketChatModel",
    "TicketModel",
    "UserModel",
    "UserRoleModel",
    "VendorProfileModel",
]
