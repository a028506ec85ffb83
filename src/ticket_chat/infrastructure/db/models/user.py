"""Read-only mappings of the OMS identity tables (owned by the auth module)."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import ForeignKey, String, text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from ticket_chat.infrastructure.db.base import Base


class UserModel(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(
        "deletedAt", TIMESTAMP(precision=3), nullable=True,
    )


class RoleModel(Base):
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)


class UserRoleModel(Base):
    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(
        "userId", String, ForeignKey("users.id"), primary_key=True,
    )
    role_id: Mapped[str] = mapped_column(
        "roleId", String, ForeignKey("roles.id"), primary_key=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(
        "assignedAt",
        TIMESTAMP(precision=3),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )


class VendorProfileModel(Base):
    __tablename__ = "vendor_profiles"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(
        "userId", String, ForeignKey("users.id"), nullable=False, unique=True,
    )
    company_name: Mapped[str] = mapped_column("companyName", String(255), nullable=False)
