from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ticket_chat.domain.entities.user import UserProfile
from ticket_chat.infrastructure.db.models.user import (
    RoleModel,
    UserModel,
    UserRoleModel,
    VendorProfileModel,
)


class UserReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_profile(self, user_id: str) -> UserProfile | None:
        profiles = await self.get_profiles([user_id])
        return profiles.get(user_id)

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
        ids = set(user_ids)
        if not ids:
            return {}

        user_stmt = (
            select(UserModel.id, UserModel.name, UserModel.email, VendorProfileModel.company_name)
            .outerjoin(VendorProfileModel, VendorProfileModel.user_id == UserModel.id)
            .where(UserModel.id.in_(ids), UserModel.deleted_at.is_(None))
        )
        users = (await self._session.execute(user_stmt)).all()
        if not users:
            return {}

        role_stmt = (
            select(UserRoleModel.user_id, RoleModel.name)
            .join(RoleModel, RoleModel.id == UserRoleModel.role_id)
            .where(UserRoleModel.user_id.in_(ids))
            .order_by(UserRoleModel.assigned_at.asc())
        )
        roles: dict[str, list[str]] = defaultdict(list)
        for uid, role_name in (await self._session.execute(role_stmt)).all():
            roles[uid].append(role_name)

        return {
            uid: UserProfile(
                id=uid,
                name=name,
                email=email,
                roles=tuple(roles.get(uid, ())),
                company_name=company_name,
            )
            for uid, name, email, company_name in users
        }
