from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.users import User


class UsersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: int) -> User | None:
        return await session.get(User, user_id)

    @staticmethod
    async def get_active_with_role(
        session: AsyncSession,
        user_id: int,
        *,
        role: str,
    ) -> User | None:
        stmt = select(User).where(
            User.id == user_id,
            User.role == role,
            User.status == "ACTIVE",
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


def display_name(user: User | None) -> str | None:
    """Business name for resellers and shops, personal name otherwise."""
    if user is None:
        return None
    return user.business_name or user.name
