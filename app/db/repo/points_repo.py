from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.points_balances import PointsBalance
from app.db.models.points_history import PointsHistory


class PointsRepo:
    @staticmethod
    async def get_balance(session: AsyncSession, user_id: int) -> PointsBalance | None:
        return await session.get(PointsBalance, user_id)

    @staticmethod
    async def get_balance_for_update(
        session: AsyncSession, user_id: int
    ) -> PointsBalance | None:
        stmt = select(PointsBalance).where(PointsBalance.user_id == user_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def ensure_balance_for_update(
        session: AsyncSession,
        *,
        user_id: int,
        now_utc: datetime,
    ) -> PointsBalance:
        stmt = (
            postgresql_insert(PointsBalance)
            .values(user_id=user_id, balance=0, version=0, updated_at=now_utc)
            .on_conflict_do_nothing(index_elements=[PointsBalance.user_id])
        )
        await session.execute(stmt)
        balance = await PointsRepo.get_balance_for_update(session, user_id)
        if balance is None:
            raise ValueError("points balance row missing after upsert")
        return balance

    @staticmethod
    async def get_history_by_idempotency_key(
        session: AsyncSession, idempotency_key: str
    ) -> PointsHistory | None:
        stmt = select(PointsHistory).where(PointsHistory.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create_history(session: AsyncSession, *, entry: PointsHistory) -> PointsHistory:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def list_history(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int = 50,
    ) -> list[PointsHistory]:
        stmt = (
            select(PointsHistory)
            .where(PointsHistory.user_id == user_id)
            .order_by(PointsHistory.created_at.desc(), PointsHistory.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
