from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.redemption_history import RedemptionHistory


class RedemptionHistoryRepo:
    @staticmethod
    async def create(session: AsyncSession, *, entry: RedemptionHistory) -> RedemptionHistory:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def get_by_voucher_id(
        session: AsyncSession, voucher_id: int
    ) -> RedemptionHistory | None:
        stmt = select(RedemptionHistory).where(RedemptionHistory.voucher_id == voucher_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_qr_code_id(
        session: AsyncSession, qr_code_id: int
    ) -> RedemptionHistory | None:
        stmt = select(RedemptionHistory).where(RedemptionHistory.qr_code_id == qr_code_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_shopkeeper(
        session: AsyncSession,
        *,
        shopkeeper_id: int,
        limit: int = 100,
    ) -> list[RedemptionHistory]:
        stmt = (
            select(RedemptionHistory)
            .where(RedemptionHistory.shopkeeper_id == shopkeeper_id)
            .order_by(RedemptionHistory.redeemed_at.desc(), RedemptionHistory.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_for_reseller(
        session: AsyncSession,
        *,
        reseller_id: int,
        limit: int = 100,
    ) -> list[RedemptionHistory]:
        stmt = (
            select(RedemptionHistory)
            .where(RedemptionHistory.reseller_id == reseller_id)
            .order_by(RedemptionHistory.redeemed_at.desc(), RedemptionHistory.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def aggregate_for_shopkeeper(
        session: AsyncSession,
        *,
        shopkeeper_id: int,
        since_utc: datetime | None = None,
    ) -> tuple[int, Decimal]:
        stmt = select(
            func.count(RedemptionHistory.id),
            func.coalesce(func.sum(RedemptionHistory.redemption_value), 0),
        ).where(RedemptionHistory.shopkeeper_id == shopkeeper_id)
        if since_utc is not None:
            stmt = stmt.where(RedemptionHistory.redeemed_at >= since_utc)
        result = await session.execute(stmt)
        count, total = result.one()
        return int(count or 0), Decimal(total or 0)

    @staticmethod
    async def list_redeemed_products_for_shopkeeper(
        session: AsyncSession,
        *,
        shopkeeper_id: int,
        since_utc: datetime,
        limit: int = 5000,
    ) -> list[list[dict[str, object]]]:
        stmt = (
            select(RedemptionHistory.redeemed_products)
            .where(
                RedemptionHistory.shopkeeper_id == shopkeeper_id,
                RedemptionHistory.redeemed_at >= since_utc,
            )
            .order_by(RedemptionHistory.redeemed_at.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [list(products or []) for products in result.scalars().all()]
