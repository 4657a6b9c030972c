from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.campaign_points import CampaignPoints
from app.db.models.campaign_points_history import CampaignPointsHistory


class CampaignPointsRepo:
    @staticmethod
    async def get(
        session: AsyncSession,
        *,
        campaign_id: int,
        reseller_id: int,
    ) -> CampaignPoints | None:
        stmt = select(CampaignPoints).where(
            CampaignPoints.campaign_id == campaign_id,
            CampaignPoints.reseller_id == reseller_id,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_for_update(
        session: AsyncSession,
        *,
        campaign_id: int,
        reseller_id: int,
    ) -> CampaignPoints | None:
        stmt = (
            select(CampaignPoints)
            .where(
                CampaignPoints.campaign_id == campaign_id,
                CampaignPoints.reseller_id == reseller_id,
            )
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def ensure_for_update(
        session: AsyncSession,
        *,
        campaign_id: int,
        reseller_id: int,
        now_utc: datetime,
    ) -> CampaignPoints:
        stmt = (
            postgresql_insert(CampaignPoints)
            .values(
                campaign_id=campaign_id,
                reseller_id=reseller_id,
                total_points_earned=0,
                points_used_for_vouchers=0,
                available_points=0,
                total_order_value=0,
                total_orders=0,
                total_vouchers_generated=0,
                total_voucher_value_generated=0,
                created_at=now_utc,
            )
            .on_conflict_do_nothing(
                index_elements=[CampaignPoints.campaign_id, CampaignPoints.reseller_id]
            )
        )
        await session.execute(stmt)
        row = await CampaignPointsRepo.get_for_update(
            session,
            campaign_id=campaign_id,
            reseller_id=reseller_id,
        )
        if row is None:
            raise ValueError("campaign points row missing after upsert")
        return row

    @staticmethod
    async def list_reseller_ids_at_threshold(
        session: AsyncSession,
        *,
        campaign_id: int,
        threshold: int,
        limit: int = 500,
    ) -> list[int]:
        stmt = (
            select(CampaignPoints.reseller_id)
            .where(
                CampaignPoints.campaign_id == campaign_id,
                CampaignPoints.available_points >= threshold,
            )
            .order_by(CampaignPoints.reseller_id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [int(reseller_id) for reseller_id in result.scalars().all()]

    @staticmethod
    async def get_history_by_idempotency_key(
        session: AsyncSession, idempotency_key: str
    ) -> CampaignPointsHistory | None:
        stmt = select(CampaignPointsHistory).where(
            CampaignPointsHistory.idempotency_key == idempotency_key
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create_history(
        session: AsyncSession, *, entry: CampaignPointsHistory
    ) -> CampaignPointsHistory:
        session.add(entry)
        await session.flush()
        return entry
