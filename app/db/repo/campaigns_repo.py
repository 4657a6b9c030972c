from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.campaign_eligible_products import CampaignEligibleProduct
from app.db.models.campaign_free_product_rewards import CampaignFreeProductReward
from app.db.models.campaigns import Campaign


class CampaignsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, campaign_id: int) -> Campaign | None:
        return await session.get(Campaign, campaign_id)

    @staticmethod
    async def list_eligible_products(
        session: AsyncSession,
        *,
        campaign_id: int,
        active_only: bool = True,
    ) -> list[CampaignEligibleProduct]:
        stmt = (
            select(CampaignEligibleProduct)
            .where(CampaignEligibleProduct.campaign_id == campaign_id)
            .order_by(CampaignEligibleProduct.product_id.asc())
        )
        if active_only:
            stmt = stmt.where(CampaignEligibleProduct.is_active.is_(True))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_free_product_rewards(
        session: AsyncSession,
        *,
        campaign_id: int,
    ) -> list[CampaignFreeProductReward]:
        stmt = (
            select(CampaignFreeProductReward)
            .where(
                CampaignFreeProductReward.campaign_id == campaign_id,
                CampaignFreeProductReward.is_active.is_(True),
            )
            .order_by(CampaignFreeProductReward.product_id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def list_running_threshold_campaign_ids(
        session: AsyncSession,
        *,
        now_utc: datetime,
    ) -> list[int]:
        stmt = (
            select(Campaign.id)
            .where(
                Campaign.is_active.is_(True),
                Campaign.start_date <= now_utc,
                Campaign.end_date >= now_utc,
                Campaign.voucher_generation_threshold.is_not(None),
                Campaign.voucher_value.is_not(None),
            )
            .order_by(Campaign.id.asc())
        )
        result = await session.execute(stmt)
        return [int(campaign_id) for campaign_id in result.scalars().all()]
