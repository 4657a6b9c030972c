from __future__ import annotations

import asyncio
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select

from app.db.models.redemption_history import RedemptionHistory
from app.db.models.vouchers import Voucher
from app.db.session import SessionLocal
from app.economy.redemption.errors import RedemptionAlreadyRedeemedError
from app.economy.redemption.service import RedemptionService
from app.economy.redemption.types import ItemizedItem, ItemizedSelection
from tests.integration.redemption_fixtures import (
    UTC,
    _create_campaign,
    _create_user,
    _create_voucher,
)


async def test_parallel_voucher_redeem_allows_only_one_redemption() -> None:
    now_utc = datetime.now(UTC)
    manufacturer_id = await _create_user("manufacturer")
    reseller_id = await _create_user("reseller")
    shopkeeper_ids = [await _create_user("shopkeeper") for _ in range(4)]
    campaign_id = await _create_campaign(manufacturer_id=manufacturer_id, now_utc=now_utc)
    voucher = await _create_voucher(reseller_id=reseller_id, campaign_id=campaign_id, now_utc=now_utc)
    barrier = asyncio.Event()
    selection = ItemizedSelection(items=(ItemizedItem(name="Rasgulla", value=Decimal("120.00")),))

    async def _attempt(shopkeeper_id: int) -> str:
        await barrier.wait()
        try:
            async with SessionLocal.begin() as session:
                await RedemptionService.redeem(
                    session,
                    code=voucher.voucher_code,
                    actor_id=shopkeeper_id,
                    selection=selection,
                    now_utc=now_utc,
                )
            return "redeemed"
        except RedemptionAlreadyRedeemedError:
            return "already_redeemed"

    tasks = [asyncio.create_task(_attempt(shopkeeper_id)) for shopkeeper_id in shopkeeper_ids]
    barrier.set()
    outcomes = await asyncio.gather(*tasks)

    assert sorted(outcomes) == ["already_redeemed"] * 3 + ["redeemed"]

    async with SessionLocal.begin() as session:
        history_count = await session.scalar(
            select(func.count(RedemptionHistory.id)).where(RedemptionHistory.voucher_id == voucher.id)
        )
        stored = await session.get(Voucher, voucher.id)
        assert history_count == 1
        assert stored is not None
        assert stored.is_redeemed is True
        assert stored.redeemed_by_shopkeeper_id in shopkeeper_ids
