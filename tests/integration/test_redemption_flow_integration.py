from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.db.models.points_history import PointsHistory
from app.db.models.vouchers import Voucher
from app.db.session import SessionLocal
from app.economy.points.campaign_points import CampaignPointsLedger
from app.economy.points.errors import InsufficientBalanceError
from app.economy.points.service import PointsLedger
from app.economy.redemption.errors import RedemptionExpiredError, RedemptionValidationError
from app.economy.redemption.qr_earn import redeem_qr_code
from app.economy.redemption.reports import RedemptionReports
from app.economy.redemption.service import RedemptionService
from app.economy.redemption.types import CatalogSelection
from app.economy.vouchers.service import VoucherIssuanceService
from tests.integration.redemption_fixtures import (
    UTC,
    _add_campaign_product,
    _create_campaign,
    _create_product,
    _create_qr_code,
    _create_user,
    _create_voucher,
)


async def test_issued_restricted_voucher_redeems_only_eligible_products() -> None:
    now_utc = datetime.now(UTC)
    manufacturer_id = await _create_user("manufacturer")
    reseller_id = await _create_user("reseller", business_name="Ravi Traders")
    shopkeeper_id = await _create_user("shopkeeper")
    campaign_id = await _create_campaign(
        manufacturer_id=manufacturer_id,
        now_utc=now_utc,
        reward_type="voucher_restricted",
    )
    rasgulla = await _create_product(name="Rasgulla", retail_price="120.00")
    ladoo = await _create_product(name="Ladoo", retail_price="80.00")
    barfi = await _create_product(name="Barfi", retail_price="60.00")

    async with SessionLocal.begin() as session:
        await CampaignPointsLedger.credit(
            session,
            campaign_id=campaign_id,
            reseller_id=reseller_id,
            amount=150,
            reason="order",
            order_value=Decimal("1500.00"),
            now_utc=now_utc,
        )
        issued = await VoucherIssuanceService.issue_voucher(
            session,
            reseller_id=reseller_id,
            campaign_id=campaign_id,
            value=Decimal("250.00"),
            points_required=100,
            eligible_product_ids=[rasgulla, ladoo],
            now_utc=now_utc,
        )
    assert issued.available_points_after == 50

    async with SessionLocal.begin() as session:
        preview = await RedemptionService.validate(session, code=issued.qr_code, now_utc=now_utc)
    assert preview.reseller_name == "Ravi Traders"
    assert {product.id for product in preview.eligible_products} == {rasgulla, ladoo}

    with pytest.raises(RedemptionValidationError):
        async with SessionLocal.begin() as session:
            await RedemptionService.redeem(
                session,
                code=issued.voucher_code,
                actor_id=shopkeeper_id,
                selection=CatalogSelection(product_ids=(rasgulla, barfi)),
                now_utc=now_utc,
            )

    async with SessionLocal.begin() as session:
        receipt = await RedemptionService.redeem(
            session,
            code=issued.voucher_code,
            actor_id=shopkeeper_id,
            selection=CatalogSelection(product_ids=(rasgulla, ladoo)),
            notes="counter 1",
            now_utc=now_utc,
        )
    assert receipt.redeemed_value == Decimal("200.00")

    async with SessionLocal.begin() as session:
        stats = await RedemptionReports.shopkeeper_statistics(
            session,
            shopkeeper_id=shopkeeper_id,
            now_utc=now_utc,
        )
        top = await RedemptionReports.shopkeeper_top_products(
            session,
            shopkeeper_id=shopkeeper_id,
            limit=5,
        )
        reseller_items = await RedemptionReports.reseller_history(session, reseller_id=reseller_id)
        stored = await session.get(Voucher, issued.voucher_id)

    assert stats.total_redemptions == 1
    assert stats.today_value == Decimal("200.00")
    assert {item.name for item in top} == {"Rasgulla", "Ladoo"}
    assert [item.notes for item in reseller_items] == ["counter 1"]
    assert stored is not None and stored.is_redeemed is True


async def test_expired_voucher_stays_unredeemed() -> None:
    now_utc = datetime.now(UTC)
    manufacturer_id = await _create_user("manufacturer")
    reseller_id = await _create_user("reseller")
    campaign_id = await _create_campaign(manufacturer_id=manufacturer_id, now_utc=now_utc)
    voucher = await _create_voucher(
        reseller_id=reseller_id,
        campaign_id=campaign_id,
        now_utc=now_utc,
        expiry_date=now_utc - timedelta(minutes=5),
    )

    with pytest.raises(RedemptionExpiredError):
        async with SessionLocal.begin() as session:
            await RedemptionService.validate(session, code=voucher.voucher_code, now_utc=now_utc)


async def test_qr_scan_credits_points_and_balance_matches_history() -> None:
    now_utc = datetime.now(UTC)
    manufacturer_id = await _create_user("manufacturer")
    customer_id = await _create_user("customer")
    campaign_id = await _create_campaign(
        manufacturer_id=manufacturer_id,
        now_utc=now_utc,
        points_per_scan=25,
    )
    product_id = await _create_product(name="Peda", retail_price="40.00")
    await _add_campaign_product(campaign_id=campaign_id, product_id=product_id)
    first = await _create_qr_code(campaign_id=campaign_id, now_utc=now_utc)
    second = await _create_qr_code(campaign_id=campaign_id, now_utc=now_utc, points=40)

    async with SessionLocal.begin() as session:
        preview = await RedemptionService.validate(session, code=first.code, now_utc=now_utc)
    assert [product.id for product in preview.eligible_products] == [product_id]

    async with SessionLocal.begin() as session:
        await redeem_qr_code(session, code=first.code, customer_id=customer_id, now_utc=now_utc)
    async with SessionLocal.begin() as session:
        receipt = await redeem_qr_code(
            session,
            code=second.code,
            customer_id=customer_id,
            claimed_points=40,
            now_utc=now_utc,
        )
    assert receipt.balance_after == 65

    with pytest.raises(InsufficientBalanceError):
        async with SessionLocal.begin() as session:
            await PointsLedger.debit(session, user_id=customer_id, amount=66, reason="reward")

    async with SessionLocal.begin() as session:
        await PointsLedger.debit(session, user_id=customer_id, amount=15, reason="reward")

    async with SessionLocal.begin() as session:
        balance = await PointsLedger.balance(session, user_id=customer_id)
        history_sum = await session.scalar(
            select(func.coalesce(func.sum(PointsHistory.delta), 0)).where(
                PointsHistory.user_id == customer_id
            )
        )
    assert balance == 50
    assert history_sum == balance
