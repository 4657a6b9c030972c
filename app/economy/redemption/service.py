from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.campaigns import Campaign
from app.db.models.qr_codes import QRCode
from app.db.models.redemption_history import RedemptionHistory
from app.db.models.vouchers import Voucher
from app.db.repo.campaigns_repo import CampaignsRepo
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.qr_codes_repo import QRCodesRepo
from app.db.repo.redemption_history_repo import RedemptionHistoryRepo
from app.db.repo.users_repo import UsersRepo, display_name
from app.db.repo.vouchers_repo import VouchersRepo
from app.economy.redemption.errors import (
    RedemptionAlreadyRedeemedError,
    RedemptionCampaignInactiveError,
    RedemptionExpiredError,
    RedemptionNotFoundError,
    RedemptionValidationError,
)
from app.economy.redemption.rewards import (
    load_reward_config,
    price_selection,
    resolve_voucher_eligible_ids,
)
from app.economy.redemption.types import (
    EligibleProductView,
    ProductSelection,
    RedemptionPreview,
    RedemptionReceipt,
)

logger = structlog.get_logger(__name__)


def normalize_code(code: str) -> str:
    normalized = (code or "").strip()
    if not normalized:
        raise RedemptionValidationError("EMPTY_CODE")
    return normalized


def ensure_redeemable(
    *,
    expiry_date: datetime | None,
    is_redeemed: bool,
    campaign: Campaign | None,
    now_utc: datetime,
) -> Campaign:
    if campaign is None:
        raise RedemptionNotFoundError
    # Expiry wins over the redeemed flag so stale codes always report as expired.
    if expiry_date is not None and now_utc > expiry_date:
        raise RedemptionExpiredError
    if is_redeemed:
        raise RedemptionAlreadyRedeemedError
    if not campaign.is_active or not (campaign.start_date <= now_utc <= campaign.end_date):
        raise RedemptionCampaignInactiveError
    return campaign


def authoritative_qr_points(qr_code: QRCode, campaign: Campaign) -> int:
    if qr_code.points > 0:
        return int(qr_code.points)
    return int(campaign.points_per_scan or 0)


async def _eligible_product_views(
    session: AsyncSession,
    product_ids: frozenset[int] | list[int],
) -> tuple[EligibleProductView, ...]:
    products = await ProductsRepo.list_by_ids(session, product_ids, active_only=True)
    return tuple(
        EligibleProductView(
            id=product.id,
            name=product.name,
            description=product.description,
            category=product.category,
            brand=product.brand,
            retail_price=product.retail_price,
        )
        for product in products
    )


async def _voucher_preview_product_ids(
    session: AsyncSession,
    *,
    voucher: Voucher,
    campaign: Campaign,
) -> frozenset[int]:
    if campaign.reward_type == "free_product":
        rewards = await CampaignsRepo.list_free_product_rewards(session, campaign_id=campaign.id)
        return frozenset(reward.product_id for reward in rewards)
    # Previews never fail on an unreadable legacy list; they show no products instead.
    return await resolve_voucher_eligible_ids(session, voucher=voucher, strict=False)


class RedemptionService:
    @staticmethod
    async def _preview_voucher(
        session: AsyncSession,
        *,
        code: str,
        voucher: Voucher,
        now_utc: datetime,
    ) -> RedemptionPreview:
        campaign = ensure_redeemable(
            expiry_date=voucher.expiry_date,
            is_redeemed=voucher.is_redeemed,
            campaign=await CampaignsRepo.get_by_id(session, voucher.campaign_id),
            now_utc=now_utc,
        )
        reseller = await UsersRepo.get_by_id(session, voucher.reseller_id)
        product_ids = await _voucher_preview_product_ids(
            session,
            voucher=voucher,
            campaign=campaign,
        )
        return RedemptionPreview(
            kind="voucher",
            code=code,
            voucher_code=voucher.voucher_code,
            value=voucher.value,
            points_required=voucher.points_required,
            reseller_id=voucher.reseller_id,
            reseller_name=display_name(reseller),
            campaign_id=campaign.id,
            campaign_name=campaign.name,
            reward_type=campaign.reward_type,
            expiry_date=voucher.expiry_date,
            eligible_products=await _eligible_product_views(session, product_ids),
        )

    @staticmethod
    async def _preview_qr_code(
        session: AsyncSession,
        *,
        code: str,
        qr_code: QRCode,
        now_utc: datetime,
    ) -> RedemptionPreview:
        campaign = ensure_redeemable(
            expiry_date=qr_code.expiry_date,
            is_redeemed=qr_code.is_redeemed,
            campaign=await CampaignsRepo.get_by_id(session, qr_code.campaign_id),
            now_utc=now_utc,
        )
        reseller = (
            await UsersRepo.get_by_id(session, qr_code.reseller_id)
            if qr_code.reseller_id is not None
            else None
        )
        eligible = await CampaignsRepo.list_eligible_products(session, campaign_id=campaign.id)
        return RedemptionPreview(
            kind="qr_code",
            code=code,
            voucher_code=None,
            value=None,
            points_required=authoritative_qr_points(qr_code, campaign),
            reseller_id=qr_code.reseller_id,
            reseller_name=display_name(reseller),
            campaign_id=campaign.id,
            campaign_name=campaign.name,
            reward_type=campaign.reward_type,
            expiry_date=qr_code.expiry_date,
            eligible_products=await _eligible_product_views(
                session,
                [row.product_id for row in eligible],
            ),
        )

    @staticmethod
    async def validate(
        session: AsyncSession,
        *,
        code: str,
        now_utc: datetime | None = None,
    ) -> RedemptionPreview:
        now_utc = now_utc or datetime.now(timezone.utc)
        normalized = normalize_code(code)

        voucher = await VouchersRepo.get_by_code(session, normalized)
        if voucher is not None:
            return await RedemptionService._preview_voucher(
                session,
                code=normalized,
                voucher=voucher,
                now_utc=now_utc,
            )

        qr_code = await QRCodesRepo.get_by_code(session, normalized)
        if qr_code is not None:
            return await RedemptionService._preview_qr_code(
                session,
                code=normalized,
                qr_code=qr_code,
                now_utc=now_utc,
            )

        raise RedemptionNotFoundError

    @staticmethod
    async def redeem(
        session: AsyncSession,
        *,
        code: str,
        actor_id: int,
        selection: ProductSelection,
        notes: str | None = None,
        now_utc: datetime | None = None,
    ) -> RedemptionReceipt:
        now_utc = now_utc or datetime.now(timezone.utc)
        normalized = normalize_code(code)

        voucher = await VouchersRepo.get_by_code_for_update(session, normalized)
        if voucher is None:
            if await QRCodesRepo.get_by_code(session, normalized) is not None:
                raise RedemptionValidationError("NOT_A_VOUCHER")
            raise RedemptionNotFoundError

        campaign = ensure_redeemable(
            expiry_date=voucher.expiry_date,
            is_redeemed=voucher.is_redeemed,
            campaign=await CampaignsRepo.get_by_id(session, voucher.campaign_id),
            now_utc=now_utc,
        )
        reward = await load_reward_config(session, campaign=campaign, voucher=voucher)
        priced = await price_selection(session, reward=reward, selection=selection)
        if reward.capped_by_voucher_value and priced.value > voucher.value:
            raise RedemptionValidationError("VALUE_EXCEEDS_VOUCHER")

        flipped = await VouchersRepo.mark_redeemed(
            session,
            voucher_id=voucher.id,
            shopkeeper_id=actor_id,
            now_utc=now_utc,
        )
        if not flipped:
            raise RedemptionAlreadyRedeemedError

        entry = await RedemptionHistoryRepo.create(
            session,
            entry=RedemptionHistory(
                user_id=actor_id,
                reseller_id=voucher.reseller_id,
                shopkeeper_id=actor_id,
                campaign_id=campaign.id,
                voucher_id=voucher.id,
                qr_code_id=None,
                code=voucher.voucher_code,
                points=voucher.points_required,
                redeemed_products=[dict(line) for line in priced.products],
                redemption_value=priced.value,
                redemption_type=reward.redemption_type,
                notes=notes,
                redeemed_at=now_utc,
            ),
        )
        logger.info(
            "voucher_redeemed",
            voucher_id=voucher.id,
            campaign_id=campaign.id,
            shopkeeper_id=actor_id,
            redemption_type=reward.redemption_type,
            redeemed_value=str(priced.value),
        )
        return RedemptionReceipt(
            history_id=entry.id,
            code=normalized,
            voucher_code=voucher.voucher_code,
            redemption_type=reward.redemption_type,
            redeemed_value=priced.value,
            redeemed_products=priced.products,
            redeemed_at=now_utc,
        )
