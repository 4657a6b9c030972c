from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.models.campaigns import Campaign
from app.db.models.vouchers import Voucher
from app.db.repo.campaign_points_repo import CampaignPointsRepo
from app.db.repo.campaigns_repo import CampaignsRepo
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.users_repo import UsersRepo
from app.db.repo.vouchers_repo import VouchersRepo
from app.economy.points.campaign_points import CampaignPointsLedger
from app.economy.redemption.eligibility import decode_eligible_product_ids_strict
from app.economy.redemption.errors import EligibilityDecodeError
from app.economy.vouchers.codes import generate_voucher_code, generate_voucher_qr_payload
from app.economy.vouchers.errors import (
    VoucherCampaignInactiveError,
    VoucherCampaignNotFoundError,
    VoucherCodeGenerationError,
    VoucherInvalidRequestError,
    VoucherResellerNotFoundError,
)
from app.economy.vouchers.types import IssuedVoucher

logger = structlog.get_logger(__name__)

CODE_GENERATION_MAX_ATTEMPTS = 10


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _validity_days(campaign: Campaign) -> int:
    if campaign.voucher_validity_days is not None and campaign.voucher_validity_days > 0:
        return int(campaign.voucher_validity_days)
    return get_settings().default_voucher_validity_days


def _resolve_eligible_ids(
    *,
    eligible_product_ids: Iterable[int] | None,
    eligible_products_raw: str | None,
) -> tuple[int, ...]:
    if eligible_product_ids is not None:
        return tuple(sorted({int(product_id) for product_id in eligible_product_ids}))
    try:
        decoded = decode_eligible_product_ids_strict(eligible_products_raw)
    except EligibilityDecodeError as exc:
        raise VoucherInvalidRequestError("ELIGIBLE_PRODUCTS_UNREADABLE") from exc
    return tuple(sorted(decoded))


async def _generate_unique_codes(session: AsyncSession, *, now_utc: datetime) -> tuple[str, str]:
    for _ in range(CODE_GENERATION_MAX_ATTEMPTS):
        voucher_code = generate_voucher_code(now_utc=now_utc)
        qr_code = generate_voucher_qr_payload(voucher_code=voucher_code)
        if not await VouchersRepo.exists_with_code(
            session,
            voucher_code=voucher_code,
            qr_code=qr_code,
        ):
            return voucher_code, qr_code
    raise VoucherCodeGenerationError


class VoucherIssuanceService:
    @staticmethod
    async def issue_voucher(
        session: AsyncSession,
        *,
        reseller_id: int,
        campaign_id: int,
        value: Decimal,
        points_required: int,
        eligible_product_ids: Iterable[int] | None = None,
        eligible_products_raw: str | None = None,
        expiry_date: datetime | None = None,
        now_utc: datetime | None = None,
    ) -> IssuedVoucher:
        now_utc = now_utc or datetime.now(timezone.utc)
        if value <= 0:
            raise VoucherInvalidRequestError("INVALID_VALUE")
        if points_required < 0:
            raise VoucherInvalidRequestError("INVALID_POINTS_REQUIRED")

        campaign = await CampaignsRepo.get_by_id(session, campaign_id)
        if campaign is None:
            raise VoucherCampaignNotFoundError
        if not campaign.is_active or not (campaign.start_date <= now_utc <= campaign.end_date):
            raise VoucherCampaignInactiveError

        reseller = await UsersRepo.get_active_with_role(session, reseller_id, role="reseller")
        if reseller is None:
            raise VoucherResellerNotFoundError

        product_ids = _resolve_eligible_ids(
            eligible_product_ids=eligible_product_ids,
            eligible_products_raw=eligible_products_raw,
        )
        if product_ids:
            products = await ProductsRepo.list_by_ids(session, product_ids)
            if len(products) != len(product_ids):
                raise VoucherInvalidRequestError("PRODUCT_NOT_FOUND")

        if expiry_date is not None:
            expires_at = _as_utc(expiry_date)
        else:
            expires_at = now_utc + timedelta(days=_validity_days(campaign))
        if expires_at <= now_utc:
            raise VoucherInvalidRequestError("INVALID_EXPIRY")

        available_after: int | None = None
        if points_required > 0:
            movement = await CampaignPointsLedger.debit(
                session,
                campaign_id=campaign_id,
                reseller_id=reseller_id,
                amount=points_required,
                reason="voucher issued",
                voucher_value=value,
                now_utc=now_utc,
            )
            available_after = movement.available_after

        voucher_code, qr_code = await _generate_unique_codes(session, now_utc=now_utc)
        voucher = await VouchersRepo.create(
            session,
            voucher=Voucher(
                voucher_code=voucher_code,
                qr_code=qr_code,
                reseller_id=reseller_id,
                campaign_id=campaign_id,
                value=value,
                points_required=points_required,
                legacy_eligible_products=None,
                is_redeemed=False,
                redeemed_at=None,
                redeemed_by_shopkeeper_id=None,
                expiry_date=expires_at,
                created_at=now_utc,
                updated_at=None,
            ),
            eligible_product_ids=product_ids,
        )
        logger.info(
            "voucher_issued",
            voucher_id=voucher.id,
            campaign_id=campaign_id,
            reseller_id=reseller_id,
            points_required=points_required,
        )
        return IssuedVoucher(
            voucher_id=voucher.id,
            voucher_code=voucher_code,
            qr_code=qr_code,
            reseller_id=reseller_id,
            campaign_id=campaign_id,
            value=value,
            points_required=points_required,
            expiry_date=expires_at,
            eligible_product_ids=product_ids,
            available_points_after=available_after,
        )

    @staticmethod
    async def generate_threshold_vouchers(
        session: AsyncSession,
        *,
        campaign_id: int,
        reseller_id: int,
        now_utc: datetime | None = None,
    ) -> list[IssuedVoucher]:
        """Turn every full threshold of available campaign points into a voucher."""
        now_utc = now_utc or datetime.now(timezone.utc)
        campaign = await CampaignsRepo.get_by_id(session, campaign_id)
        if campaign is None:
            raise VoucherCampaignNotFoundError
        threshold = campaign.voucher_generation_threshold
        if not threshold or campaign.voucher_value is None or campaign.voucher_value <= 0:
            return []

        points = await CampaignPointsRepo.get_for_update(
            session,
            campaign_id=campaign_id,
            reseller_id=reseller_id,
        )
        if points is None:
            return []
        voucher_count = points.available_points // threshold
        if voucher_count <= 0:
            return []

        eligible = await CampaignsRepo.list_eligible_products(session, campaign_id=campaign_id)
        eligible_ids = [row.product_id for row in eligible]
        expiry_date = now_utc + timedelta(days=_validity_days(campaign))

        issued: list[IssuedVoucher] = []
        for _ in range(voucher_count):
            issued.append(
                await VoucherIssuanceService.issue_voucher(
                    session,
                    reseller_id=reseller_id,
                    campaign_id=campaign_id,
                    value=campaign.voucher_value,
                    points_required=threshold,
                    eligible_product_ids=eligible_ids,
                    expiry_date=expiry_date,
                    now_utc=now_utc,
                )
            )
        return issued
