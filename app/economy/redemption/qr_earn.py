from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.redemption_history import RedemptionHistory
from app.db.repo.campaigns_repo import CampaignsRepo
from app.db.repo.qr_codes_repo import QRCodesRepo
from app.db.repo.redemption_history_repo import RedemptionHistoryRepo
from app.db.repo.vouchers_repo import VouchersRepo
from app.economy.points.service import PointsLedger
from app.economy.redemption.errors import (
    RedemptionAlreadyRedeemedError,
    RedemptionNotFoundError,
    RedemptionValidationError,
)
from app.economy.redemption.service import (
    authoritative_qr_points,
    ensure_redeemable,
    normalize_code,
)
from app.economy.redemption.types import QRPointsReceipt

logger = structlog.get_logger(__name__)


async def redeem_qr_code(
    session: AsyncSession,
    *,
    code: str,
    customer_id: int,
    claimed_points: int | None = None,
    now_utc: datetime | None = None,
) -> QRPointsReceipt:
    """Consume a campaign QR code and credit its points to the scanning customer.

    The point value always comes from the stored QR code or its campaign. A
    caller-supplied amount is only compared against it.
    """
    now_utc = now_utc or datetime.now(timezone.utc)
    normalized = normalize_code(code)

    qr_code = await QRCodesRepo.get_by_code_for_update(session, normalized)
    if qr_code is None:
        if await VouchersRepo.get_by_code(session, normalized) is not None:
            raise RedemptionValidationError("NOT_A_QR_CODE")
        raise RedemptionNotFoundError

    campaign = ensure_redeemable(
        expiry_date=qr_code.expiry_date,
        is_redeemed=qr_code.is_redeemed,
        campaign=await CampaignsRepo.get_by_id(session, qr_code.campaign_id),
        now_utc=now_utc,
    )
    points = authoritative_qr_points(qr_code, campaign)
    if points <= 0:
        raise RedemptionValidationError("NO_POINTS_CONFIGURED")
    if claimed_points is not None and claimed_points != points:
        logger.warning(
            "qr_code_points_mismatch",
            qr_code_id=qr_code.id,
            claimed_points=claimed_points,
            points=points,
        )
        raise RedemptionValidationError("POINTS_MISMATCH")

    flipped = await QRCodesRepo.mark_redeemed(
        session,
        qr_code_id=qr_code.id,
        user_id=customer_id,
        now_utc=now_utc,
    )
    if not flipped:
        raise RedemptionAlreadyRedeemedError

    entry = await RedemptionHistoryRepo.create(
        session,
        entry=RedemptionHistory(
            user_id=customer_id,
            reseller_id=qr_code.reseller_id,
            shopkeeper_id=None,
            campaign_id=campaign.id,
            voucher_id=None,
            qr_code_id=qr_code.id,
            code=qr_code.code,
            points=points,
            redeemed_products=[],
            redemption_value=None,
            redemption_type="qr_points",
            notes=None,
            redeemed_at=now_utc,
        ),
    )
    movement = await PointsLedger.credit(
        session,
        user_id=customer_id,
        amount=points,
        reason=f"QR code {qr_code.code} redeemed",
        campaign_id=campaign.id,
        idempotency_key=f"qr:{qr_code.id}",
        now_utc=now_utc,
    )
    logger.info(
        "qr_code_redeemed",
        qr_code_id=qr_code.id,
        campaign_id=campaign.id,
        customer_id=customer_id,
        points=points,
    )
    return QRPointsReceipt(
        history_id=entry.id,
        code=qr_code.code,
        campaign_id=campaign.id,
        points_credited=points,
        balance_after=movement.balance_after,
        redeemed_at=now_utc,
    )
