from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.campaign_points import CampaignPoints
from app.db.models.campaign_points_history import CampaignPointsHistory
from app.db.repo.campaign_points_repo import CampaignPointsRepo
from app.economy.points.errors import InsufficientBalanceError, PointsIdempotencyConflictError
from app.economy.points.service import ensure_positive_amount
from app.economy.points.types import CampaignPointsMovement, CampaignPointsSnapshot

logger = structlog.get_logger(__name__)


def _to_movement(
    entry: CampaignPointsHistory, *, idempotent_replay: bool
) -> CampaignPointsMovement:
    return CampaignPointsMovement(
        history_id=entry.id,
        campaign_id=entry.campaign_id,
        reseller_id=entry.reseller_id,
        delta=entry.delta,
        available_after=entry.available_after,
        reason=entry.reason,
        created_at=entry.created_at,
        idempotent_replay=idempotent_replay,
    )


def _to_snapshot(row: CampaignPoints) -> CampaignPointsSnapshot:
    return CampaignPointsSnapshot(
        campaign_id=row.campaign_id,
        reseller_id=row.reseller_id,
        total_points_earned=row.total_points_earned,
        points_used_for_vouchers=row.points_used_for_vouchers,
        available_points=row.available_points,
        total_order_value=Decimal(row.total_order_value or 0),
        total_orders=row.total_orders,
        total_vouchers_generated=row.total_vouchers_generated,
        total_voucher_value_generated=Decimal(row.total_voucher_value_generated or 0),
        last_voucher_generated_at=row.last_voucher_generated_at,
    )


async def _replayed_movement(
    session: AsyncSession,
    *,
    idempotency_key: str | None,
    campaign_id: int,
    reseller_id: int,
    delta: int,
) -> CampaignPointsMovement | None:
    if idempotency_key is None:
        return None
    existing = await CampaignPointsRepo.get_history_by_idempotency_key(session, idempotency_key)
    if existing is None:
        return None
    if (
        existing.campaign_id != campaign_id
        or existing.reseller_id != reseller_id
        or existing.delta != delta
    ):
        raise PointsIdempotencyConflictError
    return _to_movement(existing, idempotent_replay=True)


class CampaignPointsLedger:
    """Points a reseller earned inside one campaign, kept apart from user balances."""

    @staticmethod
    async def credit(
        session: AsyncSession,
        *,
        campaign_id: int,
        reseller_id: int,
        amount: int,
        reason: str,
        order_value: Decimal | None = None,
        idempotency_key: str | None = None,
        now_utc: datetime | None = None,
    ) -> CampaignPointsMovement:
        amount = ensure_positive_amount(amount)
        now_utc = now_utc or datetime.now(timezone.utc)

        replay = await _replayed_movement(
            session,
            idempotency_key=idempotency_key,
            campaign_id=campaign_id,
            reseller_id=reseller_id,
            delta=amount,
        )
        if replay is not None:
            return replay

        row = await CampaignPointsRepo.ensure_for_update(
            session,
            campaign_id=campaign_id,
            reseller_id=reseller_id,
            now_utc=now_utc,
        )
        row.total_points_earned += amount
        row.available_points = row.total_points_earned - row.points_used_for_vouchers
        if order_value is not None:
            row.total_order_value = Decimal(row.total_order_value or 0) + order_value
            row.total_orders += 1
        row.updated_at = now_utc

        entry = await CampaignPointsRepo.create_history(
            session,
            entry=CampaignPointsHistory(
                campaign_id=campaign_id,
                reseller_id=reseller_id,
                delta=amount,
                available_after=row.available_points,
                reason=reason,
                idempotency_key=idempotency_key,
                created_at=now_utc,
            ),
        )
        return _to_movement(entry, idempotent_replay=False)

    @staticmethod
    async def debit(
        session: AsyncSession,
        *,
        campaign_id: int,
        reseller_id: int,
        amount: int,
        reason: str,
        voucher_value: Decimal | None = None,
        idempotency_key: str | None = None,
        now_utc: datetime | None = None,
    ) -> CampaignPointsMovement:
        amount = ensure_positive_amount(amount)
        now_utc = now_utc or datetime.now(timezone.utc)

        replay = await _replayed_movement(
            session,
            idempotency_key=idempotency_key,
            campaign_id=campaign_id,
            reseller_id=reseller_id,
            delta=-amount,
        )
        if replay is not None:
            return replay

        row = await CampaignPointsRepo.get_for_update(
            session,
            campaign_id=campaign_id,
            reseller_id=reseller_id,
        )
        available = row.available_points if row is not None else 0
        if row is None or amount > available:
            logger.info(
                "campaign_points_debit_rejected",
                campaign_id=campaign_id,
                reseller_id=reseller_id,
                requested=amount,
                available=available,
            )
            raise InsufficientBalanceError

        row.points_used_for_vouchers += amount
        row.available_points = row.total_points_earned - row.points_used_for_vouchers
        if voucher_value is not None:
            row.total_vouchers_generated += 1
            row.total_voucher_value_generated = (
                Decimal(row.total_voucher_value_generated or 0) + voucher_value
            )
            row.last_voucher_generated_at = now_utc
        row.updated_at = now_utc

        entry = await CampaignPointsRepo.create_history(
            session,
            entry=CampaignPointsHistory(
                campaign_id=campaign_id,
                reseller_id=reseller_id,
                delta=-amount,
                available_after=row.available_points,
                reason=reason,
                idempotency_key=idempotency_key,
                created_at=now_utc,
            ),
        )
        return _to_movement(entry, idempotent_replay=False)

    @staticmethod
    async def balance(
        session: AsyncSession,
        *,
        campaign_id: int,
        reseller_id: int,
    ) -> CampaignPointsSnapshot | None:
        row = await CampaignPointsRepo.get(
            session,
            campaign_id=campaign_id,
            reseller_id=reseller_id,
        )
        if row is None:
            return None
        return _to_snapshot(row)
