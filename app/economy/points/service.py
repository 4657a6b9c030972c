from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.points_history import PointsHistory
from app.db.repo.points_repo import PointsRepo
from app.economy.points.errors import InsufficientBalanceError, PointsIdempotencyConflictError
from app.economy.points.types import PointsMovement

logger = structlog.get_logger(__name__)


def ensure_positive_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError("amount must be an integer")
    if amount <= 0:
        raise ValueError("amount must be positive")
    return amount


def _to_movement(entry: PointsHistory, *, idempotent_replay: bool) -> PointsMovement:
    return PointsMovement(
        history_id=entry.id,
        user_id=entry.user_id,
        delta=entry.delta,
        balance_after=entry.balance_after,
        entry_type=entry.entry_type,
        reason=entry.reason,
        campaign_id=entry.campaign_id,
        created_at=entry.created_at,
        idempotent_replay=idempotent_replay,
    )


class PointsLedger:
    """Per-user points balance backed by an append-only history.

    The balance row is locked for the duration of the caller's transaction so
    the stored balance always equals the sum of the history deltas.
    """

    @staticmethod
    async def _apply(
        session: AsyncSession,
        *,
        user_id: int,
        delta: int,
        reason: str,
        campaign_id: int | None,
        idempotency_key: str | None,
        now_utc: datetime,
    ) -> PointsMovement:
        if idempotency_key is not None:
            existing = await PointsRepo.get_history_by_idempotency_key(session, idempotency_key)
            if existing is not None:
                if existing.user_id != user_id or existing.delta != delta:
                    raise PointsIdempotencyConflictError
                return _to_movement(existing, idempotent_replay=True)

        balance = await PointsRepo.ensure_balance_for_update(
            session,
            user_id=user_id,
            now_utc=now_utc,
        )
        if delta < 0 and -delta > balance.balance:
            logger.info(
                "points_debit_rejected",
                user_id=user_id,
                requested=-delta,
                balance=balance.balance,
            )
            raise InsufficientBalanceError

        balance_after = balance.balance + delta
        entry = await PointsRepo.create_history(
            session,
            entry=PointsHistory(
                user_id=user_id,
                delta=delta,
                balance_after=balance_after,
                entry_type="EARNED" if delta > 0 else "REDEEMED",
                reason=reason,
                campaign_id=campaign_id,
                idempotency_key=idempotency_key,
                created_at=now_utc,
            ),
        )
        balance.balance = balance_after
        balance.version += 1
        balance.updated_at = now_utc
        return _to_movement(entry, idempotent_replay=False)

    @staticmethod
    async def credit(
        session: AsyncSession,
        *,
        user_id: int,
        amount: int,
        reason: str,
        campaign_id: int | None = None,
        idempotency_key: str | None = None,
        now_utc: datetime | None = None,
    ) -> PointsMovement:
        amount = ensure_positive_amount(amount)
        return await PointsLedger._apply(
            session,
            user_id=user_id,
            delta=amount,
            reason=reason,
            campaign_id=campaign_id,
            idempotency_key=idempotency_key,
            now_utc=now_utc or datetime.now(timezone.utc),
        )

    @staticmethod
    async def debit(
        session: AsyncSession,
        *,
        user_id: int,
        amount: int,
        reason: str,
        campaign_id: int | None = None,
        idempotency_key: str | None = None,
        now_utc: datetime | None = None,
    ) -> PointsMovement:
        amount = ensure_positive_amount(amount)
        return await PointsLedger._apply(
            session,
            user_id=user_id,
            delta=-amount,
            reason=reason,
            campaign_id=campaign_id,
            idempotency_key=idempotency_key,
            now_utc=now_utc or datetime.now(timezone.utc),
        )

    @staticmethod
    async def balance(session: AsyncSession, *, user_id: int) -> int:
        row = await PointsRepo.get_balance(session, user_id)
        if row is None:
            return 0
        return int(row.balance)

    @staticmethod
    async def history(
        session: AsyncSession,
        *,
        user_id: int,
        limit: int = 50,
    ) -> list[PointsMovement]:
        entries = await PointsRepo.list_history(session, user_id=user_id, limit=limit)
        return [_to_movement(entry, idempotent_replay=False) for entry in entries]
