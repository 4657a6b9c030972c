from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError

from app.db.session import SessionLocal
from app.economy.points.campaign_points import CampaignPointsLedger
from app.economy.points.errors import PointsError
from app.economy.points.service import PointsLedger

from .internal_redemption_helpers import _assert_internal_access, _internal_error, _points_http_error
from .internal_redemption_models import (
    CampaignPointsCreditRequest,
    CampaignPointsMovementResponse,
    CampaignPointsResponse,
    PointsAmountRequest,
    PointsBalanceResponse,
    PointsMovementResponse,
)

router = APIRouter(tags=["internal", "points"])
logger = structlog.get_logger(__name__)


@router.get("/internal/points/{user_id}/balance", response_model=PointsBalanceResponse)
async def points_balance(user_id: int, request: Request) -> PointsBalanceResponse:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        balance = await PointsLedger.balance(session, user_id=user_id)
    return PointsBalanceResponse(user_id=user_id, balance=balance)


@router.get("/internal/points/{user_id}/history", response_model=list[PointsMovementResponse])
async def points_history(
    user_id: int,
    request: Request,
    limit: int = Query(default=50, ge=1, le=500),
) -> list[PointsMovementResponse]:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        movements = await PointsLedger.history(session, user_id=user_id, limit=limit)
    return [PointsMovementResponse.model_validate(item, from_attributes=True) for item in movements]


async def _apply_points(payload: PointsAmountRequest, *, operation: str) -> PointsMovementResponse:
    apply = PointsLedger.credit if operation == "credit" else PointsLedger.debit
    try:
        async with SessionLocal.begin() as session:
            movement = await apply(
                session,
                user_id=payload.user_id,
                amount=payload.amount,
                reason=payload.reason,
                campaign_id=payload.campaign_id,
                idempotency_key=payload.idempotency_key,
                now_utc=datetime.now(timezone.utc),
            )
    except PointsError as exc:
        raise _points_http_error(exc) from exc
    except SQLAlchemyError as exc:
        logger.exception(
            "internal_points_store_failed",
            operation=operation,
            actor_id=payload.user_id,
            idempotency_key=payload.idempotency_key,
        )
        raise _internal_error() from exc

    logger.info(
        "points_movement_applied",
        operation=operation,
        user_id=payload.user_id,
        delta=movement.delta,
        idempotent_replay=movement.idempotent_replay,
    )
    return PointsMovementResponse.model_validate(movement, from_attributes=True)


@router.post("/internal/points/credit", response_model=PointsMovementResponse)
async def credit_points(payload: PointsAmountRequest, request: Request) -> PointsMovementResponse:
    _assert_internal_access(request)
    return await _apply_points(payload, operation="credit")


@router.post("/internal/points/debit", response_model=PointsMovementResponse)
async def debit_points(payload: PointsAmountRequest, request: Request) -> PointsMovementResponse:
    _assert_internal_access(request)
    return await _apply_points(payload, operation="debit")


@router.get(
    "/internal/campaign-points/{campaign_id}/{reseller_id}",
    response_model=CampaignPointsResponse,
)
async def campaign_points_balance(
    campaign_id: int,
    reseller_id: int,
    request: Request,
) -> CampaignPointsResponse:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        snapshot = await CampaignPointsLedger.balance(
            session,
            campaign_id=campaign_id,
            reseller_id=reseller_id,
        )
    if snapshot is None:
        raise HTTPException(status_code=404, detail={"code": "E_CAMPAIGN_POINTS_NOT_FOUND"})
    return CampaignPointsResponse.model_validate(snapshot, from_attributes=True)


@router.post("/internal/campaign-points/credit", response_model=CampaignPointsMovementResponse)
async def credit_campaign_points(
    payload: CampaignPointsCreditRequest,
    request: Request,
) -> CampaignPointsMovementResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            movement = await CampaignPointsLedger.credit(
                session,
                campaign_id=payload.campaign_id,
                reseller_id=payload.reseller_id,
                amount=payload.amount,
                reason=payload.reason,
                order_value=payload.order_value,
                idempotency_key=payload.idempotency_key,
                now_utc=datetime.now(timezone.utc),
            )
    except PointsError as exc:
        raise _points_http_error(exc) from exc
    except SQLAlchemyError as exc:
        logger.exception(
            "internal_points_store_failed",
            operation="campaign_credit",
            actor_id=payload.reseller_id,
            campaign_id=payload.campaign_id,
        )
        raise _internal_error() from exc

    return CampaignPointsMovementResponse.model_validate(movement, from_attributes=True)
