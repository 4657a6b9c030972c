from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError

from app.db.session import SessionLocal
from app.economy.points.errors import PointsError
from app.economy.redemption.errors import RedemptionError
from app.economy.redemption.qr_earn import redeem_qr_code
from app.economy.redemption.qr_info import QRInfoResolver
from app.economy.redemption.reports import RedemptionReports
from app.economy.redemption.service import RedemptionService

from .internal_redemption_helpers import (
    _assert_internal_access,
    _internal_error,
    _points_http_error,
    _redemption_http_error,
    _selection_from_payload,
)
from .internal_redemption_models import (
    QRInfoRequest,
    QRInfoResponse,
    QRPointsReceiptResponse,
    RedeemQRCodeRequest,
    RedeemVoucherRequest,
    RedemptionHistoryItemResponse,
    RedemptionPreviewResponse,
    RedemptionReceiptResponse,
    ShopkeeperStatisticsResponse,
    TopProductResponse,
    ValidateCodeRequest,
)

router = APIRouter(tags=["internal", "redemption"])
logger = structlog.get_logger(__name__)


def _store_failure(*, operation: str, code: str | None, actor_id: int | None) -> HTTPException:
    logger.exception(
        "internal_redemption_store_failed",
        operation=operation,
        code=code,
        actor_id=actor_id,
    )
    return _internal_error()


@router.post("/internal/redemptions/validate", response_model=RedemptionPreviewResponse)
async def validate_code(payload: ValidateCodeRequest, request: Request) -> RedemptionPreviewResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            preview = await RedemptionService.validate(
                session,
                code=payload.code,
                now_utc=datetime.now(timezone.utc),
            )
    except RedemptionError as exc:
        raise _redemption_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise _store_failure(operation="validate", code=payload.code, actor_id=None) from exc

    return RedemptionPreviewResponse.model_validate(preview, from_attributes=True)


@router.post("/internal/redemptions/redeem", response_model=RedemptionReceiptResponse)
async def redeem_voucher(
    payload: RedeemVoucherRequest,
    request: Request,
) -> RedemptionReceiptResponse:
    _assert_internal_access(request)
    selection = _selection_from_payload(payload)

    try:
        async with SessionLocal.begin() as session:
            receipt = await RedemptionService.redeem(
                session,
                code=payload.code,
                actor_id=payload.actor_id,
                selection=selection,
                notes=payload.notes,
                now_utc=datetime.now(timezone.utc),
            )
    except RedemptionError as exc:
        logger.info(
            "voucher_redeem_rejected",
            code=payload.code,
            actor_id=payload.actor_id,
            error_type=type(exc).__name__,
        )
        raise _redemption_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise _store_failure(
            operation="redeem",
            code=payload.code,
            actor_id=payload.actor_id,
        ) from exc

    return RedemptionReceiptResponse.model_validate(receipt, from_attributes=True)


@router.post("/internal/redemptions/qr/info", response_model=QRInfoResponse)
async def qr_info(payload: QRInfoRequest, request: Request) -> QRInfoResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            info = await QRInfoResolver.resolve(
                session,
                raw_payload=payload.payload,
                now_utc=datetime.now(timezone.utc),
            )
    except RedemptionError as exc:
        raise _redemption_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise _store_failure(operation="qr_info", code=payload.payload, actor_id=None) from exc

    return QRInfoResponse.model_validate(info, from_attributes=True)


@router.post("/internal/redemptions/qr/redeem", response_model=QRPointsReceiptResponse)
async def redeem_qr(payload: RedeemQRCodeRequest, request: Request) -> QRPointsReceiptResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            receipt = await redeem_qr_code(
                session,
                code=payload.code,
                customer_id=payload.customer_id,
                claimed_points=payload.points,
                now_utc=datetime.now(timezone.utc),
            )
    except RedemptionError as exc:
        raise _redemption_http_error(exc) from exc
    except PointsError as exc:
        raise _points_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise _store_failure(
            operation="qr_redeem",
            code=payload.code,
            actor_id=payload.customer_id,
        ) from exc

    return QRPointsReceiptResponse.model_validate(receipt, from_attributes=True)


@router.get(
    "/internal/redemptions/shopkeepers/{shopkeeper_id}/history",
    response_model=list[RedemptionHistoryItemResponse],
)
async def shopkeeper_history(
    shopkeeper_id: int,
    request: Request,
    limit: int = Query(default=100, ge=1, le=500),
) -> list[RedemptionHistoryItemResponse]:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        items = await RedemptionReports.shopkeeper_history(
            session,
            shopkeeper_id=shopkeeper_id,
            limit=limit,
        )
    return [RedemptionHistoryItemResponse.model_validate(item, from_attributes=True) for item in items]


@router.get(
    "/internal/redemptions/shopkeepers/{shopkeeper_id}/statistics",
    response_model=ShopkeeperStatisticsResponse,
)
async def shopkeeper_statistics(
    shopkeeper_id: int,
    request: Request,
) -> ShopkeeperStatisticsResponse:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        stats = await RedemptionReports.shopkeeper_statistics(
            session,
            shopkeeper_id=shopkeeper_id,
            now_utc=datetime.now(timezone.utc),
        )
    return ShopkeeperStatisticsResponse.model_validate(stats, from_attributes=True)


@router.get(
    "/internal/redemptions/shopkeepers/{shopkeeper_id}/top-products",
    response_model=list[TopProductResponse],
)
async def shopkeeper_top_products(
    shopkeeper_id: int,
    request: Request,
    limit: int | None = Query(default=None, ge=1, le=50),
) -> list[TopProductResponse]:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        products = await RedemptionReports.shopkeeper_top_products(
            session,
            shopkeeper_id=shopkeeper_id,
            limit=limit,
        )
    return [TopProductResponse.model_validate(product, from_attributes=True) for product in products]


@router.get(
    "/internal/redemptions/resellers/{reseller_id}/history",
    response_model=list[RedemptionHistoryItemResponse],
)
async def reseller_history(
    reseller_id: int,
    request: Request,
    limit: int = Query(default=100, ge=1, le=500),
) -> list[RedemptionHistoryItemResponse]:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        items = await RedemptionReports.reseller_history(
            session,
            reseller_id=reseller_id,
            limit=limit,
        )
    return [RedemptionHistoryItemResponse.model_validate(item, from_attributes=True) for item in items]
