from __future__ import annotations

import structlog
from fastapi import HTTPException, Request

from app.core.config import get_settings
from app.economy.points.errors import (
    InsufficientBalanceError,
    PointsError,
    PointsIdempotencyConflictError,
)
from app.economy.redemption.errors import (
    RedemptionAlreadyRedeemedError,
    RedemptionCampaignInactiveError,
    RedemptionError,
    RedemptionExpiredError,
    RedemptionNotFoundError,
    RedemptionValidationError,
)
from app.economy.redemption.types import (
    CatalogSelection,
    ItemizedItem,
    ItemizedSelection,
    ProductSelection,
)
from app.economy.vouchers.errors import (
    VoucherCampaignInactiveError,
    VoucherCampaignNotFoundError,
    VoucherInvalidRequestError,
    VoucherIssuanceError,
    VoucherResellerNotFoundError,
)
from app.services.internal_auth import internal_access_denial

from .internal_redemption_models import RedeemVoucherRequest

logger = structlog.get_logger(__name__)


def _internal_error() -> HTTPException:
    return HTTPException(status_code=500, detail={"code": "E_INTERNAL"})


def _assert_internal_access(request: Request) -> None:
    settings = get_settings()
    reason, client_ip = internal_access_denial(
        request,
        expected_token=settings.internal_api_token,
        allowlist=settings.internal_api_allowlist,
        trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
    )
    if reason is None:
        return

    logger.warning(
        "internal_redemption_auth_failed",
        reason=reason,
        client_ip=client_ip,
        path=request.url.path,
    )
    raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


def _selection_from_payload(payload: RedeemVoucherRequest) -> ProductSelection:
    if payload.product_ids is not None and payload.items is not None:
        raise HTTPException(
            status_code=422,
            detail={"code": "E_VALIDATION_FAILED", "reason": "AMBIGUOUS_SELECTION"},
        )
    if payload.items is not None:
        return ItemizedSelection(
            items=tuple(ItemizedItem(name=item.name, value=item.value) for item in payload.items)
        )
    return CatalogSelection(product_ids=tuple(payload.product_ids or ()))


def _redemption_http_error(exc: RedemptionError) -> HTTPException:
    if isinstance(exc, RedemptionNotFoundError):
        return HTTPException(status_code=404, detail={"code": "E_CODE_NOT_FOUND"})
    if isinstance(exc, RedemptionExpiredError):
        return HTTPException(status_code=410, detail={"code": "E_CODE_EXPIRED"})
    if isinstance(exc, RedemptionAlreadyRedeemedError):
        return HTTPException(status_code=409, detail={"code": "E_CODE_ALREADY_REDEEMED"})
    if isinstance(exc, RedemptionCampaignInactiveError):
        return HTTPException(status_code=409, detail={"code": "E_CAMPAIGN_INACTIVE"})
    if isinstance(exc, RedemptionValidationError):
        return HTTPException(
            status_code=422,
            detail={"code": "E_VALIDATION_FAILED", "reason": exc.reason},
        )
    return _internal_error()


def _points_http_error(exc: PointsError) -> HTTPException:
    if isinstance(exc, InsufficientBalanceError):
        return HTTPException(status_code=409, detail={"code": "E_INSUFFICIENT_BALANCE"})
    if isinstance(exc, PointsIdempotencyConflictError):
        return HTTPException(status_code=409, detail={"code": "E_IDEMPOTENCY_CONFLICT"})
    return _internal_error()


def _voucher_http_error(exc: VoucherIssuanceError) -> HTTPException:
    if isinstance(exc, VoucherCampaignNotFoundError):
        return HTTPException(status_code=404, detail={"code": "E_CAMPAIGN_NOT_FOUND"})
    if isinstance(exc, VoucherResellerNotFoundError):
        return HTTPException(status_code=404, detail={"code": "E_RESELLER_NOT_FOUND"})
    if isinstance(exc, VoucherCampaignInactiveError):
        return HTTPException(status_code=409, detail={"code": "E_CAMPAIGN_INACTIVE"})
    if isinstance(exc, VoucherInvalidRequestError):
        return HTTPException(
            status_code=422,
            detail={"code": "E_VALIDATION_FAILED", "reason": exc.reason},
        )
    return HTTPException(status_code=503, detail={"code": "E_VOUCHER_CODE_UNAVAILABLE"})
