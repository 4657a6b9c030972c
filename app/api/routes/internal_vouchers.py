from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Request
from sqlalchemy.exc import SQLAlchemyError

from app.db.session import SessionLocal
from app.economy.points.errors import PointsError
from app.economy.vouchers.errors import VoucherIssuanceError
from app.economy.vouchers.service import VoucherIssuanceService

from .internal_redemption_helpers import (
    _assert_internal_access,
    _internal_error,
    _points_http_error,
    _voucher_http_error,
)
from .internal_redemption_models import IssuedVoucherResponse, IssueVoucherRequest

router = APIRouter(tags=["internal", "vouchers"])
logger = structlog.get_logger(__name__)


@router.post("/internal/vouchers", response_model=IssuedVoucherResponse, status_code=201)
async def issue_voucher(payload: IssueVoucherRequest, request: Request) -> IssuedVoucherResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            issued = await VoucherIssuanceService.issue_voucher(
                session,
                reseller_id=payload.reseller_id,
                campaign_id=payload.campaign_id,
                value=payload.value,
                points_required=payload.points_required,
                eligible_product_ids=payload.eligible_product_ids,
                eligible_products_raw=payload.eligible_products,
                expiry_date=payload.expiry_date,
                now_utc=datetime.now(timezone.utc),
            )
    except VoucherIssuanceError as exc:
        raise _voucher_http_error(exc) from exc
    except PointsError as exc:
        raise _points_http_error(exc) from exc
    except SQLAlchemyError as exc:
        logger.exception(
            "internal_voucher_store_failed",
            operation="issue_voucher",
            actor_id=payload.reseller_id,
            campaign_id=payload.campaign_id,
        )
        raise _internal_error() from exc

    return IssuedVoucherResponse.model_validate(issued, from_attributes=True)
