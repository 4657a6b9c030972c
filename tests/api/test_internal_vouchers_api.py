from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.api.routes import internal_vouchers
from app.economy.points.errors import InsufficientBalanceError
from app.economy.vouchers.errors import (
    VoucherCampaignInactiveError,
    VoucherCampaignNotFoundError,
    VoucherCodeGenerationError,
    VoucherInvalidRequestError,
    VoucherResellerNotFoundError,
)
from app.economy.vouchers.types import IssuedVoucher
from tests.api.internal_api_fixtures import (
    AUTH_HEADERS,
    _configure_internal_access,
    _fake_session_local,
    _local_client,
)

NOW_UTC = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)
ISSUE_BODY = {"reseller_id": 20, "campaign_id": 1, "value": "500.00", "points_required": 100}


@pytest.fixture(autouse=True)
def _internal_setup(monkeypatch) -> None:
    _configure_internal_access(monkeypatch)
    monkeypatch.setattr(internal_vouchers, "SessionLocal", _fake_session_local())


def test_issue_voucher_returns_created(monkeypatch) -> None:
    captured: dict = {}

    async def _fake_issue(session, **kwargs):
        del session
        captured.update(kwargs)
        return IssuedVoucher(
            voucher_id=11,
            voucher_code="VCH-20260615-ABCDEFGH",
            qr_code="QR-VCH-20260615-ABCDEFGH-JKLMNPQR",
            reseller_id=20,
            campaign_id=1,
            value=Decimal("500.00"),
            points_required=100,
            expiry_date=NOW_UTC,
            eligible_product_ids=(4, 5),
            available_points_after=40,
        )

    monkeypatch.setattr(internal_vouchers.VoucherIssuanceService, "issue_voucher", _fake_issue)

    client = _local_client()
    response = client.post(
        "/internal/vouchers",
        json={**ISSUE_BODY, "eligible_product_ids": [4, 5]},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 201
    assert response.json()["voucher_code"] == "VCH-20260615-ABCDEFGH"
    assert response.json()["eligible_product_ids"] == [4, 5]
    assert captured["value"] == Decimal("500.00")
    assert captured["eligible_product_ids"] == [4, 5]


@pytest.mark.parametrize(
    ("error", "status_code", "detail"),
    [
        (VoucherCampaignNotFoundError(), 404, {"code": "E_CAMPAIGN_NOT_FOUND"}),
        (VoucherResellerNotFoundError(), 404, {"code": "E_RESELLER_NOT_FOUND"}),
        (VoucherCampaignInactiveError(), 409, {"code": "E_CAMPAIGN_INACTIVE"}),
        (
            VoucherInvalidRequestError("INVALID_EXPIRY"),
            422,
            {"code": "E_VALIDATION_FAILED", "reason": "INVALID_EXPIRY"},
        ),
        (VoucherCodeGenerationError(), 503, {"code": "E_VOUCHER_CODE_UNAVAILABLE"}),
        (InsufficientBalanceError(), 409, {"code": "E_INSUFFICIENT_BALANCE"}),
    ],
)
def test_issue_voucher_maps_errors(monkeypatch, error, status_code, detail) -> None:
    async def _fake_issue(session, **kwargs):
        del session, kwargs
        raise error

    monkeypatch.setattr(internal_vouchers.VoucherIssuanceService, "issue_voucher", _fake_issue)

    client = _local_client()
    response = client.post("/internal/vouchers", json=ISSUE_BODY, headers=AUTH_HEADERS)

    assert response.status_code == status_code
    assert response.json() == {"detail": detail}
