from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.api.routes import internal_redemption
from app.economy.points.errors import PointsIdempotencyConflictError
from app.economy.redemption.errors import (
    RedemptionAlreadyRedeemedError,
    RedemptionCampaignInactiveError,
    RedemptionExpiredError,
    RedemptionNotFoundError,
    RedemptionValidationError,
)
from app.economy.redemption.types import (
    CatalogSelection,
    EligibleProductView,
    ItemizedSelection,
    QRPointsReceipt,
    RedemptionPreview,
    RedemptionReceipt,
    ShopkeeperStatistics,
    TopProduct,
)
from tests.api.internal_api_fixtures import (
    AUTH_HEADERS,
    _configure_internal_access,
    _fake_session_local,
    _local_client,
)

NOW_UTC = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _internal_setup(monkeypatch) -> None:
    _configure_internal_access(monkeypatch)
    monkeypatch.setattr(internal_redemption, "SessionLocal", _fake_session_local())


def _preview() -> RedemptionPreview:
    return RedemptionPreview(
        kind="voucher",
        code="VCH-20260601-ABCDEFGH",
        voucher_code="VCH-20260601-ABCDEFGH",
        value=Decimal("500.00"),
        points_required=100,
        reseller_id=20,
        reseller_name="Ravi Traders",
        campaign_id=1,
        campaign_name="Diwali",
        reward_type="voucher_restricted",
        expiry_date=NOW_UTC,
        eligible_products=(
            EligibleProductView(
                id=4,
                name="Rasgulla",
                description=None,
                category="sweets",
                brand=None,
                retail_price=Decimal("120.00"),
            ),
        ),
    )


def test_validate_returns_preview(monkeypatch) -> None:
    async def _fake_validate(session, *, code: str, now_utc):
        del session, now_utc
        assert code == "VCH-20260601-ABCDEFGH"
        return _preview()

    monkeypatch.setattr(internal_redemption.RedemptionService, "validate", _fake_validate)

    client = _local_client()
    response = client.post(
        "/internal/redemptions/validate",
        json={"code": "VCH-20260601-ABCDEFGH"},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "voucher"
    assert body["reseller_name"] == "Ravi Traders"
    assert [product["id"] for product in body["eligible_products"]] == [4]


@pytest.mark.parametrize(
    ("error", "status_code", "detail"),
    [
        (RedemptionNotFoundError(), 404, {"code": "E_CODE_NOT_FOUND"}),
        (RedemptionExpiredError(), 410, {"code": "E_CODE_EXPIRED"}),
        (RedemptionAlreadyRedeemedError(), 409, {"code": "E_CODE_ALREADY_REDEEMED"}),
        (RedemptionCampaignInactiveError(), 409, {"code": "E_CAMPAIGN_INACTIVE"}),
        (
            RedemptionValidationError("PRODUCT_NOT_ELIGIBLE"),
            422,
            {"code": "E_VALIDATION_FAILED", "reason": "PRODUCT_NOT_ELIGIBLE"},
        ),
    ],
)
def test_redeem_maps_domain_errors(monkeypatch, error, status_code, detail) -> None:
    async def _fake_redeem(session, **kwargs):
        del session, kwargs
        raise error

    monkeypatch.setattr(internal_redemption.RedemptionService, "redeem", _fake_redeem)

    client = _local_client()
    response = client.post(
        "/internal/redemptions/redeem",
        json={"code": "VCH-1", "actor_id": 40, "product_ids": [4, 6]},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == status_code
    assert response.json() == {"detail": detail}


def test_redeem_passes_itemized_selection_and_returns_receipt(monkeypatch) -> None:
    captured: dict = {}

    async def _fake_redeem(session, **kwargs):
        del session
        captured.update(kwargs)
        return RedemptionReceipt(
            history_id=9,
            code="VCH-1",
            voucher_code="VCH-1",
            redemption_type="voucher",
            redeemed_value=Decimal("120.00"),
            redeemed_products=(
                {
                    "product_id": None,
                    "name": "Rasgulla",
                    "quantity": 1,
                    "unit_value": "120.00",
                    "line_value": "120.00",
                },
            ),
            redeemed_at=NOW_UTC,
        )

    monkeypatch.setattr(internal_redemption.RedemptionService, "redeem", _fake_redeem)

    client = _local_client()
    response = client.post(
        "/internal/redemptions/redeem",
        json={
            "code": "VCH-1",
            "actor_id": 40,
            "items": [{"name": "Rasgulla", "value": "120"}],
            "notes": "counter 2",
        },
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["history_id"] == 9
    assert Decimal(response.json()["redeemed_value"]) == Decimal("120.00")
    assert captured["actor_id"] == 40
    assert captured["notes"] == "counter 2"
    selection = captured["selection"]
    assert isinstance(selection, ItemizedSelection)
    assert selection.items[0].name == "Rasgulla"
    assert selection.items[0].value == Decimal("120")


def test_redeem_defaults_to_catalog_selection(monkeypatch) -> None:
    captured: dict = {}

    async def _fake_redeem(session, **kwargs):
        del session
        captured.update(kwargs)
        raise RedemptionValidationError("EMPTY_SELECTION")

    monkeypatch.setattr(internal_redemption.RedemptionService, "redeem", _fake_redeem)

    client = _local_client()
    response = client.post(
        "/internal/redemptions/redeem",
        json={"code": "VCH-1", "actor_id": 40},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 422
    assert captured["selection"] == CatalogSelection(product_ids=())


def test_redeem_rejects_both_selection_kinds() -> None:
    client = _local_client()
    response = client.post(
        "/internal/redemptions/redeem",
        json={
            "code": "VCH-1",
            "actor_id": 40,
            "product_ids": [4],
            "items": [{"name": "Rasgulla", "value": "120"}],
        },
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 422
    assert response.json() == {
        "detail": {"code": "E_VALIDATION_FAILED", "reason": "AMBIGUOUS_SELECTION"}
    }


def test_redeem_hides_store_failures(monkeypatch) -> None:
    async def _fake_redeem(session, **kwargs):
        del session, kwargs
        raise OperationalError("UPDATE vouchers", {}, Exception("connection reset"))

    monkeypatch.setattr(internal_redemption.RedemptionService, "redeem", _fake_redeem)

    client = _local_client()
    response = client.post(
        "/internal/redemptions/redeem",
        json={"code": "VCH-1", "actor_id": 40, "product_ids": [4]},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 500
    assert response.json() == {"detail": {"code": "E_INTERNAL"}}


def test_qr_redeem_returns_points_receipt(monkeypatch) -> None:
    captured: dict = {}

    async def _fake_redeem_qr(session, **kwargs):
        del session
        captured.update(kwargs)
        return QRPointsReceipt(
            history_id=3,
            code="QR-CAMP-0001",
            campaign_id=1,
            points_credited=15,
            balance_after=65,
            redeemed_at=NOW_UTC,
        )

    monkeypatch.setattr(internal_redemption, "redeem_qr_code", _fake_redeem_qr)

    client = _local_client()
    response = client.post(
        "/internal/redemptions/qr/redeem",
        json={"code": "QR-CAMP-0001", "customer_id": 30, "points": 15},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["balance_after"] == 65
    assert captured["customer_id"] == 30
    assert captured["claimed_points"] == 15


def test_qr_redeem_maps_points_conflict(monkeypatch) -> None:
    async def _fake_redeem_qr(session, **kwargs):
        del session, kwargs
        raise PointsIdempotencyConflictError

    monkeypatch.setattr(internal_redemption, "redeem_qr_code", _fake_redeem_qr)

    client = _local_client()
    response = client.post(
        "/internal/redemptions/qr/redeem",
        json={"code": "QR-CAMP-0001", "customer_id": 30},
        headers=AUTH_HEADERS,
    )

    assert response.status_code == 409
    assert response.json() == {"detail": {"code": "E_IDEMPOTENCY_CONFLICT"}}


def test_shopkeeper_reports(monkeypatch) -> None:
    async def _fake_statistics(session, *, shopkeeper_id: int, now_utc):
        del session, now_utc
        assert shopkeeper_id == 40
        return ShopkeeperStatistics(
            total_redemptions=4,
            total_value=Decimal("500.00"),
            today_redemptions=1,
            today_value=Decimal("120.00"),
            average_value=Decimal("125.00"),
        )

    async def _fake_top_products(session, *, shopkeeper_id: int, limit):
        del session, shopkeeper_id
        assert limit == 2
        return [TopProduct(product_id=4, name="Rasgulla", quantity=3, total_value=Decimal("360.00"))]

    monkeypatch.setattr(internal_redemption.RedemptionReports, "shopkeeper_statistics", _fake_statistics)
    monkeypatch.setattr(internal_redemption.RedemptionReports, "shopkeeper_top_products", _fake_top_products)

    client = _local_client()
    stats = client.get("/internal/redemptions/shopkeepers/40/statistics", headers=AUTH_HEADERS)
    top = client.get(
        "/internal/redemptions/shopkeepers/40/top-products",
        params={"limit": 2},
        headers=AUTH_HEADERS,
    )

    assert stats.status_code == 200
    assert stats.json()["total_redemptions"] == 4
    assert Decimal(stats.json()["average_value"]) == Decimal("125.00")
    assert top.status_code == 200
    assert top.json()[0]["name"] == "Rasgulla"
    assert top.json()[0]["quantity"] == 3
