from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.economy.redemption.errors import (
    RedemptionAlreadyRedeemedError,
    RedemptionCampaignInactiveError,
    RedemptionExpiredError,
    RedemptionNotFoundError,
    RedemptionValidationError,
)
from app.economy.redemption.service import RedemptionService
from app.economy.redemption.types import CatalogSelection, ItemizedItem, ItemizedSelection
from tests.economy.redemption_fixtures import (
    NOW_UTC,
    FakeRedemptionStore,
    _campaign,
    _product,
    _qr_code,
    _voucher,
)

SHOPKEEPER_ID = 40


@pytest.fixture
def store(monkeypatch) -> FakeRedemptionStore:
    return FakeRedemptionStore().install(monkeypatch)


def _itemized(*pairs: tuple[str, str]) -> ItemizedSelection:
    return ItemizedSelection(items=tuple(ItemizedItem(name=name, value=Decimal(value)) for name, value in pairs))


async def _redeem(code: str, selection, **kwargs):
    return await RedemptionService.redeem(
        SimpleNamespace(),
        code=code,
        actor_id=SHOPKEEPER_ID,
        selection=selection,
        now_utc=NOW_UTC,
        **kwargs,
    )


async def test_redeem_itemized_voucher_records_value_and_flips_state(store) -> None:
    store.campaigns[1] = _campaign(reward_type="voucher")
    voucher = _voucher(value="500.00")
    store.vouchers.append(voucher)

    receipt = await _redeem(voucher.voucher_code, _itemized(("Rasgulla", "120")), notes="counter 2")

    assert receipt.redeemed_value == Decimal("120.00")
    assert receipt.redemption_type == "voucher"
    assert voucher.is_redeemed is True
    assert voucher.redeemed_by_shopkeeper_id == SHOPKEEPER_ID

    assert len(store.history) == 1
    entry = store.history[0]
    assert entry.voucher_id == voucher.id
    assert entry.qr_code_id is None
    assert entry.shopkeeper_id == SHOPKEEPER_ID
    assert entry.redemption_value == Decimal("120.00")
    assert entry.notes == "counter 2"
    assert entry.redeemed_products == [
        {
            "product_id": None,
            "name": "Rasgulla",
            "quantity": 1,
            "unit_value": "120.00",
            "line_value": "120.00",
        }
    ]


async def test_redeem_by_scanned_qr_payload_of_voucher(store) -> None:
    store.campaigns[1] = _campaign()
    voucher = _voucher()
    store.vouchers.append(voucher)

    receipt = await _redeem(f"  {voucher.qr_code} ", _itemized(("Ladoo", "80")))

    assert receipt.voucher_code == voucher.voucher_code
    assert voucher.is_redeemed is True


async def test_restricted_voucher_rejects_product_outside_eligible_set(store) -> None:
    store.campaigns[1] = _campaign(reward_type="voucher_restricted")
    voucher = _voucher()
    store.vouchers.append(voucher)
    store.voucher_eligible[voucher.id] = [4, 5]
    store.products.update({pid: _product(pid) for pid in (4, 5, 6)})

    with pytest.raises(RedemptionValidationError) as exc_info:
        await _redeem(voucher.voucher_code, CatalogSelection(product_ids=(4, 6)))

    assert exc_info.value.reason == "PRODUCT_NOT_ELIGIBLE"
    assert voucher.is_redeemed is False
    assert store.mark_redeemed_calls == []
    assert store.history == []


async def test_restricted_voucher_prices_catalog_products(store) -> None:
    store.campaigns[1] = _campaign(reward_type="voucher_restricted")
    voucher = _voucher(value="300.00")
    store.vouchers.append(voucher)
    store.voucher_eligible[voucher.id] = [4, 5]
    store.products[4] = _product(4, retail_price="120.00")
    store.products[5] = _product(5, retail_price="80.50")

    receipt = await _redeem(voucher.voucher_code, CatalogSelection(product_ids=(4, 5, 4)))

    assert receipt.redemption_type == "voucher_restricted"
    assert receipt.redeemed_value == Decimal("200.50")
    assert [line["product_id"] for line in receipt.redeemed_products] == [4, 5]


async def test_restricted_voucher_with_unreadable_legacy_list_fails_closed(store) -> None:
    store.campaigns[1] = _campaign(reward_type="voucher_restricted")
    voucher = _voucher(legacy_eligible_products="[4, 5")
    store.vouchers.append(voucher)
    store.products[4] = _product(4)

    with pytest.raises(RedemptionValidationError) as exc_info:
        await _redeem(voucher.voucher_code, CatalogSelection(product_ids=(4,)))

    assert exc_info.value.reason == "ELIGIBLE_PRODUCTS_UNREADABLE"
    assert voucher.is_redeemed is False


async def test_restricted_voucher_reads_legacy_list_when_no_association_rows(store) -> None:
    store.campaigns[1] = _campaign(reward_type="voucher_restricted")
    voucher = _voucher(legacy_eligible_products="[4]")
    store.vouchers.append(voucher)
    store.products.update({pid: _product(pid) for pid in (4, 5)})

    with pytest.raises(RedemptionValidationError) as exc_info:
        await _redeem(voucher.voucher_code, CatalogSelection(product_ids=(5,)))
    assert exc_info.value.reason == "PRODUCT_NOT_ELIGIBLE"

    receipt = await _redeem(voucher.voucher_code, CatalogSelection(product_ids=(4,)))
    assert receipt.redeemed_value == Decimal("100.00")


async def test_selection_worth_more_than_voucher_is_rejected(store) -> None:
    store.campaigns[1] = _campaign()
    voucher = _voucher(value="100.00")
    store.vouchers.append(voucher)

    with pytest.raises(RedemptionValidationError) as exc_info:
        await _redeem(voucher.voucher_code, _itemized(("Rasgulla", "60"), ("Barfi", "60")))

    assert exc_info.value.reason == "VALUE_EXCEEDS_VOUCHER"
    assert voucher.is_redeemed is False


async def test_free_product_reward_uses_configured_quantities(store) -> None:
    store.campaigns[1] = _campaign(reward_type="free_product")
    voucher = _voucher(value="50.00")
    store.vouchers.append(voucher)
    store.free_rewards[1] = {7: 2}
    store.products[7] = _product(7, retail_price="40.00")

    receipt = await _redeem(voucher.voucher_code, CatalogSelection(product_ids=(7,)))

    assert receipt.redemption_type == "free_product"
    # Free products are not capped by the voucher's face value.
    assert receipt.redeemed_value == Decimal("80.00")
    assert receipt.redeemed_products[0]["quantity"] == 2


@pytest.mark.parametrize(
    ("reward_type", "selection", "reason"),
    [
        ("voucher", CatalogSelection(product_ids=(1,)), "SELECTION_KIND_MISMATCH"),
        ("voucher", ItemizedSelection(items=()), "EMPTY_SELECTION"),
        ("voucher_restricted", CatalogSelection(product_ids=()), "EMPTY_SELECTION"),
        ("voucher", ItemizedSelection(items=(ItemizedItem(name=" ", value=Decimal("5")),)), "INVALID_ITEM"),
        ("voucher", ItemizedSelection(items=(ItemizedItem(name="Peda", value=Decimal("0")),)), "INVALID_ITEM"),
        ("voucher_restricted", CatalogSelection(product_ids=(99,)), "PRODUCT_NOT_FOUND"),
    ],
)
async def test_invalid_selections_are_rejected(store, reward_type, selection, reason) -> None:
    store.campaigns[1] = _campaign(reward_type=reward_type)
    voucher = _voucher()
    store.vouchers.append(voucher)

    with pytest.raises(RedemptionValidationError) as exc_info:
        await _redeem(voucher.voucher_code, selection)

    assert exc_info.value.reason == reason
    assert voucher.is_redeemed is False


async def test_inactive_product_cannot_be_redeemed(store) -> None:
    store.campaigns[1] = _campaign(reward_type="voucher_restricted")
    voucher = _voucher()
    store.vouchers.append(voucher)
    store.products[4] = _product(4, is_active=False)

    with pytest.raises(RedemptionValidationError) as exc_info:
        await _redeem(voucher.voucher_code, CatalogSelection(product_ids=(4,)))

    assert exc_info.value.reason == "PRODUCT_NOT_FOUND"


async def test_second_redeem_of_same_voucher_is_rejected(store) -> None:
    store.campaigns[1] = _campaign()
    voucher = _voucher()
    store.vouchers.append(voucher)

    await _redeem(voucher.voucher_code, _itemized(("Rasgulla", "120")))
    with pytest.raises(RedemptionAlreadyRedeemedError):
        await _redeem(voucher.voucher_code, _itemized(("Rasgulla", "120")))

    assert len(store.history) == 1


async def test_lost_race_on_state_flip_reports_already_redeemed(store) -> None:
    store.campaigns[1] = _campaign()
    voucher = _voucher()
    store.vouchers.append(voucher)
    store.force_lost_race = True

    with pytest.raises(RedemptionAlreadyRedeemedError):
        await _redeem(voucher.voucher_code, _itemized(("Rasgulla", "120")))

    assert store.history == []


async def test_expired_voucher_reports_expired_even_when_redeemed(store) -> None:
    store.campaigns[1] = _campaign()
    voucher = _voucher(is_redeemed=True, expiry_date=NOW_UTC - timedelta(seconds=1))
    store.vouchers.append(voucher)

    with pytest.raises(RedemptionExpiredError):
        await _redeem(voucher.voucher_code, _itemized(("Rasgulla", "10")))


async def test_voucher_of_inactive_campaign_is_rejected(store) -> None:
    store.campaigns[1] = _campaign(is_active=False)
    voucher = _voucher()
    store.vouchers.append(voucher)

    with pytest.raises(RedemptionCampaignInactiveError):
        await _redeem(voucher.voucher_code, _itemized(("Rasgulla", "10")))


async def test_voucher_outside_campaign_window_is_rejected(store) -> None:
    campaign = _campaign()
    campaign.end_date = NOW_UTC - timedelta(minutes=1)
    store.campaigns[1] = campaign
    store.vouchers.append(_voucher())

    with pytest.raises(RedemptionCampaignInactiveError):
        await _redeem(store.vouchers[0].voucher_code, _itemized(("Rasgulla", "10")))


async def test_redeem_rejects_campaign_qr_code(store) -> None:
    store.campaigns[1] = _campaign()
    qr_code = _qr_code()
    store.qr_codes.append(qr_code)

    with pytest.raises(RedemptionValidationError) as exc_info:
        await _redeem(qr_code.code, _itemized(("Rasgulla", "10")))

    assert exc_info.value.reason == "NOT_A_VOUCHER"


async def test_unknown_and_blank_codes(store) -> None:
    with pytest.raises(RedemptionNotFoundError):
        await _redeem("VCH-NOPE", _itemized(("Rasgulla", "10")))
    with pytest.raises(RedemptionValidationError) as exc_info:
        await _redeem("   ", _itemized(("Rasgulla", "10")))
    assert exc_info.value.reason == "EMPTY_CODE"


async def test_validate_voucher_is_read_only_and_repeatable(store) -> None:
    store.campaigns[1] = _campaign(reward_type="voucher_restricted")
    voucher = _voucher()
    store.vouchers.append(voucher)
    store.voucher_eligible[voucher.id] = [4]
    store.products[4] = _product(4)

    first = await RedemptionService.validate(SimpleNamespace(), code=voucher.voucher_code, now_utc=NOW_UTC)
    second = await RedemptionService.validate(SimpleNamespace(), code=voucher.voucher_code, now_utc=NOW_UTC)

    assert first == second
    assert first.kind == "voucher"
    assert first.value == Decimal("500.00")
    assert first.reseller_name == "Ravi Traders"
    assert [product.id for product in first.eligible_products] == [4]
    assert voucher.is_redeemed is False
    assert store.mark_redeemed_calls == []


async def test_validate_voucher_with_unreadable_legacy_list_shows_no_products(store) -> None:
    store.campaigns[1] = _campaign(reward_type="voucher_restricted")
    voucher = _voucher(legacy_eligible_products="{broken")
    store.vouchers.append(voucher)

    preview = await RedemptionService.validate(SimpleNamespace(), code=voucher.voucher_code, now_utc=NOW_UTC)

    assert preview.eligible_products == ()


async def test_validate_qr_code_shows_campaign_products_and_points(store) -> None:
    store.campaigns[1] = _campaign(points_per_scan=25)
    store.campaign_eligible[1] = [4, 5]
    store.products.update({pid: _product(pid) for pid in (4, 5)})
    qr_code = _qr_code()
    store.qr_codes.append(qr_code)

    preview = await RedemptionService.validate(SimpleNamespace(), code=qr_code.code, now_utc=NOW_UTC)

    assert preview.kind == "qr_code"
    assert preview.points_required == 25
    assert preview.value is None
    assert [product.id for product in preview.eligible_products] == [4, 5]


async def test_validate_expired_qr_code_reports_expired_regardless_of_flag(store) -> None:
    store.campaigns[1] = _campaign()
    for index, is_redeemed in enumerate((False, True), start=1):
        store.qr_codes.append(
            _qr_code(index, is_redeemed=is_redeemed, expiry_date=NOW_UTC - timedelta(days=1))
        )

    for qr_code in store.qr_codes:
        with pytest.raises(RedemptionExpiredError):
            await RedemptionService.validate(SimpleNamespace(), code=qr_code.code, now_utc=NOW_UTC)


async def test_validate_code_of_missing_campaign_is_not_found(store) -> None:
    store.vouchers.append(_voucher(campaign_id=77))

    with pytest.raises(RedemptionNotFoundError):
        await RedemptionService.validate(
            SimpleNamespace(),
            code=store.vouchers[0].voucher_code,
            now_utc=NOW_UTC,
        )
