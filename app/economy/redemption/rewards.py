from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import ClassVar

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.campaigns import Campaign
from app.db.models.products import Product
from app.db.models.vouchers import Voucher
from app.db.repo.campaigns_repo import CampaignsRepo
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.vouchers_repo import VouchersRepo
from app.economy.redemption.eligibility import (
    decode_eligible_product_ids,
    decode_eligible_product_ids_strict,
    is_eligible,
)
from app.economy.redemption.errors import EligibilityDecodeError, RedemptionValidationError
from app.economy.redemption.types import CatalogSelection, ItemizedSelection, ProductSelection

MONEY_QUANT = Decimal("0.01")


@dataclass(slots=True, frozen=True)
class VoucherReward:
    redemption_type: ClassVar[str] = "voucher"
    capped_by_voucher_value: ClassVar[bool] = True


@dataclass(slots=True, frozen=True)
class RestrictedVoucherReward:
    redemption_type: ClassVar[str] = "voucher_restricted"
    capped_by_voucher_value: ClassVar[bool] = True

    eligible_product_ids: frozenset[int] = field(default_factory=frozenset)


@dataclass(slots=True, frozen=True)
class FreeProductReward:
    redemption_type: ClassVar[str] = "free_product"
    capped_by_voucher_value: ClassVar[bool] = False

    quantities: Mapping[int, int] = field(default_factory=dict)


RewardConfig = VoucherReward | RestrictedVoucherReward | FreeProductReward


@dataclass(slots=True, frozen=True)
class PricedSelection:
    value: Decimal
    products: tuple[dict[str, object], ...]


async def resolve_voucher_eligible_ids(
    session: AsyncSession,
    *,
    voucher: Voucher,
    strict: bool,
) -> frozenset[int]:
    association_ids = await VouchersRepo.list_eligible_product_ids(session, voucher_id=voucher.id)
    if association_ids:
        return frozenset(association_ids)
    decode = decode_eligible_product_ids_strict if strict else decode_eligible_product_ids
    return decode(voucher.legacy_eligible_products)


async def load_reward_config(
    session: AsyncSession,
    *,
    campaign: Campaign,
    voucher: Voucher,
) -> RewardConfig:
    if campaign.reward_type == "voucher":
        return VoucherReward()

    if campaign.reward_type == "voucher_restricted":
        try:
            eligible_ids = await resolve_voucher_eligible_ids(session, voucher=voucher, strict=True)
        except EligibilityDecodeError as exc:
            raise RedemptionValidationError("ELIGIBLE_PRODUCTS_UNREADABLE") from exc
        return RestrictedVoucherReward(eligible_product_ids=eligible_ids)

    if campaign.reward_type == "free_product":
        rewards = await CampaignsRepo.list_free_product_rewards(session, campaign_id=campaign.id)
        return FreeProductReward(
            quantities={reward.product_id: reward.quantity for reward in rewards}
        )

    raise RedemptionValidationError("UNSUPPORTED_REWARD_TYPE")


def _distinct_product_ids(selection: ProductSelection) -> tuple[int, ...]:
    if not isinstance(selection, CatalogSelection):
        raise RedemptionValidationError("SELECTION_KIND_MISMATCH")
    return tuple(dict.fromkeys(selection.product_ids))


async def _load_active_products(
    session: AsyncSession,
    product_ids: tuple[int, ...],
) -> list[Product]:
    products = await ProductsRepo.list_by_ids(session, product_ids, active_only=True)
    by_id = {product.id: product for product in products}
    if any(product_id not in by_id for product_id in product_ids):
        raise RedemptionValidationError("PRODUCT_NOT_FOUND")
    return [by_id[product_id] for product_id in product_ids]


def _catalog_line(product: Product, *, quantity: int) -> dict[str, object]:
    unit_value = Decimal(product.retail_price).quantize(MONEY_QUANT)
    return {
        "product_id": product.id,
        "name": product.name,
        "category": product.category,
        "brand": product.brand,
        "quantity": quantity,
        "unit_value": str(unit_value),
        "line_value": str(unit_value * quantity),
    }


def _price_itemized(selection: ProductSelection) -> PricedSelection:
    if not isinstance(selection, ItemizedSelection):
        raise RedemptionValidationError("SELECTION_KIND_MISMATCH")

    lines: list[dict[str, object]] = []
    total = Decimal("0")
    for item in selection.items:
        name = item.name.strip()
        if not name or item.value <= 0:
            raise RedemptionValidationError("INVALID_ITEM")
        value = Decimal(item.value).quantize(MONEY_QUANT)
        total += value
        lines.append(
            {
                "product_id": None,
                "name": name,
                "quantity": 1,
                "unit_value": str(value),
                "line_value": str(value),
            }
        )
    return PricedSelection(value=total, products=tuple(lines))


async def price_selection(
    session: AsyncSession,
    *,
    reward: RewardConfig,
    selection: ProductSelection,
) -> PricedSelection:
    if not (
        selection.items if isinstance(selection, ItemizedSelection) else selection.product_ids
    ):
        raise RedemptionValidationError("EMPTY_SELECTION")
    if isinstance(reward, VoucherReward):
        return _price_itemized(selection)

    product_ids = _distinct_product_ids(selection)
    if isinstance(reward, RestrictedVoucherReward):
        if not is_eligible(product_ids, reward.eligible_product_ids):
            raise RedemptionValidationError("PRODUCT_NOT_ELIGIBLE")
        quantities = {product_id: 1 for product_id in product_ids}
    else:
        if any(product_id not in reward.quantities for product_id in product_ids):
            raise RedemptionValidationError("PRODUCT_NOT_ELIGIBLE")
        quantities = {product_id: reward.quantities[product_id] for product_id in product_ids}

    products = await _load_active_products(session, product_ids)
    lines = tuple(
        _catalog_line(product, quantity=quantities[product.id]) for product in products
    )
    total = sum(
        (Decimal(line["line_value"]) for line in lines),
        Decimal("0"),
    )
    return PricedSelection(value=total, products=lines)
