from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass(slots=True, frozen=True)
class ItemizedItem:
    name: str
    value: Decimal


@dataclass(slots=True, frozen=True)
class ItemizedSelection:
    """Free-text products typed in by the shopkeeper, each with its own value."""

    items: tuple[ItemizedItem, ...]


@dataclass(slots=True, frozen=True)
class CatalogSelection:
    """Catalog product ids picked from the voucher's or campaign's product list."""

    product_ids: tuple[int, ...]


ProductSelection = ItemizedSelection | CatalogSelection


@dataclass(slots=True, frozen=True)
class EligibleProductView:
    id: int
    name: str
    description: str | None
    category: str
    brand: str | None
    retail_price: Decimal


@dataclass(slots=True, frozen=True)
class RedemptionPreview:
    kind: str
    code: str
    voucher_code: str | None
    value: Decimal | None
    points_required: int
    reseller_id: int | None
    reseller_name: str | None
    campaign_id: int
    campaign_name: str
    reward_type: str
    expiry_date: datetime | None
    eligible_products: tuple[EligibleProductView, ...] = field(default_factory=tuple)


@dataclass(slots=True, frozen=True)
class RedemptionReceipt:
    history_id: int
    code: str
    voucher_code: str
    redemption_type: str
    redeemed_value: Decimal
    redeemed_products: tuple[dict[str, object], ...]
    redeemed_at: datetime


@dataclass(slots=True, frozen=True)
class QRPointsReceipt:
    history_id: int
    code: str
    campaign_id: int
    points_credited: int
    balance_after: int
    redeemed_at: datetime


@dataclass(slots=True, frozen=True)
class QRInfoPreview:
    preview: RedemptionPreview
    campaign_description: str
    product_type: str
    campaign_start: datetime
    campaign_end: datetime
    customer_id: int | None = None
    customer_name: str | None = None


@dataclass(slots=True, frozen=True)
class RedemptionHistoryItem:
    id: int
    code: str
    redemption_type: str
    redemption_value: Decimal | None
    points: int
    redeemed_products: tuple[dict[str, object], ...]
    user_id: int
    reseller_id: int | None
    shopkeeper_id: int | None
    campaign_id: int | None
    notes: str | None
    redeemed_at: datetime


@dataclass(slots=True, frozen=True)
class ShopkeeperStatistics:
    total_redemptions: int
    total_value: Decimal
    today_redemptions: int
    today_value: Decimal
    average_value: Decimal


@dataclass(slots=True, frozen=True)
class TopProduct:
    product_id: int | None
    name: str
    quantity: int
    total_value: Decimal
