from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field


class ValidateCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=255)


class ItemizedItemPayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    value: Decimal = Field(gt=0, max_digits=18, decimal_places=2)


class RedeemVoucherRequest(BaseModel):
    """Redeem a voucher against catalog products or itemized lines.

    Send either `product_ids` or `items`, never both. For `voucher` and
    `voucher_restricted` campaigns the selected total may not exceed the
    voucher value; a larger total is rejected with `VALUE_EXCEEDS_VOUCHER`.
    `free_product` redemptions are not capped.
    """

    code: str = Field(min_length=1, max_length=255)
    actor_id: int = Field(gt=0)
    product_ids: list[int] | None = None
    items: list[ItemizedItemPayload] | None = None
    notes: str | None = Field(default=None, max_length=500)


class QRInfoRequest(BaseModel):
    payload: str = Field(max_length=2048)


class RedeemQRCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=255)
    customer_id: int = Field(gt=0)
    points: int | None = Field(default=None, gt=0)


class EligibleProductResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    category: str
    brand: str | None = None
    retail_price: Decimal


class RedemptionPreviewResponse(BaseModel):
    kind: str
    code: str
    voucher_code: str | None = None
    value: Decimal | None = None
    points_required: int
    reseller_id: int | None = None
    reseller_name: str | None = None
    campaign_id: int
    campaign_name: str
    reward_type: str
    expiry_date: datetime | None = None
    eligible_products: list[EligibleProductResponse]


class QRInfoResponse(BaseModel):
    preview: RedemptionPreviewResponse
    campaign_description: str
    product_type: str
    campaign_start: datetime
    campaign_end: datetime
    customer_id: int | None = None
    customer_name: str | None = None


class RedemptionReceiptResponse(BaseModel):
    history_id: int
    code: str
    voucher_code: str
    redemption_type: str
    redeemed_value: Decimal
    redeemed_products: list[dict[str, Any]]
    redeemed_at: datetime


class QRPointsReceiptResponse(BaseModel):
    history_id: int
    code: str
    campaign_id: int
    points_credited: int = Field(gt=0)
    balance_after: int = Field(ge=0)
    redeemed_at: datetime


class RedemptionHistoryItemResponse(BaseModel):
    id: int
    code: str
    redemption_type: str
    redemption_value: Decimal | None = None
    points: int
    redeemed_products: list[dict[str, Any]]
    user_id: int
    reseller_id: int | None = None
    shopkeeper_id: int | None = None
    campaign_id: int | None = None
    notes: str | None = None
    redeemed_at: datetime


class ShopkeeperStatisticsResponse(BaseModel):
    total_redemptions: int = Field(ge=0)
    total_value: Decimal
    today_redemptions: int = Field(ge=0)
    today_value: Decimal
    average_value: Decimal


class TopProductResponse(BaseModel):
    product_id: int | None = None
    name: str
    quantity: int = Field(ge=1)
    total_value: Decimal


class PointsAmountRequest(BaseModel):
    user_id: int = Field(gt=0)
    amount: int = Field(gt=0)
    reason: str = Field(min_length=1, max_length=255)
    campaign_id: int | None = Field(default=None, gt=0)
    idempotency_key: str | None = Field(default=None, min_length=1, max_length=96)


class PointsMovementResponse(BaseModel):
    history_id: int
    user_id: int
    delta: int
    balance_after: int = Field(ge=0)
    entry_type: str
    reason: str
    campaign_id: int | None = None
    created_at: datetime
    idempotent_replay: bool


class PointsBalanceResponse(BaseModel):
    user_id: int
    balance: int = Field(ge=0)


class CampaignPointsCreditRequest(BaseModel):
    campaign_id: int = Field(gt=0)
    reseller_id: int = Field(gt=0)
    amount: int = Field(gt=0)
    reason: str = Field(min_length=1, max_length=255)
    order_value: Decimal | None = Field(default=None, ge=0, max_digits=18, decimal_places=2)
    idempotency_key: str | None = Field(default=None, min_length=1, max_length=96)


class CampaignPointsMovementResponse(BaseModel):
    history_id: int
    campaign_id: int
    reseller_id: int
    delta: int
    available_after: int = Field(ge=0)
    reason: str
    created_at: datetime
    idempotent_replay: bool


class CampaignPointsResponse(BaseModel):
    campaign_id: int
    reseller_id: int
    total_points_earned: int = Field(ge=0)
    points_used_for_vouchers: int = Field(ge=0)
    available_points: int = Field(ge=0)
    total_order_value: Decimal
    total_orders: int = Field(ge=0)
    total_vouchers_generated: int = Field(ge=0)
    total_voucher_value_generated: Decimal
    last_voucher_generated_at: datetime | None = None


class IssueVoucherRequest(BaseModel):
    reseller_id: int = Field(gt=0)
    campaign_id: int = Field(gt=0)
    value: Decimal = Field(gt=0, max_digits=18, decimal_places=2)
    points_required: int = Field(default=0, ge=0)
    eligible_product_ids: list[int] | None = None
    eligible_products: str | None = Field(default=None, max_length=4000)
    expiry_date: datetime | None = None


class IssuedVoucherResponse(BaseModel):
    voucher_id: int
    voucher_code: str
    qr_code: str
    reseller_id: int
    campaign_id: int
    value: Decimal
    points_required: int
    expiry_date: datetime
    eligible_product_ids: list[int]
    available_points_after: int | None = None
