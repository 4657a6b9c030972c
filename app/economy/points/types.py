from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(slots=True, frozen=True)
class PointsMovement:
    history_id: int
    user_id: int
    delta: int
    balance_after: int
    entry_type: str
    reason: str
    campaign_id: int | None
    created_at: datetime
    idempotent_replay: bool = False


@dataclass(slots=True, frozen=True)
class CampaignPointsMovement:
    history_id: int
    campaign_id: int
    reseller_id: int
    delta: int
    available_after: int
    reason: str
    created_at: datetime
    idempotent_replay: bool = False


@dataclass(slots=True, frozen=True)
class CampaignPointsSnapshot:
    campaign_id: int
    reseller_id: int
    total_points_earned: int
    points_used_for_vouchers: int
    available_points: int
    total_order_value: Decimal
    total_orders: int
    total_vouchers_generated: int
    total_voucher_value_generated: Decimal
    last_voucher_generated_at: datetime | None
