from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(slots=True, frozen=True)
class IssuedVoucher:
    voucher_id: int
    voucher_code: str
    qr_code: str
    reseller_id: int
    campaign_id: int
    value: Decimal
    points_required: int
    expiry_date: datetime
    eligible_product_ids: tuple[int, ...]
    available_points_after: int | None
