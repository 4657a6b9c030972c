from __future__ import annotations

from collections import defaultdict
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.models.redemption_history import RedemptionHistory
from app.db.repo.redemption_history_repo import RedemptionHistoryRepo
from app.economy.redemption.rewards import MONEY_QUANT
from app.economy.redemption.types import RedemptionHistoryItem, ShopkeeperStatistics, TopProduct


def _to_item(entry: RedemptionHistory) -> RedemptionHistoryItem:
    return RedemptionHistoryItem(
        id=entry.id,
        code=entry.code,
        redemption_type=entry.redemption_type,
        redemption_value=entry.redemption_value,
        points=entry.points,
        redeemed_products=tuple(entry.redeemed_products or ()),
        user_id=entry.user_id,
        reseller_id=entry.reseller_id,
        shopkeeper_id=entry.shopkeeper_id,
        campaign_id=entry.campaign_id,
        notes=entry.notes,
        redeemed_at=entry.redeemed_at,
    )


def _line_value(line: dict[str, object]) -> Decimal:
    try:
        return Decimal(str(line.get("line_value", "0")))
    except InvalidOperation:
        return Decimal("0")


def _line_quantity(line: dict[str, object]) -> int:
    quantity = line.get("quantity", 1)
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        return 1
    return quantity


def rank_redeemed_products(
    snapshots: list[list[dict[str, object]]],
    *,
    limit: int,
) -> list[TopProduct]:
    quantities: dict[tuple[int | None, str], int] = defaultdict(int)
    values: dict[tuple[int | None, str], Decimal] = defaultdict(Decimal)
    for snapshot in snapshots:
        for line in snapshot:
            name = str(line.get("name") or "").strip()
            if not name:
                continue
            product_id = line.get("product_id")
            key = (product_id if isinstance(product_id, int) else None, name)
            quantities[key] += _line_quantity(line)
            values[key] += _line_value(line)

    ranked = sorted(
        quantities,
        key=lambda key: (-quantities[key], -values[key], key[1]),
    )
    return [
        TopProduct(
            product_id=key[0],
            name=key[1],
            quantity=quantities[key],
            total_value=values[key].quantize(MONEY_QUANT),
        )
        for key in ranked[:limit]
    ]


class RedemptionReports:
    @staticmethod
    async def shopkeeper_history(
        session: AsyncSession,
        *,
        shopkeeper_id: int,
        limit: int = 100,
    ) -> list[RedemptionHistoryItem]:
        entries = await RedemptionHistoryRepo.list_for_shopkeeper(
            session,
            shopkeeper_id=shopkeeper_id,
            limit=limit,
        )
        return [_to_item(entry) for entry in entries]

    @staticmethod
    async def reseller_history(
        session: AsyncSession,
        *,
        reseller_id: int,
        limit: int = 100,
    ) -> list[RedemptionHistoryItem]:
        entries = await RedemptionHistoryRepo.list_for_reseller(
            session,
            reseller_id=reseller_id,
            limit=limit,
        )
        return [_to_item(entry) for entry in entries]

    @staticmethod
    async def shopkeeper_statistics(
        session: AsyncSession,
        *,
        shopkeeper_id: int,
        now_utc: datetime | None = None,
    ) -> ShopkeeperStatistics:
        now_utc = now_utc or datetime.now(timezone.utc)
        day_start = datetime.combine(now_utc.date(), time.min, tzinfo=timezone.utc)

        total_count, total_value = await RedemptionHistoryRepo.aggregate_for_shopkeeper(
            session,
            shopkeeper_id=shopkeeper_id,
        )
        today_count, today_value = await RedemptionHistoryRepo.aggregate_for_shopkeeper(
            session,
            shopkeeper_id=shopkeeper_id,
            since_utc=day_start,
        )
        average = (total_value / total_count) if total_count else Decimal("0")
        return ShopkeeperStatistics(
            total_redemptions=total_count,
            total_value=total_value.quantize(MONEY_QUANT),
            today_redemptions=today_count,
            today_value=today_value.quantize(MONEY_QUANT),
            average_value=average.quantize(MONEY_QUANT),
        )

    @staticmethod
    async def shopkeeper_top_products(
        session: AsyncSession,
        *,
        shopkeeper_id: int,
        limit: int | None = None,
        now_utc: datetime | None = None,
    ) -> list[TopProduct]:
        """Rank products redeemed by the shop within the recent reporting window."""
        settings = get_settings()
        now_utc = now_utc or datetime.now(timezone.utc)
        snapshots = await RedemptionHistoryRepo.list_redeemed_products_for_shopkeeper(
            session,
            shopkeeper_id=shopkeeper_id,
            since_utc=now_utc - timedelta(days=settings.top_products_window_days),
            limit=settings.top_products_max_redemptions,
        )
        return rank_redeemed_products(
            snapshots,
            limit=limit if limit is not None else settings.top_products_limit,
        )
