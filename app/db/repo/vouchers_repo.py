from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.voucher_eligible_products import VoucherEligibleProduct
from app.db.models.vouchers import Voucher


class VouchersRepo:
    @staticmethod
    async def get_by_code(session: AsyncSession, code: str) -> Voucher | None:
        stmt = select(Voucher).where(or_(Voucher.voucher_code == code, Voucher.qr_code == code))
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def get_by_code_for_update(session: AsyncSession, code: str) -> Voucher | None:
        stmt = (
            select(Voucher)
            .where(or_(Voucher.voucher_code == code, Voucher.qr_code == code))
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def exists_with_code(session: AsyncSession, *, voucher_code: str, qr_code: str) -> bool:
        stmt = (
            select(Voucher.id)
            .where(or_(Voucher.voucher_code == voucher_code, Voucher.qr_code == qr_code))
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def list_eligible_product_ids(session: AsyncSession, *, voucher_id: int) -> list[int]:
        stmt = (
            select(VoucherEligibleProduct.product_id)
            .where(VoucherEligibleProduct.voucher_id == voucher_id)
            .order_by(VoucherEligibleProduct.product_id.asc())
        )
        result = await session.execute(stmt)
        return [int(product_id) for product_id in result.scalars().all()]

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        voucher: Voucher,
        eligible_product_ids: Iterable[int] = (),
    ) -> Voucher:
        session.add(voucher)
        await session.flush()
        for product_id in sorted(set(eligible_product_ids)):
            session.add(VoucherEligibleProduct(voucher_id=voucher.id, product_id=product_id))
        await session.flush()
        return voucher

    @staticmethod
    async def mark_redeemed(
        session: AsyncSession,
        *,
        voucher_id: int,
        shopkeeper_id: int,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(Voucher)
            .where(Voucher.id == voucher_id, Voucher.is_redeemed.is_(False))
            .values(
                is_redeemed=True,
                redeemed_at=now_utc,
                redeemed_by_shopkeeper_id=shopkeeper_id,
                updated_at=now_utc,
            )
        )
        result = await session.execute(stmt)
        return bool(result.rowcount)
