from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.products import Product


class ProductsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, product_id: int) -> Product | None:
        return await session.get(Product, product_id)

    @staticmethod
    async def list_by_ids(
        session: AsyncSession,
        product_ids: Iterable[int],
        *,
        active_only: bool = False,
    ) -> list[Product]:
        ids = tuple(sorted({int(product_id) for product_id in product_ids}))
        if not ids:
            return []
        stmt = select(Product).where(Product.id.in_(ids)).order_by(Product.id.asc())
        if active_only:
            stmt = stmt.where(Product.is_active.is_(True))
        result = await session.execute(stmt)
        return list(result.scalars().all())
