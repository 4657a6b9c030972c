from __future__ import annotations

from sqlalchemy import BigInteger, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class VoucherEligibleProduct(Base):
    __tablename__ = "voucher_eligible_products"
    __table_args__ = (Index("idx_voucher_eligible_products_product", "product_id"),)

    voucher_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("vouchers.id", ondelete="CASCADE"),
        primary_key=True,
    )
    product_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("products.id"),
        primary_key=True,
    )
