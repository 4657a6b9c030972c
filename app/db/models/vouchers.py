from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BOOLEAN,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class Voucher(Base):
    __tablename__ = "vouchers"
    __table_args__ = (
        CheckConstraint("value >= 0", name="ck_vouchers_value_non_negative"),
        CheckConstraint("points_required >= 0", name="ck_vouchers_points_required_non_negative"),
        CheckConstraint(
            "(is_redeemed = false AND redeemed_at IS NULL AND redeemed_by_shopkeeper_id IS NULL) "
            "OR (is_redeemed = true AND redeemed_at IS NOT NULL AND redeemed_by_shopkeeper_id IS NOT NULL)",
            name="ck_vouchers_redeemed_consistency",
        ),
        Index("idx_vouchers_reseller_created", "reseller_id", "created_at"),
        Index("idx_vouchers_campaign", "campaign_id"),
        Index("idx_vouchers_expiry", "expiry_date"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    voucher_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    qr_code: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    reseller_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    campaign_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("campaigns.id"), nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    points_required: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    legacy_eligible_products: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_redeemed: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("false"))
    redeemed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    redeemed_by_shopkeeper_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id"),
        nullable=True,
    )
    expiry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
