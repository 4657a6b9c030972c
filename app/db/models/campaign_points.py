from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class CampaignPoints(Base):
    __tablename__ = "campaign_points"
    __table_args__ = (
        UniqueConstraint("campaign_id", "reseller_id", name="uq_campaign_points_campaign_reseller"),
        CheckConstraint("available_points >= 0", name="ck_campaign_points_available_non_negative"),
        CheckConstraint(
            "available_points = total_points_earned - points_used_for_vouchers",
            name="ck_campaign_points_available_consistency",
        ),
        Index("idx_campaign_points_reseller", "reseller_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
    )
    reseller_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    total_points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points_used_for_vouchers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_order_value: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, server_default=text("0")
    )
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_vouchers_generated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_voucher_value_generated: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, server_default=text("0")
    )
    last_voucher_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
