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
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class Campaign(Base):
    __tablename__ = "campaigns"
    __table_args__ = (
        CheckConstraint(
            "reward_type IN ('voucher','voucher_restricted','free_product')",
            name="ck_campaigns_reward_type",
        ),
        CheckConstraint("start_date <= end_date", name="ck_campaigns_window"),
        CheckConstraint("points_per_scan >= 0", name="ck_campaigns_points_per_scan_non_negative"),
        CheckConstraint(
            "voucher_generation_threshold IS NULL OR voucher_generation_threshold > 0",
            name="ck_campaigns_voucher_threshold_positive",
        ),
        Index("idx_campaigns_manufacturer", "manufacturer_id"),
        Index("idx_campaigns_active_window", "is_active", "start_date", "end_date"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False, server_default=text("''"))
    product_type: Mapped[str] = mapped_column(String(100), nullable=False, server_default=text("''"))
    reward_type: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default=text("'voucher'")
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("true"))
    manufacturer_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    points_per_scan: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    voucher_generation_threshold: Mapped[int | None] = mapped_column(Integer, nullable=True)
    voucher_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    voucher_validity_days: Mapped[int | None] = mapped_column(
        Integer, nullable=True, server_default=text("90")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
