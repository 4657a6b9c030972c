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
    String,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import AppendOnlyMixin, Base


class RedemptionHistory(AppendOnlyMixin, Base):
    __tablename__ = "redemption_history"
    __table_args__ = (
        CheckConstraint(
            "redemption_type IN ('voucher','voucher_restricted','free_product','qr_points')",
            name="ck_redemption_history_type",
        ),
        CheckConstraint("points >= 0", name="ck_redemption_history_points_non_negative"),
        CheckConstraint(
            "redemption_value IS NULL OR redemption_value >= 0",
            name="ck_redemption_history_value_non_negative",
        ),
        CheckConstraint(
            "(voucher_id IS NOT NULL) <> (qr_code_id IS NOT NULL)",
            name="ck_redemption_history_single_source",
        ),
        Index("idx_redemption_history_user_redeemed", "user_id", "redeemed_at"),
        Index("idx_redemption_history_shopkeeper_redeemed", "shopkeeper_id", "redeemed_at"),
        Index("idx_redemption_history_reseller_redeemed", "reseller_id", "redeemed_at"),
        Index("idx_redemption_history_campaign", "campaign_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    reseller_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=True)
    shopkeeper_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id"),
        nullable=True,
    )
    campaign_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("campaigns.id"),
        nullable=True,
    )
    voucher_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("vouchers.id"),
        unique=True,
        nullable=True,
    )
    qr_code_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("qr_codes.id"),
        unique=True,
        nullable=True,
    )
    code: Mapped[str] = mapped_column(String(255), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    redeemed_products: Mapped[list[dict[str, object]]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'[]'::jsonb"),
    )
    redemption_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    redemption_type: Mapped[str] = mapped_column(String(32), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    redeemed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
