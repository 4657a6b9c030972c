from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BOOLEAN,
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class QRCode(Base):
    __tablename__ = "qr_codes"
    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_qr_codes_points_non_negative"),
        CheckConstraint(
            "(is_redeemed = false AND redeemed_at IS NULL AND redeemed_by_user_id IS NULL) "
            "OR (is_redeemed = true AND redeemed_at IS NOT NULL AND redeemed_by_user_id IS NOT NULL)",
            name="ck_qr_codes_redeemed_consistency",
        ),
        Index("idx_qr_codes_campaign", "campaign_id"),
        Index("idx_qr_codes_reseller_created", "reseller_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    code: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    campaign_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("campaigns.id"), nullable=False)
    reseller_id: Mapped[int | None] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    is_redeemed: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("false"))
    redeemed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    redeemed_by_user_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("users.id"),
        nullable=True,
    )
    expiry_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
