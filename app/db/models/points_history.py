from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import AppendOnlyMixin, Base


class PointsHistory(AppendOnlyMixin, Base):
    __tablename__ = "points_history"
    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_points_history_delta_non_zero"),
        CheckConstraint("balance_after >= 0", name="ck_points_history_balance_after_non_negative"),
        CheckConstraint(
            "entry_type IN ('EARNED','REDEEMED')",
            name="ck_points_history_entry_type",
        ),
        CheckConstraint(
            "(entry_type = 'EARNED' AND delta > 0) OR (entry_type = 'REDEEMED' AND delta < 0)",
            name="ck_points_history_direction",
        ),
        Index("idx_points_history_user_created", "user_id", "created_at"),
        Index("idx_points_history_campaign", "campaign_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    entry_type: Mapped[str] = mapped_column(String(16), nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    campaign_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("campaigns.id"),
        nullable=True,
    )
    idempotency_key: Mapped[str | None] = mapped_column(String(96), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
