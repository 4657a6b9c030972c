from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import AppendOnlyMixin, Base


class CampaignPointsHistory(AppendOnlyMixin, Base):
    __tablename__ = "campaign_points_history"
    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_campaign_points_history_delta_non_zero"),
        CheckConstraint(
            "available_after >= 0",
            name="ck_campaign_points_history_available_after_non_negative",
        ),
        Index(
            "idx_campaign_points_history_pair_created",
            "campaign_id",
            "reseller_id",
            "created_at",
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("campaigns.id"), nullable=False)
    reseller_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    available_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(96), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
