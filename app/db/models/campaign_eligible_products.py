from __future__ import annotations

from sqlalchemy import BOOLEAN, BigInteger, CheckConstraint, ForeignKey, Index, Integer, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class CampaignEligibleProduct(Base):
    __tablename__ = "campaign_eligible_products"
    __table_args__ = (
        UniqueConstraint("campaign_id", "product_id", name="uq_campaign_eligible_products_pair"),
        CheckConstraint("point_cost > 0", name="ck_campaign_eligible_products_point_cost_positive"),
        CheckConstraint(
            "redemption_limit IS NULL OR redemption_limit > 0",
            name="ck_campaign_eligible_products_redemption_limit_positive",
        ),
        Index("idx_campaign_eligible_products_product", "product_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    campaign_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("campaigns.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id"), nullable=False)
    point_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    redemption_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("true"))
