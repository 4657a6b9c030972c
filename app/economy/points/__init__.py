from app.economy.points.campaign_points import CampaignPointsLedger
from app.economy.points.service import PointsLedger

__all__ = ["CampaignPointsLedger", "PointsLedger"]
