from app.economy.points import CampaignPointsLedger, PointsLedger
from app.economy.redemption import QRInfoResolver, RedemptionReports, RedemptionService
from app.economy.vouchers import VoucherIssuanceService

__all__ = [
    "CampaignPointsLedger",
    "PointsLedger",
    "QRInfoResolver",
    "RedemptionReports",
    "RedemptionService",
    "VoucherIssuanceService",
]
