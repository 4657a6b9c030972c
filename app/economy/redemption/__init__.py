from app.economy.redemption.qr_earn import redeem_qr_code
from app.economy.redemption.qr_info import QRInfoResolver
from app.economy.redemption.reports import RedemptionReports
from app.economy.redemption.service import RedemptionService

__all__ = ["QRInfoResolver", "RedemptionReports", "RedemptionService", "redeem_qr_code"]
