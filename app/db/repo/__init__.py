from app.db.repo.campaign_points_repo import CampaignPointsRepo
from app.db.repo.campaigns_repo import CampaignsRepo
from app.db.repo.points_repo import PointsRepo
from app.db.repo.products_repo import ProductsRepo
from app.db.repo.qr_codes_repo import QRCodesRepo
from app.db.repo.redemption_history_repo import RedemptionHistoryRepo
from app.db.repo.users_repo import UsersRepo
from app.db.repo.vouchers_repo import VouchersRepo

__all__ = [
    "CampaignPointsRepo",
    "CampaignsRepo",
    "PointsRepo",
    "ProductsRepo",
    "QRCodesRepo",
    "RedemptionHistoryRepo",
    "UsersRepo",
    "VouchersRepo",
]
