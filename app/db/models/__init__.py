from app.db.models.campaign_eligible_products import CampaignEligibleProduct
from app.db.models.campaign_free_product_rewards import CampaignFreeProductReward
from app.db.models.campaign_points import CampaignPoints
from app.db.models.campaign_points_history import CampaignPointsHistory
from app.db.models.campaigns import Campaign
from app.db.models.points_balances import PointsBalance
from app.db.models.points_history import PointsHistory
from app.db.models.products import Product
from app.db.models.qr_codes import QRCode
from app.db.models.redemption_history import RedemptionHistory
from app.db.models.users import User
from app.db.models.voucher_eligible_products import VoucherEligibleProduct
from app.db.models.vouchers import Voucher

__all__ = [
    "Campaign",
    "CampaignEligibleProduct",
    "CampaignFreeProductReward",
    "CampaignPoints",
    "CampaignPointsHistory",
    "PointsBalance",
    "PointsHistory",
    "Product",
    "QRCode",
    "RedemptionHistory",
    "User",
    "Voucher",
    "VoucherEligibleProduct",
]
