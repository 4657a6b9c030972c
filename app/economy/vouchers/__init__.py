from app.economy.vouchers.service import VoucherIssuanceService

__all__ = ["VoucherIssuanceService"]
