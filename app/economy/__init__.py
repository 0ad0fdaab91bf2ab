from app.economy.purchases.service import PurchaseService
from app.economy.referrals.service import ReferralService

__all__ = [
    "PurchaseService",
    "ReferralService",
]
