from app.db.models.products import Product
from app.db.models.purchases import Purchase
from app.db.models.referrals import Referral
from app.db.models.users import User

__all__ = [
    "Product",
    "Purchase",
    "Referral",
    "User",
]
