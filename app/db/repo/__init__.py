from app.db.repo.products_repo import ProductsRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.referrals_repo import ReferralsRepo
from app.db.repo.users_repo import UsersRepo

__all__ = [
    "ProductsRepo",
    "PurchasesRepo",
    "ReferralsRepo",
    "UsersRepo",
]
