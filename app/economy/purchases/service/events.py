from __future__ import annotations

import structlog

from app.db.models.purchases import Purchase
from app.economy.purchases.types import CreditsAwarded

logger = structlog.get_logger("app.economy.purchases.settlement")


def _log_purchase_settled(
    *,
    purchase: Purchase,
    credits_awarded: CreditsAwarded,
    credit_balance_after: int,
) -> None:
    logger.info(
        "purchase_settled",
        purchase_id=str(purchase.id),
        user_id=purchase.user_id,
        product_id=purchase.product_id,
        amount=str(purchase.amount),
        credits_used=purchase.credits_used,
        cash_amount=str(purchase.cash_amount),
        is_first_purchase=purchase.is_first_purchase,
        referral_credit_awarded=purchase.referral_credit_awarded,
        referrer_credits_awarded=credits_awarded.referrer,
        user_credits_awarded=credits_awarded.user,
        credit_balance_after=credit_balance_after,
    )
