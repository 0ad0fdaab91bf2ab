from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from app.db.models.purchases import Purchase
from app.economy.purchases.constants import REFERRAL_CREDITS
from app.economy.purchases.types import CreditsAwarded, SettlementResult

from .validation import _SettlementSplit


def _build_purchase(
    split: _SettlementSplit,
    *,
    user_id: int,
    product_id: int,
    product_name: str,
    is_first_purchase: bool,
    idempotency_key: str | None,
    now_utc: datetime,
) -> Purchase:
    return Purchase(
        id=uuid4(),
        user_id=user_id,
        product_id=product_id,
        product_name=product_name,
        amount=split.amount,
        credits_used=split.credits_used,
        credit_amount=split.credit_amount,
        cash_amount=split.cash_amount,
        is_first_purchase=is_first_purchase,
        referral_credit_awarded=False,
        idempotency_key=idempotency_key,
        created_at=now_utc,
    )


def _as_replay_result(purchase: Purchase) -> SettlementResult:
    awarded = REFERRAL_CREDITS if purchase.referral_credit_awarded else 0
    return SettlementResult(
        purchase=purchase,
        credits_awarded=CreditsAwarded(referrer=awarded, user=awarded),
        idempotent_replay=True,
    )
