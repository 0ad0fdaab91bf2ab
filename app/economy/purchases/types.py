from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from app.db.models.purchases import Purchase


@dataclass(frozen=True, slots=True)
class CreditsAwarded:
    referrer: int = 0
    user: int = 0


@dataclass(frozen=True, slots=True)
class PaymentQuote:
    amount: Decimal
    credits_used: int
    credit_amount: Decimal
    cash_amount: Decimal


@dataclass(slots=True)
class SettlementResult:
    purchase: Purchase
    credits_awarded: CreditsAwarded
    idempotent_replay: bool
    credit_balance_after: int | None = None
