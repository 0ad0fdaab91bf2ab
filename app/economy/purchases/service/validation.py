from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from app.economy.purchases.errors import SettlementValidationError
from app.economy.purchases.quote import credits_to_money, to_money


@dataclass(frozen=True, slots=True)
class _SettlementSplit:
    amount: Decimal
    credits_used: int
    credit_amount: Decimal
    cash_amount: Decimal


def _validate_settlement_split(
    *,
    amount: Decimal | int | float | str,
    credits_used: int,
    credit_amount: Decimal | int | float | str,
    cash_amount: Decimal | int | float | str,
) -> _SettlementSplit:
    resolved_amount = to_money(amount, exact=True)
    resolved_credit_amount = to_money(credit_amount, exact=True)
    resolved_cash_amount = to_money(cash_amount, exact=True)

    if resolved_amount <= 0:
        raise SettlementValidationError("amount must be greater than 0")
    if isinstance(credits_used, bool) or not isinstance(credits_used, int):
        raise SettlementValidationError("credits_used must be an integer")
    if credits_used < 0:
        raise SettlementValidationError("credits_used must not be negative")
    if resolved_credit_amount != credits_to_money(credits_used):
        raise SettlementValidationError("credit_amount must equal credits_used * CREDIT_VALUE")
    if resolved_cash_amount < 0:
        raise SettlementValidationError("cash_amount must not be negative")
    if resolved_credit_amount + resolved_cash_amount != resolved_amount:
        raise SettlementValidationError("credit_amount + cash_amount must equal amount")

    return _SettlementSplit(
        amount=resolved_amount,
        credits_used=credits_used,
        credit_amount=resolved_credit_amount,
        cash_amount=resolved_cash_amount,
    )


def _split_matches_purchase(split: _SettlementSplit, *, purchase) -> bool:
    return (
        to_money(purchase.amount) == split.amount
        and int(purchase.credits_used) == split.credits_used
        and to_money(purchase.credit_amount) == split.credit_amount
        and to_money(purchase.cash_amount) == split.cash_amount
    )
