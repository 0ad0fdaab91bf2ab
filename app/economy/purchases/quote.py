from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from app.economy.purchases.constants import CREDIT_VALUE, MONEY_LIMIT, MONEY_QUANTUM
from app.economy.purchases.errors import SettlementValidationError
from app.economy.purchases.types import PaymentQuote


def to_money(value: Decimal | int | float | str, *, exact: bool = False) -> Decimal:
    """Converts a caller value to a cent-precision Decimal.

    With ``exact=True`` sub-cent input is rejected instead of rounded.
    """
    try:
        # float goes through str() so 32.99 stays 32.99 instead of its binary expansion
        decimal_value = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise SettlementValidationError(f"invalid money amount: {value!r}") from exc
    if not decimal_value.is_finite():
        raise SettlementValidationError(f"invalid money amount: {value!r}")
    if abs(decimal_value) >= MONEY_LIMIT:
        raise SettlementValidationError(f"money amount out of range: {value!r}")
    try:
        quantized = decimal_value.quantize(MONEY_QUANTUM)
    except InvalidOperation as exc:
        raise SettlementValidationError(f"invalid money amount: {value!r}") from exc
    if exact and quantized != decimal_value:
        raise SettlementValidationError(f"money amount has more than two decimal places: {value!r}")
    return quantized


def credits_to_money(credits: int) -> Decimal:
    return to_money(credits * CREDIT_VALUE)


def quote_hybrid_payment(amount: Decimal | int | float | str, available_credits: int) -> PaymentQuote:
    """Splits a price into the largest whole-credit portion and a cash remainder.

    Credits never over-cover the price: a $32.99 item with 5 credits available
    uses 3 credits ($30.00) and $2.99 cash.
    """
    price = to_money(amount)
    if price <= 0:
        raise SettlementValidationError("amount must be greater than 0")
    if available_credits < 0:
        raise SettlementValidationError("available credits must not be negative")

    max_credits = int((price / CREDIT_VALUE).to_integral_value(rounding=ROUND_FLOOR))
    credits_used = min(available_credits, max_credits)
    credit_amount = credits_to_money(credits_used)
    return PaymentQuote(
        amount=price,
        credits_used=credits_used,
        credit_amount=credit_amount,
        cash_amount=price - credit_amount,
    )
