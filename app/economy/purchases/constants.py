from __future__ import annotations

from decimal import Decimal

CREDIT_VALUE = 10
REFERRAL_CREDITS = 2
MONEY_QUANTUM = Decimal("0.01")
# Numeric(12, 2) columns hold at most ten integer digits.
MONEY_LIMIT = Decimal("1e10")
