from __future__ import annotations

from app.economy.purchases.quote import quote_hybrid_payment

from .builder import _as_replay_result, _build_purchase
from .runner import run_settlement
from .settlement import _debit_credits, _load_idempotent_replay, settle
from .validation import _validate_settlement_split


class PurchaseService:
    _as_replay_result = staticmethod(_as_replay_result)
    _build_purchase = staticmethod(_build_purchase)
    _debit_credits = staticmethod(_debit_credits)
    _load_idempotent_replay = staticmethod(_load_idempotent_replay)
    _validate_settlement_split = staticmethod(_validate_settlement_split)
    quote_hybrid_payment = staticmethod(quote_hybrid_payment)
    run_settlement = staticmethod(run_settlement)
    settle = staticmethod(settle)


__all__ = [
    "PurchaseService",
    "run_settlement",
]
