from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Row
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.products_repo import ProductsRepo
from app.db.repo.purchases_repo import PurchasesRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.purchases.errors import (
    InsufficientCreditsError,
    ProductNotFoundError,
    PurchaseIdempotencyConflictError,
    UserNotFoundError,
)
from app.economy.purchases.types import CreditsAwarded, SettlementResult
from app.economy.referrals.service import ReferralService

from .builder import _as_replay_result, _build_purchase
from .events import _log_purchase_settled, logger
from .validation import _SettlementSplit, _split_matches_purchase, _validate_settlement_split


async def _load_idempotent_replay(
    session: AsyncSession,
    *,
    user_id: int,
    idempotency_key: str,
    split: _SettlementSplit,
) -> SettlementResult | None:
    existing = await PurchasesRepo.get_by_idempotency_key(session, idempotency_key)
    if existing is None:
        return None
    if existing.user_id != user_id or not _split_matches_purchase(split, purchase=existing):
        raise PurchaseIdempotencyConflictError
    return _as_replay_result(existing)


async def _debit_credits(
    session: AsyncSession,
    *,
    user_id: int,
    credits_used: int,
) -> Row[tuple[int, int, int | None]]:
    debited = await UsersRepo.debit_credits_if_sufficient(
        session,
        user_id=user_id,
        credits=credits_used,
    )
    if debited is not None:
        return debited

    user = await UsersRepo.get_by_id(session, user_id)
    if user is None:
        raise UserNotFoundError
    logger.info(
        "purchase_settlement_rejected",
        user_id=user_id,
        reason="insufficient_credits",
        credits_requested=credits_used,
        credit_balance=user.credit_balance,
    )
    raise InsufficientCreditsError


async def settle(
    session: AsyncSession,
    *,
    user_id: int,
    product_id: int,
    product_name: str,
    amount: Decimal | int | float | str,
    credits_used: int,
    credit_amount: Decimal | int | float | str,
    cash_amount: Decimal | int | float | str,
    now_utc: datetime,
    idempotency_key: str | None = None,
) -> SettlementResult:
    """Settles one hybrid purchase inside the caller's transaction.

    Steps run strictly in order: conditional debit, first-purchase count,
    purchase insert, referral conversion. Any exception leaves the caller's
    transaction to roll back; nothing here commits.
    """
    split = _validate_settlement_split(
        amount=amount,
        credits_used=credits_used,
        credit_amount=credit_amount,
        cash_amount=cash_amount,
    )

    if idempotency_key is not None:
        replay = await _load_idempotent_replay(
            session,
            user_id=user_id,
            idempotency_key=idempotency_key,
            split=split,
        )
        if replay is not None:
            logger.info(
                "purchase_settlement_replayed",
                purchase_id=str(replay.purchase.id),
                user_id=user_id,
            )
            return replay

    product = await ProductsRepo.get_by_id(session, product_id)
    if product is None:
        raise ProductNotFoundError

    try:
        debited = await _debit_credits(session, user_id=user_id, credits_used=split.credits_used)
    except InsufficientCreditsError:
        if idempotency_key is None:
            raise
        # The debit waited on a concurrent call with the same key; its committed purchase wins.
        replay = await _load_idempotent_replay(
            session,
            user_id=user_id,
            idempotency_key=idempotency_key,
            split=split,
        )
        if replay is None:
            raise
        logger.info(
            "purchase_settlement_replayed",
            purchase_id=str(replay.purchase.id),
            user_id=user_id,
        )
        return replay

    referred_by_user_id = debited.referred_by_user_id
    credit_balance_after = int(debited.credit_balance)

    existing_purchases = await PurchasesRepo.count_by_user(session, user_id=user_id)
    is_first_purchase = existing_purchases == 0

    purchase = await PurchasesRepo.create(
        session,
        purchase=_build_purchase(
            split,
            user_id=user_id,
            product_id=product.id,
            product_name=product_name,
            is_first_purchase=is_first_purchase,
            idempotency_key=idempotency_key,
            now_utc=now_utc,
        ),
        created_at=now_utc,
    )

    credits_awarded = CreditsAwarded()
    if is_first_purchase and referred_by_user_id is not None:
        conversion = await ReferralService.convert_pending_referral(
            session,
            referred_user_id=user_id,
            now_utc=now_utc,
        )
        if conversion is not None:
            purchase.referral_credit_awarded = True
            await session.flush()
            credits_awarded = CreditsAwarded(
                referrer=conversion.referrer_credits,
                user=conversion.user_credits,
            )
            credit_balance_after += conversion.user_credits

    _log_purchase_settled(
        purchase=purchase,
        credits_awarded=credits_awarded,
        credit_balance_after=credit_balance_after,
    )
    return SettlementResult(
        purchase=purchase,
        credits_awarded=credits_awarded,
        idempotent_replay=False,
        credit_balance_after=credit_balance_after,
    )
