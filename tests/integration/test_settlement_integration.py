from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.db.models.referrals import REFERRAL_STATUS_CONVERTED, REFERRAL_STATUS_PENDING
from app.economy.purchases.errors import (
    InsufficientCreditsError,
    PersistenceFailureError,
    ProductNotFoundError,
    PurchaseIdempotencyConflictError,
    SettlementValidationError,
    UserNotFoundError,
)
from app.economy.purchases.service import run_settlement
from app.economy.purchases.service import settlement as settlement_module
from app.economy.referrals.service import conversion as conversion_module

from tests.integration.commerce_fixtures import (
    _count_purchases,
    _create_product,
    _create_referral_pair,
    _load_referral,
    _load_user,
    _set_credit_balance,
    _settle,
    _sync_user,
)


@pytest.mark.asyncio
async def test_first_cash_purchase_of_referred_user_converts_referral() -> None:
    referrer, referred = await _create_referral_pair(seed="scenario-a")
    product = await _create_product(price=Decimal("32.99"))

    result = await _settle(user=referred, product=product, amount=Decimal("32.99"))

    assert result.purchase.is_first_purchase is True
    assert result.purchase.referral_credit_awarded is True
    assert result.credits_awarded.referrer == 2
    assert result.credits_awarded.user == 2
    assert result.credit_balance_after == 2

    referrer_after = await _load_user(referrer.id)
    referred_after = await _load_user(referred.id)
    assert referrer_after.credit_balance == 2
    assert referrer_after.total_credits_earned == 2
    assert referrer_after.total_referred_users == 1
    assert referred_after.credit_balance == 2
    assert referred_after.total_credits_earned == 2

    referral = await _load_referral(referred.id)
    assert referral is not None
    assert referral.status == REFERRAL_STATUS_CONVERTED
    assert referral.credits_awarded is True
    assert referral.converted_at is not None


@pytest.mark.asyncio
async def test_second_purchase_awards_nothing_and_is_not_first() -> None:
    referrer, referred = await _create_referral_pair(seed="scenario-b")
    first_product = await _create_product(price=Decimal("32.99"))
    second_product = await _create_product(price=Decimal("25.00"))

    await _settle(user=referred, product=first_product, amount=Decimal("32.99"))
    result = await _settle(user=referred, product=second_product, amount=Decimal("25.00"))

    assert result.purchase.is_first_purchase is False
    assert result.purchase.referral_credit_awarded is False
    assert result.credits_awarded.referrer == 0
    assert result.credits_awarded.user == 0
    assert (await _load_user(referrer.id)).credit_balance == 2
    assert (await _load_user(referred.id)).credit_balance == 2


@pytest.mark.asyncio
async def test_insufficient_credits_rejects_and_keeps_balance() -> None:
    user = await _sync_user("scenario-c")
    await _set_credit_balance(user.id, 3)
    product = await _create_product(price=Decimal("150.00"))

    with pytest.raises(InsufficientCreditsError):
        await _settle(user=user, product=product, amount=Decimal("150.00"), credits_used=10)

    assert (await _load_user(user.id)).credit_balance == 3
    assert await _count_purchases(user.id) == 0


@pytest.mark.asyncio
async def test_credit_portion_above_price_is_rejected_before_debit() -> None:
    user = await _sync_user("scenario-c-overdraw")
    await _set_credit_balance(user.id, 3)
    product = await _create_product(price=Decimal("50.00"))

    with pytest.raises(SettlementValidationError):
        await _settle(user=user, product=product, amount=Decimal("50.00"), credits_used=10)

    assert (await _load_user(user.id)).credit_balance == 3
    assert await _count_purchases(user.id) == 0


@pytest.mark.asyncio
async def test_first_purchase_without_referrer_awards_nothing() -> None:
    user = await _sync_user("scenario-d")
    product = await _create_product(price=Decimal("19.99"))

    result = await _settle(user=user, product=product, amount=Decimal("19.99"))

    assert result.purchase.is_first_purchase is True
    assert result.purchase.referral_credit_awarded is False
    assert result.credits_awarded.referrer == 0
    assert result.credits_awarded.user == 0
    assert (await _load_user(user.id)).credit_balance == 0


@pytest.mark.asyncio
async def test_hybrid_first_purchase_spends_credits_then_awards_referral() -> None:
    referrer, referred = await _create_referral_pair(seed="scenario-e")
    await _set_credit_balance(referred.id, 5)
    product = await _create_product(price=Decimal("75.00"))

    result = await _settle(user=referred, product=product, amount=Decimal("75.00"), credits_used=5)

    assert result.purchase.credits_used == 5
    assert result.purchase.credit_amount == Decimal("50.00")
    assert result.purchase.cash_amount == Decimal("25.00")
    assert result.credit_balance_after == 2
    assert (await _load_user(referred.id)).credit_balance == 2
    assert (await _load_user(referrer.id)).credit_balance == 2


@pytest.mark.asyncio
async def test_failure_after_debit_rolls_back_everything(monkeypatch) -> None:
    _, referred = await _create_referral_pair(seed="atomic-create")
    await _set_credit_balance(referred.id, 5)
    product = await _create_product(price=Decimal("75.00"))

    async def _failing_create(session, *, purchase, created_at):
        raise OperationalError("INSERT INTO purchases", {}, Exception("injected failure"))

    monkeypatch.setattr(settlement_module.PurchasesRepo, "create", _failing_create)

    with pytest.raises(PersistenceFailureError):
        await _settle(user=referred, product=product, amount=Decimal("75.00"), credits_used=5)

    assert (await _load_user(referred.id)).credit_balance == 5
    assert await _count_purchases(referred.id) == 0
    referral = await _load_referral(referred.id)
    assert referral is not None
    assert referral.status == REFERRAL_STATUS_PENDING


@pytest.mark.asyncio
async def test_failure_during_conversion_rolls_back_referral_and_purchase(monkeypatch) -> None:
    referrer, referred = await _create_referral_pair(seed="atomic-convert")
    await _set_credit_balance(referred.id, 5)
    product = await _create_product(price=Decimal("75.00"))

    async def _failing_award(session, *, user_id: int, credits: int) -> bool:
        raise OperationalError("UPDATE users", {}, Exception("injected failure"))

    monkeypatch.setattr(conversion_module.UsersRepo, "award_credits", _failing_award)

    with pytest.raises(PersistenceFailureError):
        await _settle(user=referred, product=product, amount=Decimal("75.00"), credits_used=5)

    assert (await _load_user(referred.id)).credit_balance == 5
    assert (await _load_user(referrer.id)).credit_balance == 0
    assert await _count_purchases(referred.id) == 0
    referral = await _load_referral(referred.id)
    assert referral is not None
    assert referral.status == REFERRAL_STATUS_PENDING
    assert referral.credits_awarded is False
    assert referral.converted_at is None


@pytest.mark.asyncio
async def test_unknown_user_and_product_are_typed_errors() -> None:
    user = await _sync_user("lookup-errors")
    product = await _create_product(price=Decimal("10.00"))

    with pytest.raises(UserNotFoundError):
        await run_settlement(
            user_id=user.id + 1000,
            product_id=product.id,
            product_name=product.title,
            amount=Decimal("10.00"),
            credits_used=0,
            credit_amount=Decimal("0"),
            cash_amount=Decimal("10.00"),
        )

    with pytest.raises(ProductNotFoundError):
        await run_settlement(
            user_id=user.id,
            product_id=product.id + 1000,
            product_name="Missing",
            amount=Decimal("10.00"),
            credits_used=0,
            credit_amount=Decimal("0"),
            cash_amount=Decimal("10.00"),
        )


@pytest.mark.asyncio
async def test_only_first_successful_settlement_is_flagged_first() -> None:
    user = await _sync_user("first-flag")
    product = await _create_product(price=Decimal("12.00"))

    results = [
        await _settle(user=user, product=product, amount=Decimal("12.00")) for _ in range(3)
    ]

    assert [result.purchase.is_first_purchase for result in results] == [True, False, False]
    for result in results:
        purchase = result.purchase
        assert purchase.credit_amount + purchase.cash_amount == purchase.amount
        assert purchase.credits_used * 10 == purchase.credit_amount


@pytest.mark.asyncio
async def test_idempotency_key_replays_without_second_purchase() -> None:
    referrer, referred = await _create_referral_pair(seed="idempotent")
    product = await _create_product(price=Decimal("32.99"))

    first = await _settle(
        user=referred,
        product=product,
        amount=Decimal("32.99"),
        idempotency_key="order-idem-0001",
    )
    replay = await _settle(
        user=referred,
        product=product,
        amount=Decimal("32.99"),
        idempotency_key="order-idem-0001",
    )

    assert first.idempotent_replay is False
    assert replay.idempotent_replay is True
    assert replay.purchase.id == first.purchase.id
    assert replay.credits_awarded.referrer == 2
    assert await _count_purchases(referred.id) == 1
    assert (await _load_user(referrer.id)).credit_balance == 2


@pytest.mark.asyncio
async def test_idempotency_key_reuse_with_different_split_conflicts() -> None:
    user = await _sync_user("idempotent-conflict")
    await _set_credit_balance(user.id, 3)
    product = await _create_product(price=Decimal("32.99"))

    await _settle(user=user, product=product, amount=Decimal("32.99"), idempotency_key="order-idem-0002")

    with pytest.raises(PurchaseIdempotencyConflictError):
        await _settle(
            user=user,
            product=product,
            amount=Decimal("32.99"),
            credits_used=3,
            idempotency_key="order-idem-0002",
        )

    assert (await _load_user(user.id)).credit_balance == 3
    assert await _count_purchases(user.id) == 1
