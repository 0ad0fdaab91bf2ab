from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.economy.purchases.errors import PersistenceFailureError, SettlementTimeoutError
from app.economy.purchases.types import SettlementResult

from .events import logger
from .settlement import _load_idempotent_replay, settle
from .validation import _validate_settlement_split


async def _load_replay_after_conflict(
    session_local: async_sessionmaker[AsyncSession],
    *,
    user_id: int,
    idempotency_key: str,
    amount: Decimal | int | float | str,
    credits_used: int,
    credit_amount: Decimal | int | float | str,
    cash_amount: Decimal | int | float | str,
) -> SettlementResult | None:
    split = _validate_settlement_split(
        amount=amount,
        credits_used=credits_used,
        credit_amount=credit_amount,
        cash_amount=cash_amount,
    )
    async with session_local.begin() as session:
        return await _load_idempotent_replay(
            session,
            user_id=user_id,
            idempotency_key=idempotency_key,
            split=split,
        )


async def run_settlement(
    *,
    user_id: int,
    product_id: int,
    product_name: str,
    amount: Decimal | int | float | str,
    credits_used: int,
    credit_amount: Decimal | int | float | str,
    cash_amount: Decimal | int | float | str,
    idempotency_key: str | None = None,
    now_utc: datetime | None = None,
    timeout_seconds: float | None = None,
    session_local: async_sessionmaker[AsyncSession] | None = None,
) -> SettlementResult:
    """Runs one settlement as its own unit of work and commits it.

    The transaction commits only when ``settle`` returns. Timeouts, store
    errors and domain errors all leave through the ``begin()`` block, which
    rolls the transaction back before the error reaches the caller. Store
    errors are re-raised as ``PersistenceFailureError``.
    """
    resolved_session_local = session_local or SessionLocal
    resolved_timeout = (
        timeout_seconds if timeout_seconds is not None else get_settings().settlement_timeout_seconds
    )
    resolved_now = now_utc or datetime.now(timezone.utc)

    async def _unit_of_work() -> SettlementResult:
        async with resolved_session_local.begin() as session:
            return await settle(
                session,
                user_id=user_id,
                product_id=product_id,
                product_name=product_name,
                amount=amount,
                credits_used=credits_used,
                credit_amount=credit_amount,
                cash_amount=cash_amount,
                now_utc=resolved_now,
                idempotency_key=idempotency_key,
            )

    try:
        return await asyncio.wait_for(_unit_of_work(), timeout=resolved_timeout)
    except asyncio.TimeoutError as exc:
        logger.warning(
            "purchase_settlement_timeout",
            user_id=user_id,
            product_id=product_id,
            timeout_seconds=resolved_timeout,
        )
        raise SettlementTimeoutError(
            f"settlement exceeded {resolved_timeout}s and was rolled back"
        ) from exc
    except IntegrityError as exc:
        if idempotency_key is not None:
            # A concurrent call with the same key won the unique index; answer with its purchase.
            try:
                replay = await asyncio.wait_for(
                    _load_replay_after_conflict(
                        resolved_session_local,
                        user_id=user_id,
                        idempotency_key=idempotency_key,
                        amount=amount,
                        credits_used=credits_used,
                        credit_amount=credit_amount,
                        cash_amount=cash_amount,
                    ),
                    timeout=resolved_timeout,
                )
            except asyncio.TimeoutError as replay_exc:
                logger.warning(
                    "purchase_settlement_timeout",
                    user_id=user_id,
                    product_id=product_id,
                    timeout_seconds=resolved_timeout,
                    stage="idempotent_replay",
                )
                raise SettlementTimeoutError(
                    f"idempotent replay lookup exceeded {resolved_timeout}s"
                ) from replay_exc
            except SQLAlchemyError as replay_exc:
                raise PersistenceFailureError(str(replay_exc)) from replay_exc
            if replay is not None:
                logger.info(
                    "purchase_settlement_replayed",
                    purchase_id=str(replay.purchase.id),
                    user_id=user_id,
                )
                return replay
        logger.warning(
            "purchase_settlement_persistence_failed",
            user_id=user_id,
            product_id=product_id,
            error_type=type(exc).__name__,
        )
        raise PersistenceFailureError(str(exc.orig or exc)) from exc
    except SQLAlchemyError as exc:
        logger.warning(
            "purchase_settlement_persistence_failed",
            user_id=user_id,
            product_id=product_id,
            error_type=type(exc).__name__,
        )
        raise PersistenceFailureError(str(exc)) from exc
