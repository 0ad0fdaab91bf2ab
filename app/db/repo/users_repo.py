from __future__ import annotations

from sqlalchemy import Row, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.users import User


class UsersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, user_id: int) -> User | None:
        return await session.get(User, user_id)

    @staticmethod
    async def get_by_external_id(session: AsyncSession, external_id: str) -> User | None:
        stmt = select(User).where(User.external_id == external_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_referral_code(session: AsyncSession, referral_code: str) -> User | None:
        stmt = select(User).where(User.referral_code == referral_code)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        external_id: str,
        name: str,
        referral_code: str,
        referred_by_user_id: int | None,
    ) -> User:
        user = User(
            external_id=external_id,
            name=name,
            referral_code=referral_code,
            referred_by_user_id=referred_by_user_id,
            credit_balance=0,
            total_credits_earned=0,
            total_referred_users=0,
        )
        session.add(user)
        await session.flush()
        return user

    @staticmethod
    async def debit_credits_if_sufficient(
        session: AsyncSession,
        *,
        user_id: int,
        credits: int,
    ) -> Row[tuple[int, int, int | None]] | None:
        """Conditionally debits credits; returns None when the row does not match.

        The balance predicate is evaluated by the database at write time, so a
        concurrent debit that consumed the balance makes this one miss instead
        of driving the balance negative.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.credit_balance >= credits)
            .values(
                credit_balance=User.credit_balance - credits,
                updated_at=func.now(),
            )
            .returning(User.id, User.credit_balance, User.referred_by_user_id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.one_or_none()

    @staticmethod
    async def award_credits(
        session: AsyncSession,
        *,
        user_id: int,
        credits: int,
    ) -> bool:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                credit_balance=User.credit_balance + credits,
                total_credits_earned=User.total_credits_earned + credits,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return bool(result.rowcount)

    @staticmethod
    async def increment_total_referred_users(session: AsyncSession, *, user_id: int) -> bool:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                total_referred_users=User.total_referred_users + 1,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return bool(result.rowcount)
