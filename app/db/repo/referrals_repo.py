from __future__ import annotations

from datetime import datetime

from sqlalchemy import Row, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.referrals import (
    REFERRAL_STATUS_CONVERTED,
    REFERRAL_STATUS_PENDING,
    Referral,
)
from app.db.models.users import User


class ReferralsRepo:
    @staticmethod
    async def get_by_referred_user_id(
        session: AsyncSession,
        *,
        referred_user_id: int,
    ) -> Referral | None:
        stmt = select(Referral).where(Referral.referred_user_id == referred_user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, referral: Referral) -> Referral:
        session.add(referral)
        await session.flush()
        return referral

    @staticmethod
    async def mark_converted_if_pending(
        session: AsyncSession,
        *,
        referred_user_id: int,
        converted_at: datetime,
    ) -> Row[tuple[int, int]] | None:
        stmt = (
            update(Referral)
            .where(
                Referral.referred_user_id == referred_user_id,
                Referral.status == REFERRAL_STATUS_PENDING,
                Referral.credits_awarded.is_(False),
            )
            .values(
                status=REFERRAL_STATUS_CONVERTED,
                credits_awarded=True,
                converted_at=converted_at,
            )
            .returning(Referral.id, Referral.referrer_user_id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.one_or_none()

    @staticmethod
    async def count_by_status_for_referrer(
        session: AsyncSession,
        *,
        referrer_user_id: int,
    ) -> dict[str, int]:
        stmt = (
            select(Referral.status, func.count(Referral.id))
            .where(Referral.referrer_user_id == referrer_user_id)
            .group_by(Referral.status)
        )
        result = await session.execute(stmt)
        return {str(status): int(total or 0) for status, total in result.all()}

    @staticmethod
    async def list_referred_users_for_referrer(
        session: AsyncSession,
        *,
        referrer_user_id: int,
        limit: int = 200,
    ) -> list[tuple[Referral, User]]:
        resolved_limit = max(1, min(1000, int(limit)))
        stmt = (
            select(Referral, User)
            .join(User, User.id == Referral.referred_user_id)
            .where(Referral.referrer_user_id == referrer_user_id)
            .order_by(Referral.created_at.asc(), Referral.id.asc())
            .limit(resolved_limit)
        )
        result = await session.execute(stmt)
        return [(referral, user) for referral, user in result.all()]
