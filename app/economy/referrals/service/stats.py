from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.referrals import REFERRAL_STATUS_CONVERTED, Referral
from app.db.models.users import User
from app.db.repo.referrals_repo import ReferralsRepo

from .models import ReferralStats, ReferredUserSummary


def _build_referred_users(rows: list[tuple[Referral, User]]) -> list[ReferredUserSummary]:
    return [
        ReferredUserSummary(
            user_id=user.id,
            name=user.name,
            status=referral.status,
            referred_at=referral.created_at,
            converted_at=referral.converted_at,
        )
        for referral, user in rows
    ]


def _build_stats(
    *,
    referrer_user_id: int,
    status_counts: dict[str, int],
    referred_users: list[ReferredUserSummary],
) -> ReferralStats:
    return ReferralStats(
        referrer_user_id=referrer_user_id,
        total_referred=sum(status_counts.values()),
        converted_users=status_counts.get(REFERRAL_STATUS_CONVERTED, 0),
        referred_users=referred_users,
    )


async def get_referral_stats(
    session: AsyncSession,
    *,
    referrer_user_id: int,
    include_referred_users: bool = True,
) -> ReferralStats:
    status_counts = await ReferralsRepo.count_by_status_for_referrer(
        session,
        referrer_user_id=referrer_user_id,
    )
    referred_users: list[ReferredUserSummary] = []
    if include_referred_users and status_counts:
        rows = await ReferralsRepo.list_referred_users_for_referrer(
            session,
            referrer_user_id=referrer_user_id,
        )
        referred_users = _build_referred_users(rows)

    return _build_stats(
        referrer_user_id=referrer_user_id,
        status_counts=status_counts,
        referred_users=referred_users,
    )
