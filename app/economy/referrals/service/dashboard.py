from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.users_repo import UsersRepo
from app.economy.purchases.errors import UserNotFoundError

from .models import ReferralDashboard
from .stats import get_referral_stats


def build_referral_link(*, frontend_url: str, referral_code: str) -> str:
    return f"{frontend_url.rstrip('/')}/register?r={referral_code}"


async def get_dashboard(
    session: AsyncSession,
    *,
    external_id: str,
    frontend_url: str,
) -> ReferralDashboard:
    user = await UsersRepo.get_by_external_id(session, external_id)
    if user is None:
        raise UserNotFoundError

    stats = await get_referral_stats(
        session,
        referrer_user_id=user.id,
        include_referred_users=False,
    )
    return ReferralDashboard(
        name=user.name,
        total_referred_users=stats.total_referred,
        converted_users=stats.converted_users,
        total_credits_earned=user.total_credits_earned,
        current_balance=user.credit_balance,
        referral_code=user.referral_code,
        referral_link=build_referral_link(
            frontend_url=frontend_url,
            referral_code=user.referral_code,
        ),
    )
