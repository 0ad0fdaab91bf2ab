from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repo.referrals_repo import ReferralsRepo
from app.db.repo.users_repo import UsersRepo
from app.economy.purchases.constants import REFERRAL_CREDITS
from app.economy.purchases.errors import PersistenceFailureError

from .models import ReferralConversion

logger = structlog.get_logger("app.economy.referrals.conversion")


async def convert_pending_referral(
    session: AsyncSession,
    *,
    referred_user_id: int,
    now_utc: datetime,
) -> ReferralConversion | None:
    """Converts the referred user's pending referral and credits both sides.

    Returns None when there is no pending referral left to convert. The
    status predicate is part of the UPDATE, so of two concurrent callers only
    one can match the row.
    """
    converted = await ReferralsRepo.mark_converted_if_pending(
        session,
        referred_user_id=referred_user_id,
        converted_at=now_utc,
    )
    if converted is None:
        return None

    referral_id, referrer_user_id = int(converted[0]), int(converted[1])
    referrer_credited = await UsersRepo.award_credits(
        session,
        user_id=referrer_user_id,
        credits=REFERRAL_CREDITS,
    )
    if not referrer_credited:
        # referrer_user_id is a foreign key, a miss here means the row vanished mid-transaction
        raise PersistenceFailureError(f"referrer {referrer_user_id} disappeared during conversion")
    await UsersRepo.award_credits(
        session,
        user_id=referred_user_id,
        credits=REFERRAL_CREDITS,
    )

    logger.info(
        "referral_converted",
        referral_id=referral_id,
        referrer_user_id=referrer_user_id,
        referred_user_id=referred_user_id,
        credits_each=REFERRAL_CREDITS,
    )
    return ReferralConversion(
        referral_id=referral_id,
        referrer_user_id=referrer_user_id,
        referred_user_id=referred_user_id,
        referrer_credits=REFERRAL_CREDITS,
        user_credits=REFERRAL_CREDITS,
    )
