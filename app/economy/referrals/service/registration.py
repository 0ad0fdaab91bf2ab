from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.referral_codes import normalize_referral_code
from app.db.models.referrals import REFERRAL_STATUS_PENDING, Referral
from app.db.models.users import User
from app.db.repo.referrals_repo import ReferralsRepo
from app.db.repo.users_repo import UsersRepo

logger = structlog.get_logger("app.economy.referrals.registration")


def is_self_referral(*, referrer: User, external_id: str) -> bool:
    return referrer.external_id == external_id


async def resolve_referrer(
    session: AsyncSession,
    *,
    referral_code: str | None,
    external_id: str,
) -> User | None:
    normalized_code = normalize_referral_code(referral_code)
    if normalized_code is None:
        return None

    referrer = await UsersRepo.get_by_referral_code(session, normalized_code)
    if referrer is None:
        logger.info("referral_code_unknown", referral_code=normalized_code)
        return None
    if is_self_referral(referrer=referrer, external_id=external_id):
        logger.warning("referral_self_referral_ignored", referrer_user_id=referrer.id)
        return None
    return referrer


async def register_referral_for_new_user(
    session: AsyncSession,
    *,
    referrer: User,
    referred_user: User,
    now_utc: datetime,
) -> str | None:
    if referrer.id == referred_user.id:
        return None

    existing = await ReferralsRepo.get_by_referred_user_id(
        session,
        referred_user_id=referred_user.id,
    )
    if existing is not None:
        return existing.status

    await ReferralsRepo.create(
        session,
        referral=Referral(
            referrer_user_id=referrer.id,
            referred_user_id=referred_user.id,
            referral_code=referrer.referral_code,
            status=REFERRAL_STATUS_PENDING,
            credits_awarded=False,
            converted_at=None,
            created_at=now_utc,
        ),
    )
    await UsersRepo.increment_total_referred_users(session, user_id=referrer.id)
    logger.info(
        "referral_registered",
        referrer_user_id=referrer.id,
        referred_user_id=referred_user.id,
    )
    return REFERRAL_STATUS_PENDING
