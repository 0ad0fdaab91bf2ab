from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.referral_codes import generate_referral_code
from app.db.models.users import User
from app.db.repo.users_repo import UsersRepo
from app.economy.referrals.errors import ReferralCodeGenerationExhaustedError
from app.economy.referrals.service import ReferralService

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class SyncedUser:
    user: User
    created: bool
    referral_status: str | None


def _is_referral_code_conflict(exc: IntegrityError) -> bool:
    return "referral_code" in str(exc.orig)


class UserOnboardingService:
    @staticmethod
    async def _create_with_unique_referral_code(
        session: AsyncSession,
        *,
        external_id: str,
        name: str,
        referred_by_user_id: int | None,
    ) -> User:
        settings = get_settings()
        for attempt in range(1, settings.referral_code_max_attempts + 1):
            candidate = generate_referral_code(settings.referral_code_length)
            if await UsersRepo.get_by_referral_code(session, candidate) is not None:
                continue
            try:
                async with session.begin_nested():
                    return await UsersRepo.create(
                        session,
                        external_id=external_id,
                        name=name,
                        referral_code=candidate,
                        referred_by_user_id=referred_by_user_id,
                    )
            except IntegrityError as exc:
                if not _is_referral_code_conflict(exc):
                    raise
                logger.info("referral_code_collision", attempt=attempt)
        raise ReferralCodeGenerationExhaustedError(
            f"unable to generate unique referral code in {settings.referral_code_max_attempts} attempts"
        )

    @staticmethod
    async def sync_user(
        session: AsyncSession,
        *,
        external_id: str,
        name: str,
        referral_code: str | None = None,
        now_utc: datetime,
    ) -> SyncedUser:
        existing = await UsersRepo.get_by_external_id(session, external_id)
        if existing is not None:
            return SyncedUser(user=existing, created=False, referral_status=None)

        referrer = await ReferralService.resolve_referrer(
            session,
            referral_code=referral_code,
            external_id=external_id,
        )
        user = await UserOnboardingService._create_with_unique_referral_code(
            session,
            external_id=external_id,
            name=name,
            referred_by_user_id=referrer.id if referrer is not None else None,
        )

        referral_status: str | None = None
        if referrer is not None:
            referral_status = await ReferralService.register_referral_for_new_user(
                session,
                referrer=referrer,
                referred_user=user,
                now_utc=now_utc,
            )

        logger.info(
            "user_synced",
            user_id=user.id,
            referred_by_user_id=user.referred_by_user_id,
            referral_status=referral_status,
        )
        return SyncedUser(user=user, created=True, referral_status=referral_status)
