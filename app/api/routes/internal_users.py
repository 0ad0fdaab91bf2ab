from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from app.core.config import get_settings
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal
from app.economy.purchases.errors import UserNotFoundError
from app.economy.referrals.errors import ReferralCodeGenerationExhaustedError
from app.economy.referrals.service import ReferralService
from app.services.user_onboarding import UserOnboardingService

from .internal_commerce_helpers import _assert_internal_access
from .internal_commerce_models import (
    DashboardResponse,
    ReferralStatsResponse,
    ReferredUserResponse,
    UserSyncRequest,
    UserSyncResponse,
)

router = APIRouter(tags=["internal", "users"])


async def _sync_in_transaction(payload: UserSyncRequest) -> UserSyncResponse:
    async with SessionLocal.begin() as session:
        synced = await UserOnboardingService.sync_user(
            session,
            external_id=payload.external_id,
            name=payload.name,
            referral_code=payload.referral_code,
            now_utc=datetime.now(timezone.utc),
        )
        user = synced.user
        return UserSyncResponse(
            id=user.id,
            external_id=user.external_id,
            name=user.name,
            referral_code=user.referral_code,
            credits=user.credit_balance,
            created=synced.created,
            referral_status=synced.referral_status,
        )


@router.post("/internal/users/sync", response_model=UserSyncResponse)
async def sync_user(payload: UserSyncRequest, request: Request) -> UserSyncResponse:
    _assert_internal_access(request)

    try:
        try:
            return await _sync_in_transaction(payload)
        except IntegrityError:
            # A concurrent sync created the same external_id first; the retry reads it back.
            return await _sync_in_transaction(payload)
    except ReferralCodeGenerationExhaustedError as exc:
        raise HTTPException(
            status_code=503,
            detail={"code": "E_REFERRAL_CODE_EXHAUSTED"},
        ) from exc


@router.get("/internal/users/{external_id}/referrals", response_model=ReferralStatsResponse)
async def get_referral_stats(external_id: str, request: Request) -> ReferralStatsResponse:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        user = await UsersRepo.get_by_external_id(session, external_id)
        if user is None:
            raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"})
        stats = await ReferralService.get_referral_stats(session, referrer_user_id=user.id)

    return ReferralStatsResponse(
        total_referred=stats.total_referred,
        converted_users=stats.converted_users,
        referred_users=[
            ReferredUserResponse(
                user_id=item.user_id,
                name=item.name,
                status=item.status,
                referred_at=item.referred_at,
                converted_at=item.converted_at,
            )
            for item in stats.referred_users
        ],
    )


@router.get("/internal/users/{external_id}/dashboard", response_model=DashboardResponse)
async def get_dashboard(external_id: str, request: Request) -> DashboardResponse:
    _assert_internal_access(request)

    try:
        async with SessionLocal.begin() as session:
            dashboard = await ReferralService.get_dashboard(
                session,
                external_id=external_id,
                frontend_url=get_settings().frontend_url,
            )
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc

    return DashboardResponse(
        name=dashboard.name,
        total_referred_users=dashboard.total_referred_users,
        converted_users=dashboard.converted_users,
        total_credits_earned=dashboard.total_credits_earned,
        current_balance=dashboard.current_balance,
        referral_link=dashboard.referral_link,
        referral_code=dashboard.referral_code,
    )
