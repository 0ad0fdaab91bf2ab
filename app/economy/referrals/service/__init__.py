from __future__ import annotations

from .conversion import convert_pending_referral
from .dashboard import build_referral_link, get_dashboard
from .models import ReferralConversion, ReferralDashboard, ReferralStats, ReferredUserSummary
from .registration import is_self_referral, register_referral_for_new_user, resolve_referrer
from .stats import _build_referred_users, _build_stats, get_referral_stats


class ReferralService:
    _build_referred_users = staticmethod(_build_referred_users)
    _build_stats = staticmethod(_build_stats)
    build_referral_link = staticmethod(build_referral_link)
    convert_pending_referral = staticmethod(convert_pending_referral)
    get_dashboard = staticmethod(get_dashboard)
    get_referral_stats = staticmethod(get_referral_stats)
    is_self_referral = staticmethod(is_self_referral)
    register_referral_for_new_user = staticmethod(register_referral_for_new_user)
    resolve_referrer = staticmethod(resolve_referrer)


__all__ = [
    "ReferralConversion",
    "ReferralDashboard",
    "ReferralService",
    "ReferralStats",
    "ReferredUserSummary",
]
