from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class ReferralConversion:
    referral_id: int
    referrer_user_id: int
    referred_user_id: int
    referrer_credits: int
    user_credits: int


@dataclass(frozen=True, slots=True)
class ReferredUserSummary:
    user_id: int
    name: str
    status: str
    referred_at: datetime
    converted_at: datetime | None


@dataclass(frozen=True, slots=True)
class ReferralStats:
    referrer_user_id: int
    total_referred: int
    converted_users: int
    referred_users: list[ReferredUserSummary] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ReferralDashboard:
    name: str
    total_referred_users: int
    converted_users: int
    total_credits_earned: int
    current_balance: int
    referral_code: str
    referral_link: str
