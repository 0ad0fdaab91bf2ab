from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class UserSyncRequest(BaseModel):
    external_id: str = Field(min_length=1, max_length=128)
    name: str = Field(min_length=1, max_length=256)
    referral_code: str | None = Field(default=None, max_length=16)


class UserSyncResponse(BaseModel):
    id: int
    external_id: str
    name: str
    referral_code: str
    credits: int = Field(ge=0)
    created: bool
    referral_status: str | None = None


class ProductResponse(BaseModel):
    id: int
    title: str
    author: str
    description: str
    price: Decimal = Field(ge=0)
    category: str
    image_url: str | None = None


class PurchaseCreateRequest(BaseModel):
    external_id: str = Field(min_length=1, max_length=128)
    product_id: int = Field(gt=0)
    use_credits: bool = True
    idempotency_key: str | None = Field(default=None, min_length=8, max_length=64)


class CreditsAwardedResponse(BaseModel):
    referrer: int = Field(ge=0)
    user: int = Field(ge=0)


class PurchaseResponse(BaseModel):
    id: UUID
    user_id: int
    product_id: int
    product_name: str
    amount: Decimal
    credits_used: int = Field(ge=0)
    credit_amount: Decimal
    cash_amount: Decimal
    is_first_purchase: bool
    referral_credit_awarded: bool
    created_at: datetime


class PurchaseCreateResponse(BaseModel):
    purchase: PurchaseResponse
    credits_awarded: CreditsAwardedResponse
    idempotent_replay: bool
    credit_balance_after: int | None = None


class ReferredUserResponse(BaseModel):
    user_id: int
    name: str
    status: str
    referred_at: datetime
    converted_at: datetime | None = None


class ReferralStatsResponse(BaseModel):
    total_referred: int = Field(ge=0)
    converted_users: int = Field(ge=0)
    referred_users: list[ReferredUserResponse]


class DashboardResponse(BaseModel):
    name: str
    total_referred_users: int = Field(ge=0)
    converted_users: int = Field(ge=0)
    total_credits_earned: int = Field(ge=0)
    current_balance: int = Field(ge=0)
    referral_link: str
    referral_code: str
