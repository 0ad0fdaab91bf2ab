from __future__ import annotations

from fastapi import HTTPException, Request

from app.core.config import get_settings
from app.db.models.products import Product
from app.economy.purchases.types import SettlementResult
from app.services.internal_auth import is_internal_request_authenticated

from .internal_commerce_models import (
    CreditsAwardedResponse,
    ProductResponse,
    PurchaseCreateResponse,
    PurchaseResponse,
)


def _assert_internal_access(request: Request) -> None:
    if not is_internal_request_authenticated(
        request,
        expected_token=get_settings().internal_api_token,
    ):
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


def _product_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        title=product.title,
        author=product.author,
        description=product.description,
        price=product.price,
        category=product.category,
        image_url=product.image_url,
    )


def _settlement_response(result: SettlementResult) -> PurchaseCreateResponse:
    purchase = result.purchase
    return PurchaseCreateResponse(
        purchase=PurchaseResponse(
            id=purchase.id,
            user_id=purchase.user_id,
            product_id=purchase.product_id,
            product_name=purchase.product_name,
            amount=purchase.amount,
            credits_used=purchase.credits_used,
            credit_amount=purchase.credit_amount,
            cash_amount=purchase.cash_amount,
            is_first_purchase=purchase.is_first_purchase,
            referral_credit_awarded=purchase.referral_credit_awarded,
            created_at=purchase.created_at,
        ),
        credits_awarded=CreditsAwardedResponse(
            referrer=result.credits_awarded.referrer,
            user=result.credits_awarded.user,
        ),
        idempotent_replay=result.idempotent_replay,
        credit_balance_after=result.credit_balance_after,
    )
