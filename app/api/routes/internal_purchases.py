from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Query, Request, status

from app.db.repo.products_repo import ProductsRepo
from app.db.repo.users_repo import UsersRepo
from app.db.session import SessionLocal
from app.economy.purchases.errors import (
    InsufficientCreditsError,
    PersistenceFailureError,
    ProductNotFoundError,
    PurchaseIdempotencyConflictError,
    SettlementTimeoutError,
    SettlementValidationError,
    UserNotFoundError,
)
from app.economy.purchases.service import PurchaseService

from .internal_commerce_helpers import (
    _assert_internal_access,
    _product_response,
    _settlement_response,
)
from .internal_commerce_models import (
    ProductResponse,
    PurchaseCreateRequest,
    PurchaseCreateResponse,
)

router = APIRouter(tags=["internal", "purchases"])
logger = structlog.get_logger(__name__)


@router.get("/internal/products", response_model=list[ProductResponse])
async def list_products(
    request: Request,
    category: str | None = Query(default=None, max_length=16),
) -> list[ProductResponse]:
    _assert_internal_access(request)
    async with SessionLocal.begin() as session:
        products = await ProductsRepo.list_all(session, category=category)
        return [_product_response(product) for product in products]


@router.post(
    "/internal/purchases",
    response_model=PurchaseCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_purchase(
    payload: PurchaseCreateRequest,
    request: Request,
) -> PurchaseCreateResponse:
    _assert_internal_access(request)

    async with SessionLocal.begin() as session:
        user = await UsersRepo.get_by_external_id(session, payload.external_id)
        if user is None:
            raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"})
        product = await ProductsRepo.get_by_id(session, payload.product_id)
        if product is None:
            raise HTTPException(status_code=404, detail={"code": "E_PRODUCT_NOT_FOUND"})
        user_id = user.id
        available_credits = user.credit_balance if payload.use_credits else 0
        product_id = product.id
        product_name = product.title
        price = product.price

    try:
        quote = PurchaseService.quote_hybrid_payment(price, available_credits)
        result = await PurchaseService.run_settlement(
            user_id=user_id,
            product_id=product_id,
            product_name=product_name,
            amount=quote.amount,
            credits_used=quote.credits_used,
            credit_amount=quote.credit_amount,
            cash_amount=quote.cash_amount,
            idempotency_key=payload.idempotency_key,
        )
    except SettlementValidationError as exc:
        raise HTTPException(status_code=400, detail={"code": "E_INVALID_AMOUNT"}) from exc
    except InsufficientCreditsError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_INSUFFICIENT_CREDITS"}) from exc
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_USER_NOT_FOUND"}) from exc
    except ProductNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "E_PRODUCT_NOT_FOUND"}) from exc
    except PurchaseIdempotencyConflictError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_IDEMPOTENCY_CONFLICT"}) from exc
    except SettlementTimeoutError as exc:
        raise HTTPException(status_code=503, detail={"code": "E_SETTLEMENT_TIMEOUT"}) from exc
    except PersistenceFailureError as exc:
        raise HTTPException(status_code=503, detail={"code": "E_PERSISTENCE_FAILURE"}) from exc

    return _settlement_response(result)
