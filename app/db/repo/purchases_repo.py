from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.purchases import Purchase


class PurchasesRepo:
    @staticmethod
    async def get_by_idempotency_key(session: AsyncSession, idempotency_key: str) -> Purchase | None:
        stmt = select(Purchase).where(Purchase.idempotency_key == idempotency_key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def count_by_user(session: AsyncSession, *, user_id: int) -> int:
        stmt = select(func.count(Purchase.id)).where(Purchase.user_id == user_id)
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        purchase: Purchase,
        created_at: datetime,
    ) -> Purchase:
        purchase.created_at = created_at
        session.add(purchase)
        await session.flush()
        return purchase
