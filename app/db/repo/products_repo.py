from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.products import Product


class ProductsRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, product_id: int) -> Product | None:
        return await session.get(Product, product_id)

    @staticmethod
    async def get_by_title(session: AsyncSession, title: str) -> Product | None:
        stmt = select(Product).where(Product.title == title)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_all(session: AsyncSession, *, category: str | None = None) -> list[Product]:
        stmt = select(Product).order_by(Product.id.asc())
        if category is not None:
            stmt = stmt.where(Product.category == category)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, product: Product) -> Product:
        session.add(product)
        await session.flush()
        return product
