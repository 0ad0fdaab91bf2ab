from __future__ import annotations

import argparse
import asyncio
from decimal import Decimal

from app.db.models.products import Product
from app.db.repo.products_repo import ProductsRepo
from app.db.session import SessionLocal, dispose_engine

_IMAGE_BASE = "https://res.cloudinary.com/du3oueesv/image/upload"

SEED_PRODUCTS: tuple[dict[str, object], ...] = (
    {
        "title": "Clean Code",
        "author": "Robert C. Martin",
        "description": (
            "A handbook of agile software craftsmanship. Learn to write clean, "
            "maintainable code that stands the test of time."
        ),
        "price": Decimal("32.99"),
        "image_url": f"{_IMAGE_BASE}/v1760790454/book-share%20project/clean_code_we4vsl.jpg",
    },
    {
        "title": "The Pragmatic Programmer",
        "author": "Andrew Hunt & David Thomas",
        "description": "Timeless lessons for becoming a better developer and crafting pragmatic solutions.",
        "price": Decimal("36.99"),
        "image_url": f"{_IMAGE_BASE}/v1760790454/book-share%20project/pragmatic_programmer_qd846q.jpg",
    },
    {
        "title": "Introduction to Algorithms",
        "author": "Thomas H. Cormen, Charles E. Leiserson, Ronald L. Rivest, Clifford Stein",
        "description": "The definitive textbook on algorithms for students and professionals.",
        "price": Decimal("59.99"),
        "image_url": f"{_IMAGE_BASE}/v1760790454/book-share%20project/intro_to_algo_cskmt9.jpg",
    },
    {
        "title": "Design Patterns: Elements of Reusable Object-Oriented Software",
        "author": "Erich Gamma, Richard Helm, Ralph Johnson, John Vlissides",
        "description": "The classic reference for software design patterns.",
        "price": Decimal("38.99"),
        "image_url": f"{_IMAGE_BASE}/v1760790455/book-share%20project/designPatternsCover_yz9dnf.jpg",
    },
    {
        "title": "You Don't Know JS Yet",
        "author": "Kyle Simpson",
        "description": "An in-depth exploration of JavaScript that goes beyond the basics.",
        "price": Decimal("27.99"),
        "image_url": f"{_IMAGE_BASE}/v1760790454/book-share%20project/you_don_t_know_ilxgld.jpg",
    },
    {
        "title": "Refactoring: Improving the Design of Existing Code",
        "author": "Martin Fowler",
        "description": "Make existing code simpler and more efficient without changing its behavior.",
        "price": Decimal("41.99"),
        "image_url": f"{_IMAGE_BASE}/v1760790453/book-share%20project/refact2_lpyfo0.jpg",
    },
    {
        "title": "Think Like A Programmer",
        "author": "V. Anton Spraul",
        "description": "Problem solving fundamentals for programmers.",
        "price": Decimal("29.99"),
        "image_url": (
            f"{_IMAGE_BASE}/v1760789765/book-share%20project/"
            "Think-Like-a-Programmer-Spraul-V-Anton-9781593274245_oprdut.jpg"
        ),
    },
)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the product catalog")
    parser.add_argument("--dry-run", action="store_true")
    return parser.parse_args()


async def _seed(*, dry_run: bool) -> tuple[int, int]:
    created = 0
    skipped = 0
    async with SessionLocal() as session:
        for item in SEED_PRODUCTS:
            if await ProductsRepo.get_by_title(session, str(item["title"])) is not None:
                skipped += 1
                continue
            await ProductsRepo.create(
                session,
                product=Product(category="ebook", **item),
            )
            created += 1
        if dry_run:
            await session.rollback()
        else:
            await session.commit()
    return created, skipped


async def _main_async(args: argparse.Namespace) -> int:
    try:
        created, skipped = await _seed(dry_run=args.dry_run)
    finally:
        await dispose_engine()
    mode = "dry-run" if args.dry_run else "applied"
    print(f"seed_products: {mode} created={created} skipped={skipped}")  # noqa: T201
    return 0


def main() -> int:
    return asyncio.run(_main_async(_parse_args()))


if __name__ == "__main__":
    raise SystemExit(main())
