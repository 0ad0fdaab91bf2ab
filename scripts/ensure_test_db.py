from __future__ import annotations

import argparse
import asyncio

import asyncpg
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine

import app.db.models  # noqa: F401
from app.core.config import get_settings
from app.core.integration_db_safety import assert_safe_integration_db
from app.db.models.base import Base


async def _create_database_if_missing(database_url: str) -> bool:
    parsed = make_url(database_url)
    if parsed.username is None:
        raise RuntimeError("DATABASE_URL username is required.")

    conn = await asyncpg.connect(
        host=parsed.host or "localhost",
        port=int(parsed.port or 5432),
        user=parsed.username,
        password=parsed.password,
        database="postgres",
    )
    try:
        exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", parsed.database)
        if exists:
            return False
        # Name already passed the safety guard; asyncpg cannot bind identifiers.
        await conn.execute(f'CREATE DATABASE "{parsed.database}"')
        return True
    finally:
        await conn.close()


async def _create_schema(database_url: str) -> None:
    engine = create_async_engine(database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


async def _ensure_test_db(database_url: str, *, with_schema: bool) -> None:
    assert_safe_integration_db(database_url)
    parsed = make_url(database_url)
    created = await _create_database_if_missing(database_url)
    state = "created" if created else "exists"
    print(f"ensure_test_db: {state} db={parsed.database} host={parsed.host}")  # noqa: T201
    if with_schema:
        await _create_schema(database_url)
        print("ensure_test_db: schema ready")  # noqa: T201


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the local integration-test database.")
    parser.add_argument(
        "--with-schema",
        action="store_true",
        help="Also create users, products, referrals and purchases tables.",
    )
    args = parser.parse_args()
    asyncio.run(_ensure_test_db(get_settings().database_url, with_schema=args.with_schema))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
