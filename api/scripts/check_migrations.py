"""Fail if Alembic migrations are out of sync with SQLAlchemy models."""

from __future__ import annotations

import argparse
import asyncio

from alembic.autogenerate import compare_metadata
from alembic.migration import MigrationContext
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from untitledone import models  # noqa: F401  # Ensure models are registered
from untitledone.config import settings
from untitledone.database import Base


def _compare(connection) -> list[object]:
    context = MigrationContext.configure(connection, opts={"compare_type": True})
    return compare_metadata(context, Base.metadata)


async def main(database_url: str) -> int:
    engine = create_async_engine(database_url)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            diffs = await conn.run_sync(_compare)
    finally:
        await engine.dispose()

    if diffs:
        print(f"Detected {len(diffs)} schema difference(s) between models and database:")
        for diff in diffs:
            print(f"  {diff}")
        return 1

    print("No schema differences detected.")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="Database to compare against (default: DATABASE_URL)",
    )
    args = parser.parse_args()
    raise SystemExit(asyncio.run(main(args.database_url)))
