"""
create_tables.py — idempotent table creation script.
Run this before starting the service for the first time, or after schema changes.
Safe to run multiple times (all DDL uses IF NOT EXISTS).

Usage:
    python scripts/create_tables.py
"""

from __future__ import annotations

import asyncio

from hangry.database import engine
from hangry.models import Base


async def main() -> None:
    """Create all tables."""
    print(f"Creating tables on {engine.url.render_as_string(hide_password=True)}...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("  ✓ places, place_photos created (IF NOT EXISTS)")

    print("\nDone. Start the API with `uvicorn hangry.main:app`.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
