"""
Authorization seed data (async, idempotent)
- System roles (admin, teacher, student) with their default permissions
- Optional bootstrap admin from BOOTSTRAP_ADMIN_EMAIL / BOOTSTRAP_ADMIN_PASSWORD
Run:  python scripts/seed/auth_data.py
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

from hostel_api.core.database import async_session_maker, engine
from hostel_api.core.logging_config import setup_logging
from hostel_api.db.base import Base
from hostel_api.db.seeds.initial_data import create_initial_data
import hostel_api.models  # noqa: F401  registers the tables on Base.metadata


async def main():
    setup_logging()

    # Create tables (safe if already created)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as db:
        try:
            await create_initial_data(db)
            print("✅ Authorization seed completed successfully!")
        except Exception as ex:
            await db.rollback()
            print(f"❌ Seed failed: {ex}")
            raise

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
