"""Script to initialize the database.

Creates the tables straight from the metadata. PostgreSQL deployments should
run the Alembic migrations instead, which also install the constraint that
rejects overlapping bookings.
"""

import asyncio

from app.database import engine
from app.models import metadata


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
