import asyncio

from .models import Base
from .seed import seed_demo_timetable
from .session import AsyncSessionLocal, engine

from prayer_notify.utils.logging import get_logger

logger = get_logger()


async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Created all tables.")


async def drop_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Dropped all tables.")


async def seed_db() -> int:
    """Create missing tables and publish today's demo timetable"""
    await create_tables()
    async with AsyncSessionLocal() as db_session:
        return await seed_demo_timetable(db_session)


async def reset_db():
    logger.info("Resetting database...")
    await drop_tables()
    await seed_db()
    logger.info("Database reset complete.")


if __name__ == "__main__":
    asyncio.run(reset_db())
