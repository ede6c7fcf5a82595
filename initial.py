from db.models import Base
from db.database import engine
from core.logging import logger
import asyncio


async def init_db(bind=engine):
    async with bind.begin() as conn:
        # Drop existing tables to ensure clean schema
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Reset {len(Base.metadata.tables)} tables")


if __name__ == "__main__":
    asyncio.run(init_db())
