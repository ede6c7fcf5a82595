import asyncio
from db.models import Base
from db.database import engine
from core.logging import logger


async def create_all_tables(bind=engine):
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("All tables created.")


if __name__ == "__main__":
    asyncio.run(create_all_tables())
