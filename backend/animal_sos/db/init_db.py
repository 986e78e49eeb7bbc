import asyncio
import structlog

from animal_sos.core.logging import setup_logging
from animal_sos.db.base import Base
from animal_sos.db.session import engine
from animal_sos import models  # noqa: F401  registers tables on Base.metadata

logger = structlog.get_logger()

async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def main():
    logger.info("db_init_start")
    try:
        async with asyncio.timeout(10):
            await create_tables()
    except TimeoutError:
        logger.error("db_init_timeout", message="Connection to database timed out after 10s.")
        raise
    except Exception as e:
        logger.error("db_init_failed", error=str(e))
        raise
    logger.info("db_init_complete")

if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
