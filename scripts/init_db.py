import asyncio
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.base import Base
# Register every table on Base.metadata
from models import user, lesson, quiz, geo_point, progress  # noqa: F401
from core.logger import setup_logging, logger


async def create_schema(engine):
    """Create missing tables. Existing tables are left untouched."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ready", tables=sorted(Base.metadata.tables))


async def main():
    from db.session import engine
    setup_logging()
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
