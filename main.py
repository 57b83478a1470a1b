import asyncio
import sys

from core.config import settings
from core.logger import setup_logging, logger


async def start_api():
    import uvicorn
    from api.main import app
    # log_config=None keeps uvicorn on the structlog handlers set up above
    config = uvicorn.Config(app, host=settings.API_HOST, port=settings.API_PORT, log_config=None)
    server = uvicorn.Server(config)
    await server.serve()


async def init_schema():
    from db.session import engine
    from scripts.init_db import create_schema
    await create_schema(engine)


async def main():
    # Parse mode from CLI args first
    mode = "api"
    if len(sys.argv) > 1 and "init-db" in sys.argv:
        mode = "init-db"

    # Setup structured logging
    setup_logging()

    if mode == "init-db":
        logger.info("Creating database schema...", env=settings.ENV)
        await init_schema()
        return

    # For scaling run 'uvicorn api.main:app' directly; this is the single-node entry point
    logger.info("Starting API...", env=settings.ENV, host=settings.API_HOST, port=settings.API_PORT)
    await start_api()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Application stopped.")
