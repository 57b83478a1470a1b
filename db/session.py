import asyncio

from sqlalchemy import event
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from core.config import settings
from core.exceptions import ConflictError, StoreUnavailableError
from core.logger import logger


def engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # Single shared connection so in-memory databases survive across sessions
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    # PostgreSQL driver for async operations is asyncpg
    return {
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_size": 20,       # Base connections
        "max_overflow": 10,    # Burst connections
        "pool_timeout": settings.DB_CONNECT_TIMEOUT_SECONDS,
        "connect_args": {
            "timeout": settings.DB_CONNECT_TIMEOUT_SECONDS,
            "command_timeout": settings.DB_QUERY_TIMEOUT_SECONDS,
        },
    }


def build_engine(url: str):
    engine = create_async_engine(url, echo=False, **engine_options(url))
    if url.startswith("sqlite"):
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, _connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


# Connection-level failures. asyncpg raises OSError subclasses (ConnectionRefusedError)
# on connect, the pool raises its own TimeoutError when exhausted.
UNREACHABLE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, OSError)


def _is_unreachable(exc: Exception) -> bool:
    if isinstance(exc, UNREACHABLE_ERRORS):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


async def execute(db: AsyncSession, statement):
    """Run a statement with the configured query timeout."""
    try:
        return await asyncio.wait_for(db.execute(statement), timeout=settings.DB_QUERY_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.error("Store query timed out", timeout=settings.DB_QUERY_TIMEOUT_SECONDS)
        raise StoreUnavailableError("Data store query timed out")
    except Exception as e:
        if not _is_unreachable(e):
            raise
        logger.error("Store unreachable", error_type=type(e).__name__, error=str(e))
        raise StoreUnavailableError() from e


async def commit(db: AsyncSession):
    """Commit the unit of work; unique-key violations surface as ConflictError."""
    try:
        await asyncio.wait_for(db.commit(), timeout=settings.DB_QUERY_TIMEOUT_SECONDS)
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Write conflict", error=str(e.orig))
        raise ConflictError("Concurrent write conflict, please retry")
    except asyncio.TimeoutError:
        logger.error("Store commit timed out", timeout=settings.DB_QUERY_TIMEOUT_SECONDS)
        raise StoreUnavailableError("Data store commit timed out")
    except Exception as e:
        if not _is_unreachable(e):
            raise
        logger.error("Store unreachable on commit", error_type=type(e).__name__, error=str(e))
        raise StoreUnavailableError() from e


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_redis():
    from redis.asyncio import Redis
    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        yield redis
    finally:
        await redis.aclose()
