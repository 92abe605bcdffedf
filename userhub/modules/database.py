"""
Database handle, connection pool and lifecycle helpers.
"""
import asyncio
import logging

import asyncpg
from databases import Database

from userhub.modules.settings import settings
from userhub.modules.migration_runner import run_migrations

logger = logging.getLogger("userhub.database")

# Raised while the server is down, still starting up or out of connection slots
CONNECTION_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
)

# Pool bounds are passed through to asyncpg.create_pool
database = Database(
    settings.DATABASE_URL,
    min_size=settings.DB_POOL_MIN_SIZE,
    max_size=settings.DB_POOL_MAX_SIZE,
    timeout=settings.DB_CONNECT_TIMEOUT,
)


async def connect_to_db(
    db: Database = database,
    retries: int = settings.DB_CONNECT_RETRIES,
    delay: float = settings.DB_CONNECT_RETRY_DELAY,
):
    """
    Open the connection pool, retrying while the server is not reachable
    or not accepting connections yet.

    Raises the last connection error once all attempts are used up.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            await db.connect()
            logger.info("Database connection established")
            return
        except CONNECTION_ERRORS as e:
            if attempt > retries:
                logger.error(f"Database unreachable after {attempt} attempts: {e}")
                raise
            logger.warning(f"Database connection attempt {attempt} failed: {e}; retrying in {delay}s")
            await asyncio.sleep(delay)


async def disconnect_from_db(db: Database = database):
    if db.is_connected:
        await db.disconnect()
        logger.info("Database connection closed")


async def init_db(db: Database = database):
    await run_migrations(db)


async def health_check(db: Database = database) -> bool:
    """True if the pool is connected and answers a trivial query."""
    try:
        if not db.is_connected:
            return False
        await db.fetch_val("SELECT 1")
        return True
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        return False
