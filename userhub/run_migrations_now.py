import asyncio
import logging
from userhub.modules.database import database, connect_to_db, disconnect_from_db
from userhub.modules.logging_config import configure_logging
from userhub.modules.migration_runner import run_migrations

logger = logging.getLogger("userhub.migrations")


async def main():
    configure_logging()
    logger.info("Connecting to DB...")
    await connect_to_db(database)
    try:
        await run_migrations(database)
    finally:
        await disconnect_from_db(database)

if __name__ == "__main__":
    asyncio.run(main())
