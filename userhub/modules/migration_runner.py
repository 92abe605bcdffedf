import os
import logging
from databases import Database

logger = logging.getLogger("userhub.migrations")

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "migrations")


def discover_migrations(migration_dir: str = MIGRATIONS_DIR):
    """Return the .sql files of a migrations directory in apply order."""
    return sorted(f for f in os.listdir(migration_dir) if f.endswith(".sql"))


def split_statements(sql: str):
    return [s.strip() for s in sql.split(";") if s.strip()]


async def run_migrations(database: Database, migration_dir: str = MIGRATIONS_DIR):
    """
    Executes every .sql file in userhub/migrations.
    A simple forward-only runner; statements must be idempotent.
    """
    if not database.is_connected:
        await database.connect()

    files = discover_migrations(migration_dir)
    logger.info(f"Found {len(files)} migration files.")

    for filename in files:
        filepath = os.path.join(migration_dir, filename)
        logger.info(f"Applying migration: {filename}")

        with open(filepath, "r") as f:
            statements = split_statements(f.read())

        async with database.transaction():
            for stmt in statements:
                await database.execute(stmt)

    logger.info("All migrations applied successfully.")
