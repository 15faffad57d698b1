import asyncio
from logging.config import fileConfig
from typing import Any, Dict

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

# DATABASE_URL may live in .env when alembic runs outside the application
load_dotenv()

from alumni_records.core.config import is_sqlite_url, settings
from alumni_records.models import metadata

config = context.config
if config.config_file_name is not None:
    # keep the AlumniRecordsLogger created on import
    fileConfig(config.config_file_name, disable_existing_loggers=False)

# Every entity table is registered on this metadata when alumni_records.models is imported
target_metadata = metadata


def migration_options(url: str) -> Dict[str, Any]:
    """Options shared by offline and online runs."""
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        # SQLite cannot ALTER most constraints in place
        "render_as_batch": is_sqlite_url(url),
    }


def run_migrations_offline(url: str) -> None:
    """Emit SQL for the configured database without connecting to it."""
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **migration_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_on_connection(connection: Any, url: str) -> None:
    context.configure(connection=connection, compare_server_default=True, **migration_options(url))
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online(url: str) -> None:
    # Migrations run once and exit, so no pooled connections are kept
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with engine.begin() as connection:
            await connection.run_sync(_run_on_connection, url)
    finally:
        await engine.dispose()


database_url = settings.DATABASE_URL
if context.is_offline_mode():
    run_migrations_offline(database_url)
else:
    asyncio.run(run_migrations_online(database_url))
