from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager
from sqlalchemy import MetaData, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncConnection, AsyncEngine
from alumni_records.core.config import settings, get_engine_options, is_sqlite_url
from alumni_records.core.logging import logger, log_function_call
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

_engine: Optional[AsyncEngine] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite only enforces foreign keys per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def build_engine(url: Optional[str] = None, **overrides) -> AsyncEngine:
    """Create an async engine with the configured pool options"""
    url = url or settings.DATABASE_URL
    options = get_engine_options(url)
    options.update(overrides)

    engine = create_async_engine(url, **options)
    if is_sqlite_url(url):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine

def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use"""
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine

# Context manager for a single transactional unit
@asynccontextmanager
async def get_db_context(engine: Optional[AsyncEngine] = None) -> AsyncGenerator[AsyncConnection, None]:
    """
    Connection scoped to one transaction.
    Usage: async with get_db_context() as conn:
    Commits when the block exits cleanly, rolls back otherwise.
    """
    engine = engine or get_engine()
    async with engine.connect() as conn:
        transaction = await conn.begin()
        try:
            yield conn
            # Commit by default when used as context manager
            await transaction.commit()
        except Exception:
            await transaction.rollback()
            raise

# Database initialization functions
# The database may still be starting when the service comes up
@retry(
    retry=retry_if_exception_type(OperationalError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=10),
    reraise=True,
)
@log_function_call(logger)
async def init_db(metadata: MetaData, engine: Optional[AsyncEngine] = None) -> None:
    """Initialize database tables"""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

@log_function_call(logger)
async def reset_db(metadata: MetaData, engine: Optional[AsyncEngine] = None) -> None:
    """Reset database by dropping and recreating all tables"""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await init_db(metadata, engine)

async def close_db(engine: Optional[AsyncEngine] = None) -> None:
    """Close database connections"""
    global _engine
    if engine is not None:
        await engine.dispose()
        return
    if _engine is not None:
        await _engine.dispose()
        _engine = None
