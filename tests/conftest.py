"""
Pytest configuration for the record store tests.

Each test gets its own SQLite file under ``tmp_path`` with every platform
table created, so tests never share rows.
"""

import pytest
import pytest_asyncio

from alumni_records.core.database import build_engine, init_db
from alumni_records.models import registry
from alumni_records.store import RecordStore


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'records.db'}"


@pytest_asyncio.fixture
async def engine(database_url):
    engine = build_engine(database_url)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def store(engine):
    """Unbound store over every platform entity, discarding non-fillable fields."""
    await init_db(registry.metadata, engine)
    return RecordStore(registry, engine, fillable_policy="discard")


@pytest_asyncio.fixture
async def strict_store(store):
    return RecordStore(store.registry, store.engine, fillable_policy="reject")


@pytest_asyncio.fixture
async def institution(store):
    return await store.create("institutions", name="Northfield University", slug="northfield")


@pytest_asyncio.fixture
async def user(store, institution):
    return await store.create(
        "users",
        institution_id=institution.id,
        name="Ada Obi",
        email="ada@northfield.edu",
    )


@pytest_asyncio.fixture
async def forum(store, institution):
    return await store.create(
        "forums",
        institution_id=institution.id,
        name="Career Advice",
        slug="career-advice",
    )


@pytest_asyncio.fixture
async def topic(store, forum, user):
    return await store.create(
        "forum_topics",
        forum_id=forum.id,
        user_id=user.id,
        title="Moving from academia to industry",
    )
