#alumni_records/__init__.py
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from alumni_records.core.config import settings
from alumni_records.core.database import get_engine, init_db
from alumni_records.models import registry
from alumni_records.store import RecordStore

__version__ = settings.VERSION


def create_store(engine: Optional[AsyncEngine] = None, tenant_id=None) -> RecordStore:
    """
    Store over every platform entity.

    Binds to ``DEFAULT_TENANT_ID`` unless a tenant is given.
    """
    return RecordStore(
        registry,
        engine or get_engine(),
        fillable_policy=settings.FILLABLE_POLICY,
        tenant_id=tenant_id if tenant_id is not None else settings.DEFAULT_TENANT_ID,
    )


async def create_tables(engine: Optional[AsyncEngine] = None) -> None:
    await init_db(registry.metadata, engine)


__all__ = ["create_store", "create_tables", "registry", "RecordStore"]
