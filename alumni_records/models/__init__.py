from typing import Optional

from sqlalchemy import MetaData

from alumni_records.store import EntityRegistry

from . import (
    ab_testing,
    career,
    core,
    events,
    forums,
    imports,
    messaging,
    onboarding,
    publishing,
    scholarships,
    video_calls,
    webhooks,
)

ALL_SCHEMAS = (
    *core.SCHEMAS,
    *ab_testing.SCHEMAS,
    *forums.SCHEMAS,
    *events.SCHEMAS,
    *scholarships.SCHEMAS,
    *webhooks.SCHEMAS,
    *onboarding.SCHEMAS,
    *messaging.SCHEMAS,
    *career.SCHEMAS,
    *video_calls.SCHEMAS,
    *imports.SCHEMAS,
    *publishing.SCHEMAS,
)


def build_registry(metadata: Optional[MetaData] = None) -> EntityRegistry:
    """Define every platform entity on a fresh registry and check its relations."""
    registry = EntityRegistry(metadata)
    for schema in ALL_SCHEMAS:
        registry.define(schema)
    registry.validate_relations()
    return registry


registry = build_registry()
metadata = registry.metadata

__all__ = ["ALL_SCHEMAS", "build_registry", "registry", "metadata"]
