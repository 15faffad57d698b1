from .casts import FieldType, UTCDateTime, cast_value
from .hooks import CounterCache, Hook, HookContext, HookEvent, after_create, after_delete, counter_cache
from .query import JoinSpec, Query
from .record import Record
from .relations import Relation, RelationKind, belongs_to, belongs_to_many, has_many, has_one
from .schema import Entity, EntityRegistry, EntitySchema, FieldSpec
from .store import RecordStore

__all__ = [
    "FieldType",
    "UTCDateTime",
    "cast_value",
    "CounterCache",
    "Hook",
    "HookContext",
    "HookEvent",
    "after_create",
    "after_delete",
    "counter_cache",
    "JoinSpec",
    "Query",
    "Record",
    "Relation",
    "RelationKind",
    "belongs_to",
    "belongs_to_many",
    "has_many",
    "has_one",
    "Entity",
    "EntityRegistry",
    "EntitySchema",
    "FieldSpec",
    "RecordStore",
]
