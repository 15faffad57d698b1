import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, List, Mapping, Optional, Union

from sqlalchemy import delete, func, insert, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from alumni_records.core.config import settings
from alumni_records.core.database import get_db_context, get_engine
from alumni_records.core.exceptions import (
    ConstraintError,
    HookError,
    NotFoundError,
    ValidationError,
)
from alumni_records.core.logging import logger, record_extra
from alumni_records.store.casts import FieldType, cast_value
from alumni_records.store.hooks import HookContext, HookEvent
from alumni_records.store.query import PIVOT_PREFIX, JoinSpec, Query
from alumni_records.store.record import Record
from alumni_records.store.relations import RelationKind
from alumni_records.store.schema import Entity, EntityRegistry, check_relation

FILLABLE_POLICIES = ("discard", "reject")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RecordStore:
    """
    Typed access to entity records.

    Every public operation runs in its own transaction. Lifecycle hooks run
    inside that same transaction, so a failing hook rolls back the create or
    delete that triggered it.

    Usage::

        store = RecordStore(registry, engine)
        topic = await store.create("forum_topics", forum_id=1, user_id=7, title="Hello")
        posts = await store.relation(topic, "posts").scope("recent").all()
        await store.delete("forum_topics", topic.id)
    """

    def __init__(
        self,
        registry: EntityRegistry,
        engine: Optional[AsyncEngine] = None,
        *,
        fillable_policy: Optional[str] = None,
        tenant_id: Optional[Any] = None,
        connection: Optional[AsyncConnection] = None,
    ):
        policy = fillable_policy or settings.FILLABLE_POLICY
        if policy not in FILLABLE_POLICIES:
            raise ValueError(f"Unknown fillable policy: {policy}")
        self.registry = registry
        self.engine = engine or get_engine()
        self.fillable_policy = policy
        self.tenant_id = tenant_id
        self._connection = connection

    def for_tenant(self, tenant_id: Any) -> "RecordStore":
        return RecordStore(
            self.registry,
            self.engine,
            fillable_policy=self.fillable_policy,
            tenant_id=tenant_id,
            connection=self._connection,
        )

    def _bound(self, connection: AsyncConnection) -> "RecordStore":
        return RecordStore(
            self.registry,
            self.engine,
            fillable_policy=self.fillable_policy,
            tenant_id=self.tenant_id,
            connection=connection,
        )

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncConnection, None]:
        if self._connection is not None:
            yield self._connection
            return
        async with get_db_context(self.engine) as conn:
            yield conn

    # ── Reads ─────────────────────────────────────────────────────────────

    def query(self, entity_name: str) -> Query:
        return Query(self, self.registry.get(entity_name))

    async def find(self, entity_name: str, record_id: Any, with_trashed: bool = False) -> Optional[Record]:
        query = self.query(entity_name)
        if with_trashed:
            query = query.with_trashed()
        return await query.where(query.c.id == record_id).first()

    async def find_or_fail(self, entity_name: str, record_id: Any, with_trashed: bool = False) -> Record:
        record = await self.find(entity_name, record_id, with_trashed=with_trashed)
        if record is None:
            raise self._not_found(self.registry.get(entity_name), record_id)
        return record

    async def _fetch(self, query: Query) -> List[Record]:
        async with self._session() as conn:
            return await self._execute(conn, query)

    async def _count(self, query: Query) -> int:
        async with self._session() as conn:
            result = await conn.execute(query.count_statement())
            return result.scalar_one()

    async def _execute(self, conn: AsyncConnection, query: Query) -> List[Record]:
        result = await conn.execute(query.statement())
        joined = query._join is not None
        return [self._hydrate(query.entity, row, joined) for row in result.mappings().all()]

    async def _load(self, conn: AsyncConnection, entity: Entity, record_id: Any, trashed: str = "without") -> Optional[Record]:
        query = Query(self, entity, trashed=trashed)
        rows = await self._execute(conn, query.where(entity.table.c.id == record_id).limit(1))
        return rows[0] if rows else None

    @staticmethod
    def _hydrate(entity: Entity, row: Mapping[str, Any], joined: bool) -> Record:
        attributes: Dict[str, Any] = {}
        pivot: Optional[Dict[str, Any]] = {} if joined else None
        for key, value in row.items():
            if joined and key.startswith(PIVOT_PREFIX):
                pivot[key[len(PIVOT_PREFIX):]] = value
            else:
                attributes[key] = value
        return Record(entity, attributes, pivot)

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(self, entity_name: str, fields: Optional[Mapping[str, Any]] = None, **values: Any) -> Record:
        entity = self.registry.get(entity_name)
        data = self._fill(entity, {**(fields or {}), **values})
        async with self._session() as conn:
            record = await self._insert(conn, entity, data)
        logger.info(
            f"Created {entity.name} record {record.id}",
            extra=record_extra(entity.name, record.id, self.tenant_id),
        )
        return record

    async def update(self, entity_name: str, record_id: Any, fields: Optional[Mapping[str, Any]] = None, **values: Any) -> Record:
        entity = self.registry.get(entity_name)
        data = self._fill(entity, {**(fields or {}), **values})
        self._check_tenant(entity, data)
        table = entity.table

        async with self._session() as conn:
            existing = await self._load(conn, entity, record_id)
            if existing is None:
                raise self._not_found(entity, record_id)
            if not data:
                return existing
            if entity.timestamps:
                data["updated_at"] = _now()
            try:
                await conn.execute(update(table).where(table.c.id == record_id).values(**data))
            except IntegrityError as exc:
                raise self._constraint_error(entity, exc) from exc
            record = await self._load(conn, entity, record_id)

        logger.info(
            f"Updated {entity.name} record {record_id}: {', '.join(sorted(data))}",
            extra=record_extra(entity.name, record_id, self.tenant_id),
        )
        return record

    async def delete(self, entity_name: str, record_id: Any) -> Record:
        """Soft-delete where the entity allows it, otherwise remove the row."""
        entity = self.registry.get(entity_name)
        table = entity.table

        async with self._session() as conn:
            record = await self._load(conn, entity, record_id)
            if record is None:
                raise self._not_found(entity, record_id)
            if entity.soft_deletes:
                now = _now()
                values = {"deleted_at": now}
                if entity.timestamps:
                    values["updated_at"] = now
                # a concurrent delete of the same row matches nothing here
                result = await conn.execute(
                    update(table)
                    .where(table.c.id == record_id, table.c.deleted_at.is_(None))
                    .values(**values)
                )
                if not result.rowcount:
                    raise self._not_found(entity, record_id)
                record = await self._load(conn, entity, record_id, trashed="with")
            elif not await self._delete_row(conn, entity, record_id):
                raise self._not_found(entity, record_id)
            await self._run_hooks(conn, entity, HookEvent.DELETED, record)

        logger.info(
            f"{'Soft-deleted' if entity.soft_deletes else 'Deleted'} {entity.name} record {record_id}",
            extra=record_extra(entity.name, record_id, self.tenant_id),
        )
        return record

    async def restore(self, entity_name: str, record_id: Any) -> Record:
        entity = self.registry.get(entity_name)
        if not entity.soft_deletes:
            raise ValidationError(
                f"Entity '{entity.name}' does not support soft deletes",
                details={"entity": entity.name},
            )
        table = entity.table

        async with self._session() as conn:
            if await self._load(conn, entity, record_id, trashed="only") is None:
                raise self._not_found(entity, record_id)
            values: Dict[str, Any] = {"deleted_at": None}
            if entity.timestamps:
                values["updated_at"] = _now()
            result = await conn.execute(
                update(table)
                .where(table.c.id == record_id, table.c.deleted_at.is_not(None))
                .values(**values)
            )
            if not result.rowcount:
                raise self._not_found(entity, record_id)
            record = await self._load(conn, entity, record_id)
            await self._run_hooks(conn, entity, HookEvent.RESTORED, record)

        logger.info(
            f"Restored {entity.name} record {record_id}",
            extra=record_extra(entity.name, record_id, self.tenant_id),
        )
        return record

    async def force_delete(self, entity_name: str, record_id: Any) -> Record:
        """Remove the row outright; delete hooks only fire if it was still live."""
        entity = self.registry.get(entity_name)
        table = entity.table

        async with self._session() as conn:
            record = await self._load(conn, entity, record_id, trashed="with")
            if record is None:
                raise self._not_found(entity, record_id)
            # the row must still be in the state that decided whether hooks fire
            criteria = []
            if entity.soft_deletes:
                deleted_at = table.c.deleted_at
                criteria.append(deleted_at.is_not(None) if record.trashed else deleted_at.is_(None))
            if not await self._delete_row(conn, entity, record_id, *criteria):
                raise self._not_found(entity, record_id)
            if not record.trashed:
                await self._run_hooks(conn, entity, HookEvent.DELETED, record)

        logger.info(
            f"Force-deleted {entity.name} record {record_id}",
            extra=record_extra(entity.name, record_id, self.tenant_id),
        )
        return record

    async def increment(self, entity_name: str, record_id: Any, field: str, amount: Union[int, Any] = 1) -> Record:
        entity = self.registry.get(entity_name)
        async with self._session() as conn:
            if await self._load(conn, entity, record_id, trashed="with") is None:
                raise self._not_found(entity, record_id)
            await self._increment(conn, entity.name, record_id, field, amount)
            return await self._load(conn, entity, record_id, trashed="with")

    async def decrement(self, entity_name: str, record_id: Any, field: str, amount: Union[int, Any] = 1) -> Record:
        return await self.increment(entity_name, record_id, field, -amount)

    async def _increment(self, conn: AsyncConnection, entity_name: str, record_id: Any, field: str, amount) -> int:
        entity = self.registry.get(entity_name)
        spec = entity.fields.get(field)
        if spec is None or spec.field_type not in (FieldType.INTEGER, FieldType.DECIMAL):
            raise ValidationError(
                f"Field '{field}' on '{entity.name}' is not a numeric counter",
                details={"entity": entity.name, "field": field},
            )
        table = entity.table
        column = table.c[field]
        # single UPDATE so concurrent writers cannot lose increments
        values: Dict[str, Any] = {field: func.coalesce(column, 0) + amount}
        if entity.timestamps:
            values["updated_at"] = _now()
        result = await conn.execute(update(table).where(table.c.id == record_id).values(**values))
        return result.rowcount

    # ── Relations ─────────────────────────────────────────────────────────

    def relation(self, record: Record, name: str) -> Query:
        """Lazy query over the records related to ``record`` through ``name``."""
        entity = self.registry.get(record.entity_name)
        relation = entity.relation(name)
        check_relation(self.registry, entity, relation)
        target = self.registry.get(relation.target)
        columns = target.table.c
        query = Query(self, target)

        if relation.kind is RelationKind.BELONGS_TO:
            value = record.get(relation.foreign_key)
            if value is None:
                return query.nothing()
            return query.where(columns[relation.owner_key] == value)

        if relation.kind in (RelationKind.HAS_ONE, RelationKind.HAS_MANY):
            value = record.get(relation.local_key)
            if value is None:
                return query.nothing()
            query = query.where(columns[relation.foreign_key] == value)
        else:
            join = self.registry.get(relation.join_table)
            join_columns = join.table.c
            query = query.join(JoinSpec(
                table=join.table,
                onclause=join_columns[relation.related_key] == columns.id,
                pivot_columns=relation.pivot_fields,
            )).where(join_columns[relation.foreign_key] == record.id)
            if join.soft_deletes:
                query = query.where(join_columns.deleted_at.is_(None))

        if relation.order_by:
            query = query.order_by(*relation.order_by)
        return query

    async def relate(self, record: Record, name: str) -> Union[Optional[Record], List[Record]]:
        """Materialize a relation: a list for plural kinds, a record or None otherwise."""
        relation = self.registry.get(record.entity_name).relation(name)
        query = self.relation(record, name)
        if relation.many:
            return await query.all()
        return await query.first()

    async def attach(self, record: Record, name: str, related_id: Any, **pivot: Any) -> Record:
        """Insert a join row for a belongs-to-many relation and return it."""
        entity = self.registry.get(record.entity_name)
        relation = self._many_to_many(entity, name)
        join = self.registry.get(relation.join_table)

        unknown = sorted(set(pivot) - set(relation.pivot_fields))
        if unknown:
            raise ValidationError(
                f"Relation '{name}' has no pivot fields: {', '.join(unknown)}",
                details={"entity": entity.name, "relation": name, "fields": unknown},
            )
        raw = {relation.foreign_key: record.id, relation.related_key: related_id, **pivot}
        data = {key: cast_value(key, join.fields[key], value) for key, value in raw.items()}

        async with self._session() as conn:
            row = await self._insert(conn, join, data)
        logger.info(
            f"Attached {relation.target} {related_id} to {entity.name} {record.id} via {join.name}",
            extra=record_extra(join.name, row.id, self.tenant_id),
        )
        return row

    async def detach(self, record: Record, name: str, related_id: Optional[Any] = None) -> int:
        """Remove join rows; all of them when ``related_id`` is None. Returns rows removed."""
        entity = self.registry.get(record.entity_name)
        relation = self._many_to_many(entity, name)
        join = self.registry.get(relation.join_table)
        join_columns = join.table.c

        query = Query(self, join).where(join_columns[relation.foreign_key] == record.id)
        if related_id is not None:
            query = query.where(join_columns[relation.related_key] == related_id)

        async with self._session() as conn:
            removed = []
            for row in await self._execute(conn, query):
                # rows a concurrent detach already removed fire no hooks
                if await self._delete_row(conn, join, row.id):
                    await self._run_hooks(conn, join, HookEvent.DELETED, row)
                    removed.append(row)

        logger.info(
            f"Detached {len(removed)} {relation.target} from {entity.name} {record.id}",
            extra=record_extra(join.name, tenant_id=self.tenant_id),
        )
        return len(removed)

    def _many_to_many(self, entity: Entity, name: str):
        relation = entity.relation(name)
        if relation.kind is not RelationKind.BELONGS_TO_MANY:
            raise ValidationError(
                f"Relation '{name}' on '{entity.name}' is not many-to-many",
                details={"entity": entity.name, "relation": name},
            )
        check_relation(self.registry, entity, relation)
        return relation

    # ── Internals ─────────────────────────────────────────────────────────

    def _fill(self, entity: Entity, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Apply the allow-list policy, then cast what remains."""
        rejected = sorted(name for name in data if name not in entity.fillable)
        if rejected:
            if self.fillable_policy == "reject":
                raise ValidationError(
                    f"Fields not assignable on '{entity.name}': {', '.join(rejected)}",
                    details={"entity": entity.name, "fields": rejected},
                )
            logger.warning(
                f"Discarded non-fillable fields on {entity.name}: {', '.join(rejected)}",
                extra=record_extra(entity.name),
            )
        return {
            name: cast_value(name, entity.fields[name], value)
            for name, value in data.items()
            if name in entity.fillable
        }

    def _check_tenant(self, entity: Entity, data: Mapping[str, Any]) -> None:
        key = entity.tenant_key
        if key is None or self.tenant_id is None or key not in data:
            return
        if data[key] != self.tenant_id:
            raise ValidationError(
                f"Cannot write {entity.name} for tenant {data[key]} from tenant {self.tenant_id}",
                details={"entity": entity.name, "tenant_id": self.tenant_id},
            )

    def _prepare_insert(self, entity: Entity, data: Mapping[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for name, spec in entity.fields.items():
            if name in data:
                values[name] = data[name]
                continue
            initial = spec.initial()
            if initial is not None:
                values[name] = cast_value(name, spec, initial)

        self._check_tenant(entity, values)
        if entity.tenant_key is not None and self.tenant_id is not None:
            values[entity.tenant_key] = self.tenant_id

        if entity.key_type == "uuid":
            values["id"] = str(uuid.uuid4())
        if entity.timestamps:
            now = _now()
            values["created_at"] = now
            values["updated_at"] = now
        return values

    async def _insert(self, conn: AsyncConnection, entity: Entity, data: Mapping[str, Any]) -> Record:
        values = self._prepare_insert(entity, data)
        try:
            result = await conn.execute(insert(entity.table).values(**values))
        except IntegrityError as exc:
            raise self._constraint_error(entity, exc) from exc
        record_id = values["id"] if "id" in values else result.inserted_primary_key[0]
        record = await self._load(conn, entity, record_id, trashed="with")
        await self._run_hooks(conn, entity, HookEvent.CREATED, record)
        return record

    async def _delete_row(self, conn: AsyncConnection, entity: Entity, record_id: Any, *criteria) -> int:
        """Delete one row; returns how many rows the statement actually removed."""
        table = entity.table
        try:
            result = await conn.execute(delete(table).where(table.c.id == record_id, *criteria))
        except IntegrityError as exc:
            raise self._constraint_error(entity, exc) from exc
        return result.rowcount

    async def _run_hooks(self, conn: AsyncConnection, entity: Entity, event: HookEvent, record: Record) -> None:
        hooks = entity.hooks[event]
        if not hooks:
            return
        ctx = HookContext(store=self._bound(conn), connection=conn, entity=entity, event=event)
        for hook in hooks:
            label = hook.name or getattr(hook.callback, "__name__", repr(hook.callback))
            try:
                await hook.callback(ctx, record)
            except HookError as exc:
                logger.error(
                    f"Hook '{label}' failed on {event.value} {entity.name} {record.id}: {exc.message}",
                    extra=record_extra(entity.name, record.id, self.tenant_id),
                )
                raise
            except Exception as exc:
                logger.error(
                    f"Hook '{label}' failed on {event.value} {entity.name} {record.id}",
                    exc_info=True,
                    extra=record_extra(entity.name, record.id, self.tenant_id),
                )
                raise HookError(
                    f"Hook '{label}' failed on {event.value} {entity.name}: {exc}",
                    details={"entity": entity.name, "event": event.value, "hook": label},
                ) from exc

    def _constraint_error(self, entity: Entity, exc: IntegrityError) -> ConstraintError:
        reason = str(getattr(exc, "orig", exc))
        logger.warning(
            f"Constraint violation on {entity.name}: {reason}",
            extra=record_extra(entity.name),
        )
        return ConstraintError(
            f"Storage rejected write to '{entity.name}': {reason}",
            details={"entity": entity.name, "reason": reason},
        )

    @staticmethod
    def _not_found(entity: Entity, record_id: Any) -> NotFoundError:
        return NotFoundError(
            f"{entity.name} record {record_id} not found",
            details={"entity": entity.name, "id": record_id},
        )
