from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from sqlalchemy import ColumnElement, Select, and_, false, func, select
from sqlalchemy.sql.base import ColumnCollection

from alumni_records.core.exceptions import SchemaError, ValidationError
from alumni_records.store.casts import plain

if TYPE_CHECKING:
    from alumni_records.store.record import Record
    from alumni_records.store.schema import Entity
    from alumni_records.store.store import RecordStore

TRASHED_MODES = ("without", "with", "only")
PIVOT_PREFIX = "pivot__"


@dataclass(frozen=True)
class JoinSpec:
    """Association table joined in by a belongs-to-many relation."""
    table: Any
    onclause: Any
    pivot_columns: Tuple[str, ...] = ()


class Query:
    """
    Immutable query value over one entity.

    Every builder method returns a new Query, so a query can be shared and
    extended without side effects. Nothing runs until a terminal call
    (``all``, ``first``, ``count``, ``exists``) or ``async for``.
    """

    def __init__(
        self,
        store: "RecordStore",
        entity: "Entity",
        *,
        criteria: Tuple[ColumnElement, ...] = (),
        ordering: Tuple[Any, ...] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        trashed: str = "without",
        join: Optional[JoinSpec] = None,
    ):
        self._store = store
        self._entity = entity
        self._criteria = criteria
        self._ordering = ordering
        self._limit = limit
        self._offset = offset
        self._trashed = trashed
        self._join = join

    def _replace(self, **changes) -> "Query":
        state = {
            "criteria": self._criteria,
            "ordering": self._ordering,
            "limit": self._limit,
            "offset": self._offset,
            "trashed": self._trashed,
            "join": self._join,
        }
        state.update(changes)
        return Query(self._store, self._entity, **state)

    @property
    def entity(self) -> "Entity":
        return self._entity

    @property
    def c(self) -> ColumnCollection:
        """Columns of the entity's table, for building where() expressions."""
        return self._entity.table.c

    def column(self, name: str):
        if name not in self.c:
            raise ValidationError(
                f"Entity '{self._entity.name}' has no field '{name}'",
                details={"entity": self._entity.name, "field": name},
            )
        return self.c[name]

    # ── Builders ──────────────────────────────────────────────────────────

    def where(self, *expressions: ColumnElement) -> "Query":
        return self._replace(criteria=self._criteria + tuple(expressions))

    def where_field(self, **equals: Any) -> "Query":
        expressions = []
        for name, value in equals.items():
            column = self.column(name)
            value = plain(value)
            expressions.append(column.is_(None) if value is None else column == value)
        return self.where(*expressions)

    def where_in(self, name: str, values) -> "Query":
        return self.where(self.column(name).in_([plain(v) for v in values]))

    def nothing(self) -> "Query":
        return self.where(false())

    def order_by(self, *fields: Any) -> "Query":
        ordering = []
        for item in fields:
            if isinstance(item, str):
                column = self.column(item.lstrip("-"))
                ordering.append(column.desc() if item.startswith("-") else column.asc())
            else:
                ordering.append(item)
        return self._replace(ordering=self._ordering + tuple(ordering))

    def limit(self, count: Optional[int]) -> "Query":
        return self._replace(limit=count)

    def offset(self, count: Optional[int]) -> "Query":
        return self._replace(offset=count)

    def with_trashed(self) -> "Query":
        return self._replace(trashed="with")

    def only_trashed(self) -> "Query":
        return self._replace(trashed="only")

    def trashed_mode(self, mode: str) -> "Query":
        if mode not in TRASHED_MODES:
            raise ValueError(f"Unknown trashed mode: {mode}")
        return self._replace(trashed=mode)

    def scope(self, name: str, *args: Any, **kwargs: Any) -> "Query":
        """Apply a named scope of the entity; chained scopes are ANDed."""
        scope = self._entity.scopes.get(name)
        if scope is None:
            raise SchemaError(
                f"Entity '{self._entity.name}' has no scope '{name}'",
                details={"entity": self._entity.name, "scope": name},
            )
        result = scope(self, *args, **kwargs)
        if not isinstance(result, Query):
            raise SchemaError(
                f"Scope '{name}' on '{self._entity.name}' did not return a query",
                details={"entity": self._entity.name, "scope": name},
            )
        return result

    def join(self, spec: JoinSpec) -> "Query":
        return self._replace(join=spec)

    # ── Compilation ───────────────────────────────────────────────────────

    def _global_criteria(self) -> List[ColumnElement]:
        entity = self._entity
        table = entity.table
        criteria = []
        if entity.soft_deletes:
            if self._trashed == "without":
                criteria.append(table.c.deleted_at.is_(None))
            elif self._trashed == "only":
                criteria.append(table.c.deleted_at.is_not(None))
        tenant_id = self._store.tenant_id
        if entity.tenant_key is not None and tenant_id is not None:
            criteria.append(table.c[entity.tenant_key] == tenant_id)
        return criteria

    def _insertion_order(self) -> Tuple[Any, ...]:
        table = self._entity.table
        if self._entity.key_type == "uuid" and self._entity.timestamps:
            # random keys carry no order of their own
            return (table.c.created_at.asc(), table.c.id.asc())
        return (table.c.id.asc(),)

    def statement(self) -> Select:
        table = self._entity.table
        columns = list(table.c)
        source = table
        if self._join is not None:
            columns.extend(
                self._join.table.c[name].label(f"{PIVOT_PREFIX}{name}")
                for name in self._join.pivot_columns
            )
            source = table.join(self._join.table, self._join.onclause)

        stmt = select(*columns).select_from(source)
        criteria = self._global_criteria() + list(self._criteria)
        if criteria:
            stmt = stmt.where(and_(*criteria))
        stmt = stmt.order_by(*(self._ordering or self._insertion_order()))
        if self._limit is not None:
            stmt = stmt.limit(self._limit)
        if self._offset is not None:
            stmt = stmt.offset(self._offset)
        return stmt

    def count_statement(self) -> Select:
        inner = self._replace(ordering=(), limit=None, offset=None).statement().order_by(None)
        return select(func.count()).select_from(inner.subquery())

    # ── Execution ─────────────────────────────────────────────────────────

    async def all(self) -> List["Record"]:
        return await self._store._fetch(self)

    async def first(self) -> Optional["Record"]:
        rows = await self._store._fetch(self.limit(1))
        return rows[0] if rows else None

    async def count(self) -> int:
        return await self._store._count(self)

    async def exists(self) -> bool:
        return await self.first() is not None

    async def __aiter__(self):
        for record in await self.all():
            yield record

    def __repr__(self):
        return f"<Query(entity={self._entity.name}, criteria={len(self._criteria)}, trashed={self._trashed})>"
