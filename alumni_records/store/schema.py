import inspect
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, UniqueConstraint

from alumni_records.core.exceptions import SchemaError
from alumni_records.store.casts import FieldType, UTCDateTime, column_type
from alumni_records.store.hooks import Hook, HookEvent
from alumni_records.store.relations import Relation, RelationKind

RESERVED_FIELDS = ("id", "created_at", "updated_at", "deleted_at")
KEY_TYPES = ("integer", "uuid")


@dataclass(frozen=True)
class FieldSpec:
    """Declared column: type, cast rule and storage options."""
    type: Any
    nullable: bool = True
    default: Any = None
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    choices: Any = ()
    foreign_key: Optional[str] = None
    on_delete: Optional[str] = None
    unique: bool = False
    index: bool = False

    @property
    def field_type(self) -> FieldType:
        return FieldType(self.type)

    def initial(self) -> Any:
        return self.default() if callable(self.default) else self.default


@dataclass
class EntitySchema:
    name: str
    fields: Dict[str, FieldSpec]
    # None makes every declared field fillable
    fillable: Optional[Tuple[str, ...]] = None
    relations: Tuple[Relation, ...] = ()
    scopes: Dict[str, Callable] = field(default_factory=dict)
    accessors: Dict[str, Callable] = field(default_factory=dict)
    hooks: Tuple[Hook, ...] = ()
    timestamps: bool = True
    soft_deletes: bool = False
    key_type: str = "integer"
    tenant_key: Optional[str] = None
    unique_together: Tuple[Tuple[str, ...], ...] = ()


class Entity:
    """A validated entity type bound to its table."""

    def __init__(self, schema: EntitySchema, fields: Dict[str, FieldSpec], table: Table):
        self.schema = schema
        self.name = schema.name
        self.fields = fields
        self.table = table
        self.fillable = frozenset(schema.fillable if schema.fillable is not None else fields)
        self.relations: Dict[str, Relation] = {r.name: r for r in schema.relations}
        self.scopes = dict(schema.scopes)
        self.accessors = dict(schema.accessors)
        self.timestamps = schema.timestamps
        self.soft_deletes = schema.soft_deletes
        self.key_type = schema.key_type
        self.tenant_key = schema.tenant_key
        self.hooks: Dict[HookEvent, Tuple[Hook, ...]] = {
            event: tuple(h for h in schema.hooks if h.event is event) for event in HookEvent
        }

    def has_column(self, name: str) -> bool:
        return name in self.table.c

    def relation(self, name: str) -> Relation:
        try:
            return self.relations[name]
        except KeyError:
            raise SchemaError(
                f"Entity '{self.name}' has no relation '{name}'",
                details={"entity": self.name, "relation": name},
            ) from None

    def __repr__(self):
        return f"<Entity(name={self.name}, fields={len(self.fields)})>"


def _normalize_choices(name: str, spec: FieldSpec) -> Tuple[str, ...]:
    choices = spec.choices
    if inspect.isclass(choices) and issubclass(choices, Enum):
        return tuple(member.value for member in choices)
    choices = tuple(c.value if isinstance(c, Enum) else c for c in choices)
    if not choices:
        raise SchemaError(
            f"Enum field '{name}' declares no choices",
            details={"field": name},
        )
    return choices


class EntityRegistry:
    """Explicit catalogue of entity types and the metadata holding their tables."""

    def __init__(self, metadata: Optional[MetaData] = None):
        self.metadata = metadata or MetaData()
        self._entities: Dict[str, Entity] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._entities

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)

    def get(self, name: str) -> Entity:
        try:
            return self._entities[name]
        except KeyError:
            raise SchemaError(f"Unknown entity '{name}'", details={"entity": name}) from None

    def define(self, schema: EntitySchema) -> Entity:
        """Validate ``schema`` and register it; raises SchemaError on any problem."""
        name = schema.name
        if not name:
            raise SchemaError("Entity name is required")
        if name in self._entities:
            raise SchemaError(f"Entity '{name}' is already defined", details={"entity": name})
        if schema.key_type not in KEY_TYPES:
            raise SchemaError(
                f"Entity '{name}' has unknown key type '{schema.key_type}'",
                details={"entity": name, "key_type": schema.key_type},
            )

        fields = self._validate_fields(name, schema.fields)

        for label, names in (("fillable", schema.fillable or ()),
                             ("unique_together", [n for group in schema.unique_together for n in group])):
            unknown = sorted(set(names) - set(fields))
            if unknown:
                raise SchemaError(
                    f"Entity '{name}' lists undeclared {label} fields: {', '.join(unknown)}",
                    details={"entity": name, label: unknown},
                )

        if schema.tenant_key is not None and schema.tenant_key not in fields:
            raise SchemaError(
                f"Entity '{name}' tenant key '{schema.tenant_key}' is not a declared field",
                details={"entity": name, "tenant_key": schema.tenant_key},
            )

        taken = set(fields) | set(RESERVED_FIELDS)
        for scope_name, scope in schema.scopes.items():
            if not callable(scope):
                raise SchemaError(
                    f"Scope '{scope_name}' on '{name}' is not callable",
                    details={"entity": name, "scope": scope_name},
                )
        for accessor_name, accessor in schema.accessors.items():
            if accessor_name in taken or not callable(accessor):
                raise SchemaError(
                    f"Accessor '{accessor_name}' on '{name}' clashes with a field or is not callable",
                    details={"entity": name, "accessor": accessor_name},
                )
            taken.add(accessor_name)

        seen = set()
        for relation in schema.relations:
            if relation.name in seen or relation.name in taken:
                raise SchemaError(
                    f"Relation '{relation.name}' on '{name}' clashes with another name",
                    details={"entity": name, "relation": relation.name},
                )
            if relation.kind is RelationKind.BELONGS_TO and relation.foreign_key not in fields:
                raise SchemaError(
                    f"Relation '{relation.name}' on '{name}' uses undeclared foreign key "
                    f"'{relation.foreign_key}'",
                    details={"entity": name, "relation": relation.name},
                )
            if relation.kind is RelationKind.BELONGS_TO_MANY and not (relation.join_table and relation.related_key):
                raise SchemaError(
                    f"Relation '{relation.name}' on '{name}' needs a join table and related key",
                    details={"entity": name, "relation": relation.name},
                )
            seen.add(relation.name)

        for hook in schema.hooks:
            if not isinstance(hook, Hook) or not callable(hook.callback):
                raise SchemaError(
                    f"Entity '{name}' declares an invalid hook: {hook!r}",
                    details={"entity": name},
                )

        table = self._build_table(schema, fields)
        entity = Entity(schema, fields, table)
        self._entities[name] = entity
        return entity

    def _validate_fields(self, entity_name: str, declared: Mapping[str, FieldSpec]) -> Dict[str, FieldSpec]:
        fields: Dict[str, FieldSpec] = {}
        for field_name, spec in declared.items():
            if field_name in RESERVED_FIELDS:
                raise SchemaError(
                    f"Field '{field_name}' on '{entity_name}' is managed by the store",
                    details={"entity": entity_name, "field": field_name},
                )
            if not isinstance(spec, FieldSpec):
                raise SchemaError(
                    f"Field '{field_name}' on '{entity_name}' must be a FieldSpec",
                    details={"entity": entity_name, "field": field_name},
                )
            try:
                field_type = spec.field_type
            except ValueError:
                raise SchemaError(
                    f"Field '{field_name}' on '{entity_name}' has unknown type '{spec.type}'",
                    details={"entity": entity_name, "field": field_name, "type": str(spec.type)},
                ) from None
            updates: Dict[str, Any] = {"type": field_type}
            if field_type is FieldType.ENUM:
                updates["choices"] = _normalize_choices(field_name, spec)
            if field_type is FieldType.DECIMAL and spec.scale is not None and spec.scale < 0:
                raise SchemaError(
                    f"Decimal field '{field_name}' on '{entity_name}' has a negative scale",
                    details={"entity": entity_name, "field": field_name},
                )
            fields[field_name] = replace(spec, **updates)
        return fields

    def _build_table(self, schema: EntitySchema, fields: Dict[str, FieldSpec]) -> Table:
        columns = []
        if schema.key_type == "uuid":
            columns.append(Column("id", String(36), primary_key=True))
        else:
            columns.append(Column("id", Integer, primary_key=True, autoincrement=True))

        for field_name, spec in fields.items():
            args = [column_type(spec)]
            if spec.foreign_key:
                args.append(ForeignKey(spec.foreign_key, ondelete=spec.on_delete))
            columns.append(Column(
                field_name,
                *args,
                nullable=spec.nullable,
                unique=spec.unique or None,
                index=spec.index or bool(spec.foreign_key) or field_name == schema.tenant_key or None,
            ))

        if schema.timestamps:
            columns.append(Column("created_at", UTCDateTime(), nullable=True))
            columns.append(Column("updated_at", UTCDateTime(), nullable=True))
        if schema.soft_deletes:
            columns.append(Column("deleted_at", UTCDateTime(), nullable=True, index=True))

        # PostgreSQL caps identifiers at 63 characters
        constraints = [
            UniqueConstraint(*group, name=f"uq_{schema.name}_{'_'.join(group)}"[:63])
            for group in schema.unique_together
        ]
        return Table(schema.name, self.metadata, *columns, *constraints)

    def validate_relations(self) -> None:
        """Check every relation against the entities defined so far."""
        for entity in self:
            for relation in entity.relations.values():
                check_relation(self, entity, relation)


def check_relation(registry: EntityRegistry, entity: Entity, relation: Relation) -> None:
    target = registry.get(relation.target)
    missing = []
    if relation.kind is RelationKind.BELONGS_TO:
        if not target.has_column(relation.owner_key):
            missing.append(f"{target.name}.{relation.owner_key}")
    elif relation.kind in (RelationKind.HAS_ONE, RelationKind.HAS_MANY):
        if not target.has_column(relation.foreign_key):
            missing.append(f"{target.name}.{relation.foreign_key}")
        if not entity.has_column(relation.local_key):
            missing.append(f"{entity.name}.{relation.local_key}")
    else:
        join = registry.get(relation.join_table)
        for column in (relation.foreign_key, relation.related_key, *relation.pivot_fields):
            if not join.has_column(column):
                missing.append(f"{join.name}.{column}")
    for column in relation.order_by:
        if not target.has_column(column.lstrip("-")):
            missing.append(f"{target.name}.{column.lstrip('-')}")
    if missing:
        raise SchemaError(
            f"Relation '{relation.name}' on '{entity.name}' refers to unknown columns: {', '.join(missing)}",
            details={"entity": entity.name, "relation": relation.name, "missing": missing},
        )
