from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class RelationKind(str, Enum):
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    BELONGS_TO_MANY = "belongs_to_many"


@dataclass(frozen=True)
class Relation:
    """
    Relationship descriptor declared on an entity.

    foreign_key  -- belongs_to: column on this entity pointing at the target
                    has_one/has_many: column on the target pointing at us
                    belongs_to_many: column on the join table pointing at us
    local_key    -- column on this entity matched by the foreign key
    owner_key    -- column on the target matched by a belongs_to foreign key
    join_table   -- registered entity holding the association rows
    related_key  -- column on the join table pointing at the target
    pivot_fields -- join table columns exposed on related records as ``pivot``
    order_by     -- field names, "-name" for descending
    """
    name: str
    kind: RelationKind
    target: str
    foreign_key: str
    local_key: str = "id"
    owner_key: str = "id"
    join_table: Optional[str] = None
    related_key: Optional[str] = None
    pivot_fields: Tuple[str, ...] = ()
    order_by: Tuple[str, ...] = ()

    @property
    def many(self) -> bool:
        return self.kind in (RelationKind.HAS_MANY, RelationKind.BELONGS_TO_MANY)


def _ordering(order_by) -> Tuple[str, ...]:
    if order_by is None:
        return ()
    if isinstance(order_by, str):
        return (order_by,)
    return tuple(order_by)


def belongs_to(name: str, target: str, foreign_key: str, owner_key: str = "id") -> Relation:
    return Relation(name, RelationKind.BELONGS_TO, target, foreign_key, owner_key=owner_key)


def has_one(name: str, target: str, foreign_key: str, local_key: str = "id", order_by=None) -> Relation:
    return Relation(
        name, RelationKind.HAS_ONE, target, foreign_key,
        local_key=local_key, order_by=_ordering(order_by),
    )


def has_many(name: str, target: str, foreign_key: str, local_key: str = "id", order_by=None) -> Relation:
    return Relation(
        name, RelationKind.HAS_MANY, target, foreign_key,
        local_key=local_key, order_by=_ordering(order_by),
    )


def belongs_to_many(
    name: str,
    target: str,
    join_table: str,
    foreign_pivot_key: str,
    related_pivot_key: str,
    pivot_fields: Tuple[str, ...] = (),
    order_by=None,
) -> Relation:
    return Relation(
        name, RelationKind.BELONGS_TO_MANY, target, foreign_pivot_key,
        join_table=join_table,
        related_key=related_pivot_key,
        pivot_fields=tuple(pivot_fields),
        order_by=_ordering(order_by),
    )
