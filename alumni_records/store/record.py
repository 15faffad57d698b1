from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

if TYPE_CHECKING:
    from alumni_records.store.schema import Entity


class Record(Mapping):
    """
    Transient, read-only projection of one row.

    Columns are available by key or attribute; declared accessors are
    computed on attribute access from the loaded columns only. Rows loaded
    through a belongs-to-many relation carry their join columns in ``pivot``.
    """

    __slots__ = ("_entity", "_attributes", "pivot")

    def __init__(self, entity: "Entity", attributes: Dict[str, Any], pivot: Optional[Dict[str, Any]] = None):
        self._entity = entity
        self._attributes = dict(attributes)
        self.pivot = pivot

    @property
    def entity(self) -> "Entity":
        return self._entity

    @property
    def entity_name(self) -> str:
        return self._entity.name

    @property
    def id(self) -> Any:
        return self._attributes.get("id")

    @property
    def trashed(self) -> bool:
        return self._attributes.get("deleted_at") is not None

    def __getitem__(self, key: str) -> Any:
        return self._attributes[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._attributes)

    def __len__(self) -> int:
        return len(self._attributes)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        attributes = self._attributes
        if name in attributes:
            return attributes[name]
        accessor = self._entity.accessors.get(name)
        if accessor is not None:
            return accessor(self)
        raise AttributeError(f"'{self._entity.name}' record has no attribute '{name}'")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self._entity.name == other._entity.name and self._attributes == other._attributes

    __hash__ = None

    def to_dict(self, include_accessors: bool = False) -> Dict[str, Any]:
        data = dict(self._attributes)
        if include_accessors:
            for name, accessor in self._entity.accessors.items():
                data[name] = accessor(self)
        if self.pivot is not None:
            data["pivot"] = dict(self.pivot)
        return data

    def __repr__(self):
        return f"<Record(entity={self._entity.name}, id={self.id})>"
