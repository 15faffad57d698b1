# base.py
"""
Field shorthands shared by the entity declarations.

Tenant-owned entities carry an ``institution_id`` column pointing at
``institutions``; the store stamps and filters it when bound to a tenant.
"""
from alumni_records.store import FieldSpec, FieldType

TENANT_KEY = "institution_id"


def string(length: int = 255, nullable: bool = True, **options) -> FieldSpec:
    return FieldSpec(FieldType.STRING, length=length, nullable=nullable, **options)


def text(nullable: bool = True, **options) -> FieldSpec:
    return FieldSpec(FieldType.TEXT, nullable=nullable, **options)


def integer(nullable: bool = True, **options) -> FieldSpec:
    return FieldSpec(FieldType.INTEGER, nullable=nullable, **options)


def counter() -> FieldSpec:
    """Non-null integer starting at zero, usually maintained by a CounterCache."""
    return FieldSpec(FieldType.INTEGER, nullable=False, default=0)


def decimal(precision: int = 12, scale: int = 2, nullable: bool = True, **options) -> FieldSpec:
    return FieldSpec(FieldType.DECIMAL, precision=precision, scale=scale, nullable=nullable, **options)


def boolean(default: bool = False) -> FieldSpec:
    return FieldSpec(FieldType.BOOLEAN, nullable=False, default=default)


def timestamp(nullable: bool = True, **options) -> FieldSpec:
    return FieldSpec(FieldType.DATETIME, nullable=nullable, **options)


def day(nullable: bool = True, **options) -> FieldSpec:
    return FieldSpec(FieldType.DATE, nullable=nullable, **options)


def json_field(default=None, nullable: bool = True) -> FieldSpec:
    return FieldSpec(FieldType.JSON, default=default, nullable=nullable)


def choice(enum, default=None, nullable: bool = False) -> FieldSpec:
    return FieldSpec(FieldType.ENUM, choices=enum, default=default, nullable=nullable)


def reference(table: str, nullable: bool = False, on_delete: str = "CASCADE") -> FieldSpec:
    # SET NULL needs a nullable column
    if on_delete == "SET NULL":
        nullable = True
    return FieldSpec(FieldType.INTEGER, nullable=nullable, foreign_key=f"{table}.id", on_delete=on_delete)


def user_ref(nullable: bool = False, on_delete: str = "CASCADE") -> FieldSpec:
    return reference("users", nullable=nullable, on_delete=on_delete)


def tenant_field() -> FieldSpec:
    return reference("institutions")
