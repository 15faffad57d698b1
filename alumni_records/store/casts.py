"""
Field types and cast rules.

Each declared field has a ``FieldType``. The type decides both the column
type used for storage and how a caller-supplied value is coerced before it
is written. Decoding on read is handled by the column types themselves, so
a value written through ``cast_value`` reloads as an equal Python value.
"""
import json
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, JSON, Numeric, String, Text
from sqlalchemy.types import TypeDecorator, TypeEngine

from alumni_records.core.exceptions import ValidationError

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


class FieldType(str, Enum):
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    DATE = "date"
    JSON = "json"
    ENUM = "enum"


class UTCDateTime(TypeDecorator):
    """Stores naive UTC, returns timezone-aware UTC."""
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def plain(value: Any) -> Any:
    """Unwrap enum members to their stored value."""
    if isinstance(value, Enum):
        return value.value
    return value


def column_type(spec) -> TypeEngine:
    field_type = spec.field_type
    if field_type is FieldType.STRING:
        return String(spec.length or 255)
    if field_type is FieldType.TEXT:
        return Text()
    if field_type is FieldType.INTEGER:
        return Integer()
    if field_type is FieldType.DECIMAL:
        return Numeric(spec.precision, spec.scale, asdecimal=True)
    if field_type is FieldType.BOOLEAN:
        return Boolean()
    if field_type is FieldType.DATETIME:
        return UTCDateTime()
    if field_type is FieldType.DATE:
        return Date()
    if field_type is FieldType.JSON:
        return JSON()
    if field_type is FieldType.ENUM:
        return String(spec.length or 50)
    raise TypeError(f"No column type for {field_type!r}")


def _fail(name: str, value: Any, expected: str) -> ValidationError:
    return ValidationError(
        f"Field '{name}' expects {expected}, got {type(value).__name__}",
        details={"field": name, "expected": expected, "value": repr(value)},
    )


def cast_value(name: str, spec, value: Any) -> Any:
    """Coerce ``value`` for storage in the field ``name``.

    Raises ValidationError when the value cannot be represented by the
    field's type, or when None is given for a non-nullable field.
    """
    if value is None:
        if not spec.nullable:
            raise ValidationError(
                f"Field '{name}' cannot be null",
                details={"field": name},
            )
        return None

    field_type = spec.field_type

    if field_type in (FieldType.STRING, FieldType.TEXT):
        value = plain(value)
        if not isinstance(value, str):
            raise _fail(name, value, "a string")
        if field_type is FieldType.STRING and spec.length and len(value) > spec.length:
            raise ValidationError(
                f"Field '{name}' is longer than {spec.length} characters",
                details={"field": name, "max_length": spec.length},
            )
        return value

    if field_type is FieldType.INTEGER:
        if isinstance(value, bool):
            raise _fail(name, value, "an integer")
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                raise _fail(name, value, "an integer") from None
        raise _fail(name, value, "an integer")

    if field_type is FieldType.DECIMAL:
        if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
            raise _fail(name, value, "a decimal")
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            raise _fail(name, value, "a decimal") from None
        if not number.is_finite():
            raise _fail(name, value, "a finite decimal")
        if spec.scale is not None:
            number = number.quantize(Decimal(1).scaleb(-spec.scale))
        return number

    if field_type is FieldType.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
        raise _fail(name, value, "a boolean")

    if field_type is FieldType.DATETIME:
        if isinstance(value, datetime):
            return as_utc(value)
        if isinstance(value, str):
            try:
                return as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
            except ValueError:
                raise _fail(name, value, "an ISO 8601 datetime") from None
        raise _fail(name, value, "a datetime")

    if field_type is FieldType.DATE:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                raise _fail(name, value, "an ISO 8601 date") from None
        raise _fail(name, value, "a date")

    if field_type is FieldType.JSON:
        try:
            # normalises tuples to lists so the value compares equal after reload
            return json.loads(json.dumps(value))
        except (TypeError, ValueError):
            raise _fail(name, value, "JSON-serialisable data") from None

    if field_type is FieldType.ENUM:
        value = plain(value)
        if value not in spec.choices:
            raise ValidationError(
                f"Field '{name}' must be one of {', '.join(spec.choices)}",
                details={"field": name, "choices": list(spec.choices), "value": repr(value)},
            )
        return value

    raise TypeError(f"Unhandled field type {field_type!r}")
