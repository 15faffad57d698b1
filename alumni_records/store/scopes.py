"""
Reusable scope builders.

A scope is a plain function ``(query, *args) -> query``. The builders here
produce the common ones so entity declarations can say
``{"active": flag("is_active")}`` instead of repeating the same lambdas.
"""
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_

from alumni_records.store.casts import cast_value, plain


def flag(field: str, value: bool = True):
    def scope(query):
        return query.where(query.column(field).is_(value))
    return scope


def equals(field: str):
    def scope(query, value):
        return query.where_field(**{field: value})
    return scope


def fixed(field: str, value):
    def scope(query):
        return query.where_field(**{field: value})
    return scope


def one_of(field: str, values):
    values = tuple(plain(v) for v in values)

    def scope(query):
        return query.where_in(field, values)
    return scope


def not_null(field: str):
    def scope(query):
        return query.where(query.column(field).is_not(None))
    return scope


def is_null(field: str):
    def scope(query):
        return query.where(query.column(field).is_(None))
    return scope


def _bound(query, field: str, value):
    spec = query.entity.fields.get(field)
    return cast_value(field, spec, value) if spec is not None else value


def date_range(field: str):
    """Inclusive bounds; either end may be omitted. Bounds go through the field's cast."""
    def scope(query, start=None, end=None):
        column = query.column(field)
        if start is not None:
            query = query.where(column >= _bound(query, field, start))
        if end is not None:
            query = query.where(column <= _bound(query, field, end))
        return query
    return scope


def after_now(field: str):
    def scope(query):
        return query.where(query.column(field) > datetime.now(timezone.utc))
    return scope


def before_now(field: str):
    def scope(query):
        return query.where(query.column(field) < datetime.now(timezone.utc))
    return scope


def recent(field: str = "created_at", days: int = 30):
    def scope(query, days: int = days):
        since = datetime.now(timezone.utc) - timedelta(days=days)
        return query.where(query.column(field) >= since).order_by(f"-{field}")
    return scope


LIKE_ESCAPE = "\\"


def like_literal(term: str) -> str:
    """Escape LIKE wildcards so ``term`` only matches itself."""
    for char in (LIKE_ESCAPE, "%", "_"):
        term = term.replace(char, LIKE_ESCAPE + char)
    return term


def search(*fields: str):
    """Case-insensitive substring match across ``fields``."""
    def scope(query, term: str):
        pattern = f"%{like_literal(term)}%"
        return query.where(or_(*(query.column(f).ilike(pattern, escape=LIKE_ESCAPE) for f in fields)))
    return scope
