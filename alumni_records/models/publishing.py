from alumni_records.models.base import (
    TENANT_KEY,
    boolean,
    choice,
    counter,
    integer,
    json_field,
    reference,
    string,
    tenant_field,
    text,
    timestamp,
    user_ref,
)
from alumni_records.schemas.enums import VersionStatus
from alumni_records.services.analytics import can_rollback
from alumni_records.store import EntitySchema, belongs_to, counter_cache, has_many, has_one
from alumni_records.store.scopes import equals, fixed, flag, search

TEMPLATES = EntitySchema(
    name="templates",
    fields={
        "institution_id": tenant_field(),
        "name": string(nullable=False),
        "category": string(100),
        "structure": json_field(default=dict),
        "is_active": boolean(default=True),
        "usage_count": counter(),
        "version_count": counter(),
    },
    fillable=("institution_id", "name", "category", "structure", "is_active"),
    relations=(
        has_many("versions", "template_versions", "template_id", order_by="-version_number"),
        has_one("current_version", "template_versions", "template_id", order_by="-version_number"),
        has_many("landing_pages", "landing_pages", "template_id"),
    ),
    scopes={
        "active": flag("is_active"),
        "category": equals("category"),
        "search": search("name"),
    },
    tenant_key=TENANT_KEY,
    soft_deletes=True,
)

TEMPLATE_VERSIONS = EntitySchema(
    name="template_versions",
    fields={
        "template_id": reference("templates"),
        "version_number": integer(nullable=False),
        "content": json_field(default=dict),
        "status": choice(VersionStatus, default=VersionStatus.DRAFT),
        "is_current": boolean(),
        "published_at": timestamp(),
        "published_by": user_ref(on_delete="SET NULL"),
        "change_notes": text(),
    },
    relations=(
        belongs_to("template", "templates", "template_id"),
        belongs_to("publisher", "users", "published_by"),
    ),
    scopes={
        "published": fixed("status", VersionStatus.PUBLISHED),
        "current": flag("is_current"),
    },
    accessors={
        "can_rollback": lambda version: can_rollback(version.is_current, version.published_at),
    },
    hooks=counter_cache("templates", "template_id", "version_count"),
    unique_together=(("template_id", "version_number"),),
)

LANDING_PAGES = EntitySchema(
    name="landing_pages",
    fields={
        "institution_id": tenant_field(),
        "template_id": reference("templates", on_delete="SET NULL"),
        "title": string(nullable=False),
        "slug": string(150, nullable=False),
        "content": json_field(default=dict),
        "is_published": boolean(),
        "published_at": timestamp(),
    },
    relations=(belongs_to("template", "templates", "template_id"),),
    scopes={
        "published": flag("is_published"),
        "search": search("title", "slug"),
    },
    hooks=counter_cache("templates", "template_id", "usage_count"),
    tenant_key=TENANT_KEY,
    unique_together=(("institution_id", "slug"),),
)

SCHEMAS = (TEMPLATES, TEMPLATE_VERSIONS, LANDING_PAGES)
