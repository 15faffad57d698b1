from alumni_records.models.base import (
    TENANT_KEY,
    choice,
    counter,
    decimal,
    integer,
    json_field,
    reference,
    string,
    tenant_field,
    text,
    timestamp,
    user_ref,
)
from alumni_records.schemas.enums import ABTestStatus
from alumni_records.services.analytics import duration_minutes, percentage
from alumni_records.store import EntitySchema, belongs_to, counter_cache, has_many
from alumni_records.store.scopes import equals, fixed, recent


def _conversion_rate(test):
    return percentage(test.conversion_count, test.participant_count)


def _running_minutes(test):
    return duration_minutes(test.started_at, test.ended_at)


AB_TESTS = EntitySchema(
    name="ab_tests",
    fields={
        "institution_id": tenant_field(),
        "created_by": user_ref(on_delete="SET NULL"),
        "name": string(nullable=False),
        "description": text(),
        "status": choice(ABTestStatus, default=ABTestStatus.DRAFT),
        "variants": json_field(default=list, nullable=False),
        "goal_metric": string(100),
        "traffic_allocation": integer(nullable=False, default=100),
        "started_at": timestamp(),
        "ended_at": timestamp(),
        "participant_count": counter(),
        "conversion_count": counter(),
    },
    fillable=(
        "institution_id", "created_by", "name", "description", "status",
        "variants", "goal_metric", "traffic_allocation", "started_at", "ended_at",
    ),
    relations=(
        belongs_to("institution", "institutions", "institution_id"),
        belongs_to("creator", "users", "created_by"),
        has_many("assignments", "ab_test_assignments", "ab_test_id"),
        has_many("conversions", "ab_test_conversions", "ab_test_id", order_by="converted_at"),
    ),
    scopes={
        "active": fixed("status", ABTestStatus.ACTIVE),
        "status": equals("status"),
        "recent": recent(),
    },
    accessors={
        "conversion_rate": _conversion_rate,
        "running_minutes": _running_minutes,
    },
    tenant_key=TENANT_KEY,
)

AB_TEST_ASSIGNMENTS = EntitySchema(
    name="ab_test_assignments",
    fields={
        "ab_test_id": reference("ab_tests"),
        "user_id": user_ref(),
        "variant": string(100, nullable=False),
        "assigned_at": timestamp(),
    },
    relations=(
        belongs_to("test", "ab_tests", "ab_test_id"),
        belongs_to("user", "users", "user_id"),
    ),
    scopes={"variant": equals("variant")},
    hooks=counter_cache("ab_tests", "ab_test_id", "participant_count"),
    unique_together=(("ab_test_id", "user_id"),),
)

AB_TEST_CONVERSIONS = EntitySchema(
    name="ab_test_conversions",
    fields={
        "ab_test_id": reference("ab_tests"),
        "user_id": user_ref(on_delete="SET NULL"),
        "variant": string(100, nullable=False),
        "goal": string(100),
        "value": decimal(),
        "converted_at": timestamp(),
    },
    relations=(
        belongs_to("test", "ab_tests", "ab_test_id"),
        belongs_to("user", "users", "user_id"),
    ),
    scopes={"variant": equals("variant"), "goal": equals("goal")},
    hooks=counter_cache("ab_tests", "ab_test_id", "conversion_count"),
)

SCHEMAS = (AB_TESTS, AB_TEST_ASSIGNMENTS, AB_TEST_CONVERSIONS)
