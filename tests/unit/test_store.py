"""
Unit tests for alumni_records/store/store.py: create, find, query, update,
delete and the fillable policies, run against the platform entities.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from alumni_records.core.exceptions import ConstraintError, NotFoundError, ValidationError
from alumni_records.schemas.enums import EventType
from alumni_records.store import Record, RecordStore


# ─────────────────────────────────────────────────────────────────────────────
# 1. Create / Find round-trips
# ─────────────────────────────────────────────────────────────────────────────

class TestCreateAndFind:

    async def test_create_then_find_returns_equal_record(self, store, institution):
        starts = datetime(2025, 6, 1, 18, 30, tzinfo=timezone.utc)
        event = await store.create(
            "events",
            institution_id=institution.id,
            title="Class of 2015 Reunion",
            event_type=EventType.REUNION,
            starts_at=starts,
            capacity=120,
        )

        found = await store.find("events", event.id)
        assert isinstance(found, Record)
        assert found == event
        assert found.starts_at == starts
        assert found.starts_at.tzinfo is not None
        assert found.event_type == "reunion"
        assert found.capacity == 120

    async def test_defaults_and_timestamps_are_applied(self, store, institution):
        event = await store.create(
            "events", institution_id=institution.id, title="Mixer",
            starts_at="2025-09-12T17:00:00Z",
        )
        assert event.status == "draft"
        assert event.is_virtual is False
        assert event.attendee_count == 0
        assert event.created_at is not None
        assert event.created_at == event.updated_at

    async def test_structured_and_decimal_fields_round_trip(self, store, institution):
        eligibility = {"min_gpa": 3.5, "majors": ["Computer Science", "Mathematics"], "first_generation": True}
        scholarship = await store.create(
            "scholarships",
            institution_id=institution.id,
            title="STEM Futures",
            amount="2500.50",
            eligibility=eligibility,
        )

        found = await store.find("scholarships", scholarship.id)
        assert found.eligibility == eligibility
        assert found.amount == Decimal("2500.50")
        assert found.currency == "USD"

    async def test_dates_round_trip(self, store, user):
        position = await store.create(
            "career_timelines",
            user_id=user.id,
            company="Acme Analytics",
            title="Data Engineer",
            start_date="2021-02-01",
        )
        found = await store.find("career_timelines", position.id)
        assert found.start_date == date(2021, 2, 1)
        assert found.end_date is None

    async def test_find_missing_returns_none(self, store):
        assert await store.find("events", 404) is None

    async def test_find_or_fail_raises_not_found(self, store):
        with pytest.raises(NotFoundError) as exc:
            await store.find_or_fail("events", 404)
        assert exc.value.details == {"entity": "events", "id": 404}

    async def test_mapping_and_attribute_access_agree(self, store, user):
        assert user["email"] == user.email == "ada@northfield.edu"
        assert "email" in user
        assert user.get("missing") is None
        with pytest.raises(AttributeError):
            user.nickname


# ─────────────────────────────────────────────────────────────────────────────
# 2. Validation before storage
# ─────────────────────────────────────────────────────────────────────────────

class TestValidation:

    async def test_cast_failure_stores_nothing(self, store, institution):
        with pytest.raises(ValidationError):
            await store.create(
                "events", institution_id=institution.id, title="Gala",
                starts_at="2025-01-01T19:00:00Z", capacity="lots",
            )
        assert await store.query("events").count() == 0

    async def test_invalid_enum_choice(self, store, institution):
        with pytest.raises(ValidationError):
            await store.create(
                "events", institution_id=institution.id, title="Gala",
                starts_at="2025-01-01T19:00:00Z", event_type="rave",
            )

    async def test_missing_required_field_is_a_validation_error(self, store, institution):
        with pytest.raises(ValidationError):
            await store.create("events", institution_id=institution.id, title=None, starts_at="2025-01-01")

    async def test_unique_violation_becomes_constraint_error(self, store, user):
        with pytest.raises(ConstraintError) as exc:
            await store.create("users", name="Ada Again", email="ada@northfield.edu")
        assert exc.value.details["entity"] == "users"

    async def test_dangling_foreign_key_becomes_constraint_error(self, store, user):
        with pytest.raises(ConstraintError):
            await store.create("forum_topics", forum_id=999, user_id=user.id, title="Orphan")

    def test_unknown_policy_is_rejected(self, store):
        with pytest.raises(ValueError):
            RecordStore(store.registry, store.engine, fillable_policy="ignore")


# ─────────────────────────────────────────────────────────────────────────────
# 3. Fillable policies
# ─────────────────────────────────────────────────────────────────────────────

class TestFillablePolicy:

    async def test_discard_drops_guarded_and_unknown_fields(self, store, institution, caplog):
        caplog.set_level(logging.WARNING, logger="AlumniRecordsLogger")
        test = await store.create(
            "ab_tests",
            institution_id=institution.id,
            name="Homepage hero copy",
            participant_count=500,
            bogus="value",
        )
        assert test.participant_count == 0
        assert "bogus" not in test
        assert "Discarded non-fillable fields on ab_tests: bogus, participant_count" in caplog.text

    async def test_reject_raises_and_stores_nothing(self, strict_store, institution):
        with pytest.raises(ValidationError) as exc:
            await strict_store.create(
                "ab_tests", institution_id=institution.id, name="Hero", participant_count=500,
            )
        assert exc.value.details["fields"] == ["participant_count"]
        assert await strict_store.query("ab_tests").count() == 0

    async def test_update_never_stores_guarded_fields(self, store, strict_store, forum):
        with pytest.raises(ValidationError):
            await strict_store.update("forums", forum.id, topic_count=42)

        updated = await store.update("forums", forum.id, topic_count=42, name="Careers")
        assert updated.topic_count == 0
        assert updated.name == "Careers"


# ─────────────────────────────────────────────────────────────────────────────
# 4. Update / Delete
# ─────────────────────────────────────────────────────────────────────────────

class TestUpdate:

    async def test_partial_update_changes_only_named_fields(self, store, forum):
        updated = await store.update("forums", forum.id, description="Jobs, interviews and offers")
        assert updated.description == "Jobs, interviews and offers"
        assert updated.name == forum.name
        assert updated.slug == forum.slug
        assert updated.created_at == forum.created_at
        assert updated.updated_at >= forum.updated_at

    async def test_accepts_a_mapping(self, store, forum):
        updated = await store.update("forums", forum.id, {"is_active": False})
        assert updated.is_active is False

    async def test_empty_update_returns_current_record(self, store, forum):
        assert await store.update("forums", forum.id) == forum

    async def test_missing_id_raises(self, store):
        with pytest.raises(NotFoundError):
            await store.update("forums", 404, name="Nowhere")


class TestDelete:

    async def test_hard_delete_removes_the_row(self, store, user, institution):
        event = await store.create(
            "events", institution_id=institution.id, title="Webinar", starts_at="2025-03-03T15:00:00Z",
        )
        feedback = await store.create("event_feedback", event_id=event.id, user_id=user.id, rating=5)

        deleted = await store.delete("event_feedback", feedback.id)
        assert deleted.id == feedback.id
        assert await store.find("event_feedback", feedback.id) is None
        assert await store.find("event_feedback", feedback.id, with_trashed=True) is None

    async def test_missing_id_raises(self, store):
        with pytest.raises(NotFoundError):
            await store.delete("event_feedback", 404)


# ─────────────────────────────────────────────────────────────────────────────
# 5. Queries
# ─────────────────────────────────────────────────────────────────────────────

class TestQuery:

    @pytest.fixture
    async def events(self, store, institution):
        created = []
        for title, kind, capacity in [
            ("Alumni Mixer", EventType.SOCIAL, 80),
            ("Resume Clinic", EventType.WORKSHOP, 25),
            ("Homecoming", EventType.REUNION, 400),
            ("Fintech Panel", EventType.WEBINAR, None),
        ]:
            created.append(await store.create(
                "events", institution_id=institution.id, title=title,
                event_type=kind, capacity=capacity, starts_at="2025-10-01T18:00:00Z",
            ))
        return created

    async def test_default_order_is_insertion_order(self, store, events):
        titles = [event.title for event in await store.query("events").all()]
        assert titles == ["Alumni Mixer", "Resume Clinic", "Homecoming", "Fintech Panel"]

    async def test_order_limit_offset(self, store, events):
        page = await store.query("events").order_by("-title").offset(1).limit(2).all()
        assert [event.title for event in page] == ["Homecoming", "Fintech Panel"]

    async def test_where_expressions_and_equality(self, store, events):
        query = store.query("events")
        large = await query.where(query.c.capacity > 50).all()
        assert {event.title for event in large} == {"Alumni Mixer", "Homecoming"}

        workshop = await query.where_field(event_type=EventType.WORKSHOP).first()
        assert workshop.title == "Resume Clinic"

    async def test_none_matches_null(self, store, events):
        uncapped = await store.query("events").where_field(capacity=None).all()
        assert [event.title for event in uncapped] == ["Fintech Panel"]

    async def test_no_match_is_empty_not_an_error(self, store, events):
        query = store.query("events").where_field(title="Nope")
        assert await query.all() == []
        assert await query.first() is None
        assert await query.count() == 0
        assert await query.exists() is False

    async def test_count_ignores_limit(self, store, events):
        assert await store.query("events").limit(1).count() == 4

    async def test_async_iteration(self, store, events):
        titles = [event.title async for event in store.query("events").where_in("event_type", ["social", "reunion"])]
        assert titles == ["Alumni Mixer", "Homecoming"]

    async def test_queries_are_immutable(self, store, events):
        base = store.query("events")
        narrowed = base.where_field(event_type="social")
        assert await base.count() == 4
        assert await narrowed.count() == 1

    async def test_unknown_column_raises(self, store):
        with pytest.raises(ValidationError):
            store.query("events").where_field(venue="Main Hall")
