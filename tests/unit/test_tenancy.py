"""
Tenant binding: writes are stamped with the bound institution and reads
only see that institution's rows.
"""

import pytest

from alumni_records import create_store
from alumni_records.core.exceptions import NotFoundError, ValidationError


@pytest.fixture
async def campuses(store):
    north = await store.create("institutions", name="Northgate Institute", slug="northgate")
    south = await store.create("institutions", name="Southbank College", slug="southbank")
    return north, south


class TestStamping:

    async def test_create_stamps_the_bound_tenant(self, store, campuses):
        north, _ = campuses
        forum = await store.for_tenant(north.id).create("forums", name="Class of 2010", slug="class-2010")
        assert forum.institution_id == north.id

    async def test_matching_tenant_is_accepted(self, store, campuses):
        north, _ = campuses
        forum = await store.for_tenant(north.id).create(
            "forums", institution_id=north.id, name="Mentoring", slug="mentoring",
        )
        assert forum.institution_id == north.id

    async def test_other_tenant_is_rejected(self, store, campuses):
        north, south = campuses
        with pytest.raises(ValidationError) as exc:
            await store.for_tenant(north.id).create(
                "forums", institution_id=south.id, name="Mentoring", slug="mentoring",
            )
        assert exc.value.details["tenant_id"] == north.id
        assert await store.query("forums").count() == 0

    async def test_update_cannot_move_a_record_between_tenants(self, store, campuses):
        north, south = campuses
        north_store = store.for_tenant(north.id)
        forum = await north_store.create("forums", name="Mentoring", slug="mentoring")
        with pytest.raises(ValidationError):
            await north_store.update("forums", forum.id, institution_id=south.id)


class TestIsolation:

    @pytest.fixture
    async def forums(self, store, campuses):
        north, south = campuses
        north_forum = await store.for_tenant(north.id).create("forums", name="North Lounge", slug="lounge")
        south_forum = await store.for_tenant(south.id).create("forums", name="South Lounge", slug="lounge")
        return north_forum, south_forum

    async def test_queries_are_filtered(self, store, campuses, forums):
        north, south = campuses
        assert [f.name for f in await store.for_tenant(north.id).query("forums").all()] == ["North Lounge"]
        assert [f.name for f in await store.for_tenant(south.id).query("forums").all()] == ["South Lounge"]
        assert await store.query("forums").count() == 2

    async def test_find_across_tenants_returns_none(self, store, campuses, forums):
        north, _ = campuses
        _, south_forum = forums
        assert await store.for_tenant(north.id).find("forums", south_forum.id) is None

    async def test_writes_across_tenants_are_not_found(self, store, campuses, forums):
        north, _ = campuses
        _, south_forum = forums
        north_store = store.for_tenant(north.id)
        with pytest.raises(NotFoundError):
            await north_store.update("forums", south_forum.id, name="Taken over")
        with pytest.raises(NotFoundError):
            await north_store.delete("forums", south_forum.id)
        assert (await store.find("forums", south_forum.id)).name == "South Lounge"

    async def test_same_slug_allowed_per_tenant(self, forums):
        north_forum, south_forum = forums
        assert north_forum.slug == south_forum.slug

    async def test_entities_without_tenant_key_are_shared(self, store, campuses, user):
        north, south = campuses
        assert await store.for_tenant(south.id).find("users", user.id) is not None

    async def test_hooks_run_inside_the_tenant(self, store, campuses, user):
        north, _ = campuses
        north_store = store.for_tenant(north.id)
        forum = await north_store.create("forums", name="North Lounge", slug="lounge")
        await north_store.create("forum_topics", forum_id=forum.id, user_id=user.id, title="Hello")
        assert (await north_store.find("forums", forum.id)).topic_count == 1


class TestFactory:

    async def test_create_store_binds_the_given_tenant(self, engine):
        bound = create_store(engine, tenant_id=7)
        assert bound.tenant_id == 7
        assert bound.engine is engine

    async def test_create_store_uses_default_tenant(self, engine, monkeypatch):
        from alumni_records.core import config

        monkeypatch.setattr(config.settings, "DEFAULT_TENANT_ID", 3)
        assert create_store(engine).tenant_id == 3
