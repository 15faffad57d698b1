"""
Lifecycle hooks: counter caches on the platform entities, concurrent
creates, and rollback of the whole operation when a hook fails.
"""

import asyncio

import pytest

from alumni_records.core.database import init_db
from alumni_records.core.exceptions import HookError, NotFoundError, ValidationError
from alumni_records.store import (
    EntityRegistry,
    EntitySchema,
    FieldSpec,
    FieldType,
    RecordStore,
    after_create,
    after_delete,
    counter_cache,
)


async def _counter(store, entity, record_id, field):
    record = await store.find(entity, record_id, with_trashed=True)
    return record[field]


# ─────────────────────────────────────────────────────────────────────────────
# 1. Counter caches
# ─────────────────────────────────────────────────────────────────────────────

class TestCounterCache:

    async def test_create_and_delete_move_the_parent_counter(self, store, forum, user):
        topics = [
            await store.create("forum_topics", forum_id=forum.id, user_id=user.id, title=f"Topic {n}")
            for n in range(3)
        ]
        assert await _counter(store, "forums", forum.id, "topic_count") == 3

        await store.delete("forum_topics", topics[0].id)
        assert await _counter(store, "forums", forum.id, "topic_count") == 2

    async def test_restore_counts_again(self, store, forum, topic):
        await store.delete("forum_topics", topic.id)
        await store.restore("forum_topics", topic.id)
        assert await _counter(store, "forums", forum.id, "topic_count") == 1

    async def test_force_delete_of_trashed_record_does_not_double_count(self, store, forum, topic):
        await store.delete("forum_topics", topic.id)
        await store.force_delete("forum_topics", topic.id)
        assert await _counter(store, "forums", forum.id, "topic_count") == 0

    async def test_force_delete_of_live_record_decrements(self, store, forum, topic):
        await store.force_delete("forum_topics", topic.id)
        assert await _counter(store, "forums", forum.id, "topic_count") == 0

    async def test_likes_count_per_post(self, store, topic, user, institution):
        post = await store.create("forum_posts", topic_id=topic.id, user_id=user.id, body="Great thread")
        fans = [
            await store.create("users", institution_id=institution.id, name=f"Fan {n}", email=f"fan{n}@example.com")
            for n in range(4)
        ]
        likes = [await store.create("forum_post_likes", post_id=post.id, user_id=fan.id) for fan in fans]
        assert await _counter(store, "forum_posts", post.id, "like_count") == 4
        assert await _counter(store, "forum_topics", topic.id, "reply_count") == 1

        await store.delete("forum_post_likes", likes[0].id)
        assert await _counter(store, "forum_posts", post.id, "like_count") == 3

    async def test_join_rows_count_through_attach_and_detach(self, store, institution, user):
        call = await store.create("video_calls", institution_id=institution.id, host_id=user.id, title="Mentor hour")
        await store.attach(call, "participants", user.id, role="host")
        assert await _counter(store, "video_calls", call.id, "participant_count") == 1

        await store.detach(call, "participants", user.id)
        assert await _counter(store, "video_calls", call.id, "participant_count") == 0

    async def test_null_foreign_key_is_skipped(self, store, institution):
        page = await store.create("landing_pages", institution_id=institution.id, title="Give", slug="give")
        assert page.template_id is None


class TestConcurrentCreates:

    async def test_no_lost_updates(self, store, forum, user):
        await asyncio.gather(*(
            store.create("forum_topics", forum_id=forum.id, user_id=user.id, title=f"Concurrent {n}")
            for n in range(10)
        ))
        assert await _counter(store, "forums", forum.id, "topic_count") == 10
        assert await store.query("forum_topics").count() == 10

    async def test_concurrent_deletes_return_to_initial_value(self, store, forum, user):
        topics = await asyncio.gather(*(
            store.create("forum_topics", forum_id=forum.id, user_id=user.id, title=f"Concurrent {n}")
            for n in range(10)
        ))
        await asyncio.gather(*(store.delete("forum_topics", t.id) for t in topics))
        assert await _counter(store, "forums", forum.id, "topic_count") == 0


def _split(results):
    errors = [r for r in results if isinstance(r, Exception)]
    return [r for r in results if not isinstance(r, Exception)], errors


class TestSameRecordRaces:

    async def test_soft_delete_counts_once(self, store, forum, topic):
        results = await asyncio.gather(
            store.delete("forum_topics", topic.id),
            store.delete("forum_topics", topic.id),
            return_exceptions=True,
        )
        deleted, errors = _split(results)
        assert [r.id for r in deleted] == [topic.id]
        assert [type(e) for e in errors] == [NotFoundError]
        assert await _counter(store, "forums", forum.id, "topic_count") == 0

    async def test_hard_delete_counts_once(self, store, institution, topic, user):
        post = await store.create("forum_posts", topic_id=topic.id, user_id=user.id, body="Congrats!")
        first = await store.create("forum_post_likes", post_id=post.id, user_id=user.id)
        classmate = await store.create(
            "users", institution_id=institution.id, name="Kofi Mensah", email="kofi@northfield.edu",
        )
        await store.create("forum_post_likes", post_id=post.id, user_id=classmate.id)

        results = await asyncio.gather(*(store.delete("forum_post_likes", first.id) for _ in range(3)),
                                       return_exceptions=True)
        deleted, errors = _split(results)
        assert len(deleted) == 1
        assert len(errors) == 2 and all(isinstance(e, NotFoundError) for e in errors)
        assert await _counter(store, "forum_posts", post.id, "like_count") == 1
        assert await store.find("forum_post_likes", first.id) is None

    async def test_restore_counts_once(self, store, forum, topic):
        await store.delete("forum_topics", topic.id)
        results = await asyncio.gather(
            store.restore("forum_topics", topic.id),
            store.restore("forum_topics", topic.id),
            return_exceptions=True,
        )
        restored, errors = _split(results)
        assert len(restored) == 1
        assert [type(e) for e in errors] == [NotFoundError]
        assert await _counter(store, "forums", forum.id, "topic_count") == 1

    async def test_delete_and_force_delete_count_once(self, store, forum, topic):
        results = await asyncio.gather(
            store.delete("forum_topics", topic.id),
            store.force_delete("forum_topics", topic.id),
            return_exceptions=True,
        )
        assert any(not isinstance(r, Exception) for r in results)
        assert await _counter(store, "forums", forum.id, "topic_count") == 0

    async def test_concurrent_detach_counts_once(self, store, institution, user):
        conversation = await store.create("conversations", institution_id=institution.id, created_by=user.id)
        await store.attach(conversation, "participants", user.id)

        removed = await asyncio.gather(
            store.detach(conversation, "participants", user.id),
            store.detach(conversation, "participants", user.id),
        )
        assert sorted(removed) == [0, 1]
        assert await _counter(store, "conversations", conversation.id, "participant_count") == 0

    async def test_second_delete_of_trashed_row(self, store, forum, topic):
        await store.delete("forum_topics", topic.id)
        with pytest.raises(NotFoundError):
            await store.delete("forum_topics", topic.id)
        assert await _counter(store, "forums", forum.id, "topic_count") == 0


# ─────────────────────────────────────────────────────────────────────────────
# 2. Hook that writes through the store
# ─────────────────────────────────────────────────────────────────────────────

class TestAfterCreateWrites:

    async def test_message_touches_its_conversation(self, store, institution, user):
        conversation = await store.create("conversations", institution_id=institution.id, created_by=user.id)
        message = await store.create(
            "messages", conversation_id=conversation.id, user_id=user.id, body="Welcome back!",
        )

        conversation = await store.find("conversations", conversation.id)
        assert conversation.message_count == 1
        assert conversation.last_message_at == message.created_at


# ─────────────────────────────────────────────────────────────────────────────
# 3. Atomicity
# ─────────────────────────────────────────────────────────────────────────────

async def notify_mail_server(ctx, record):
    raise RuntimeError("mail server unavailable")


@pytest.fixture
async def ledger_store(engine):
    """Small registry whose child entity carries a failing hook."""
    registry = EntityRegistry()
    registry.define(EntitySchema(
        name="ledgers",
        fields={
            "name": FieldSpec(FieldType.STRING, nullable=False),
            "entry_count": FieldSpec(FieldType.INTEGER, nullable=False, default=0),
        },
        fillable=("name",),
    ))
    registry.define(EntitySchema(
        name="ledger_entries",
        fields={
            "ledger_id": FieldSpec(FieldType.INTEGER, nullable=False, foreign_key="ledgers.id"),
            "amount": FieldSpec(FieldType.DECIMAL, precision=12, scale=2),
        },
        hooks=(*counter_cache("ledgers", "ledger_id", "entry_count"), after_create(notify_mail_server)),
    ))
    registry.define(EntitySchema(
        name="ledger_notes",
        fields={
            # no foreign key, so a note can outlive its ledger
            "ledger_id": FieldSpec(FieldType.INTEGER),
            "body": FieldSpec(FieldType.TEXT),
        },
        hooks=counter_cache("ledgers", "ledger_id", "entry_count"),
        soft_deletes=True,
    ))
    await init_db(registry.metadata, engine)
    return RecordStore(registry, engine)


class TestHookFailure:

    async def test_failed_hook_rolls_back_create_and_counter(self, ledger_store):
        ledger = await ledger_store.create("ledgers", name="Annual Fund")

        with pytest.raises(HookError) as exc:
            await ledger_store.create("ledger_entries", ledger_id=ledger.id, amount="125.00")

        assert isinstance(exc.value.__cause__, RuntimeError)
        assert exc.value.details["hook"] == "notify_mail_server"
        assert exc.value.details["event"] == "created"
        assert await ledger_store.query("ledger_entries").count() == 0
        assert await _counter(ledger_store, "ledgers", ledger.id, "entry_count") == 0

    async def test_missing_parent_fails_the_counter_hook(self, ledger_store):
        with pytest.raises(HookError) as exc:
            await ledger_store.create("ledger_notes", ledger_id=999, body="Stray note")

        assert exc.value.details["parent_id"] == 999
        assert await ledger_store.query("ledger_notes").count() == 0

    async def test_failed_delete_hook_keeps_the_record(self, engine):
        async def refuse(ctx, record):
            raise RuntimeError("audit log offline")

        registry = EntityRegistry()
        registry.define(EntitySchema(
            name="badges",
            fields={"label": FieldSpec(FieldType.STRING)},
            hooks=(after_delete(refuse, name="write audit entry"),),
            soft_deletes=True,
        ))
        await init_db(registry.metadata, engine)
        badges = RecordStore(registry, engine)

        badge = await badges.create("badges", label="Mentor")
        with pytest.raises(HookError) as exc:
            await badges.delete("badges", badge.id)

        assert exc.value.details["hook"] == "write audit entry"
        found = await badges.find("badges", badge.id)
        assert found is not None
        assert not found.trashed

    async def test_hook_error_payload(self, ledger_store):
        ledger = await ledger_store.create("ledgers", name="Annual Fund")
        with pytest.raises(HookError) as exc:
            await ledger_store.create("ledger_entries", ledger_id=ledger.id)

        payload = exc.value.to_dict()
        assert payload["success"] is False
        assert payload["error_code"] == "HOOK_ERROR"
        assert payload["error_type"] == "HookError"


# ─────────────────────────────────────────────────────────────────────────────
# 4. Direct increments
# ─────────────────────────────────────────────────────────────────────────────

class TestIncrement:

    async def test_increment_and_decrement(self, store, topic):
        assert (await store.increment("forum_topics", topic.id, "view_count")).view_count == 1
        assert (await store.increment("forum_topics", topic.id, "view_count", 5)).view_count == 6
        assert (await store.decrement("forum_topics", topic.id, "view_count", 2)).view_count == 4

    async def test_rejects_non_numeric_fields(self, store, topic):
        with pytest.raises(ValidationError):
            await store.increment("forum_topics", topic.id, "title")

    async def test_missing_record(self, store):
        with pytest.raises(NotFoundError):
            await store.increment("forum_topics", 404, "view_count")
