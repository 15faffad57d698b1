from alumni_records.models.base import (
    TENANT_KEY,
    boolean,
    choice,
    counter,
    reference,
    string,
    tenant_field,
    text,
    timestamp,
    user_ref,
)
from alumni_records.schemas.enums import ForumVisibility
from alumni_records.store import EntitySchema, belongs_to, belongs_to_many, counter_cache, has_many
from alumni_records.store.scopes import equals, flag, is_null, recent, search

FORUMS = EntitySchema(
    name="forums",
    fields={
        "institution_id": tenant_field(),
        "name": string(nullable=False),
        "slug": string(100, nullable=False),
        "description": text(),
        "visibility": choice(ForumVisibility, default=ForumVisibility.PUBLIC),
        "is_active": boolean(default=True),
        "topic_count": counter(),
    },
    fillable=("institution_id", "name", "slug", "description", "visibility", "is_active"),
    relations=(
        belongs_to("institution", "institutions", "institution_id"),
        has_many("topics", "forum_topics", "forum_id", order_by=("-is_pinned", "-last_post_at")),
    ),
    scopes={
        "active": flag("is_active"),
        "visibility": equals("visibility"),
    },
    tenant_key=TENANT_KEY,
    unique_together=(("institution_id", "slug"),),
)

FORUM_TOPICS = EntitySchema(
    name="forum_topics",
    fields={
        "forum_id": reference("forums"),
        "user_id": user_ref(),
        "title": string(nullable=False),
        "body": text(),
        "is_pinned": boolean(),
        "is_locked": boolean(),
        "view_count": counter(),
        "reply_count": counter(),
        "last_post_at": timestamp(),
    },
    fillable=("forum_id", "user_id", "title", "body", "is_pinned", "is_locked", "last_post_at"),
    relations=(
        belongs_to("forum", "forums", "forum_id"),
        belongs_to("author", "users", "user_id"),
        has_many("posts", "forum_posts", "topic_id"),
        belongs_to_many("tags", "forum_tags", "forum_topic_tags", "topic_id", "tag_id", pivot_fields=("tagged_by",)),
    ),
    scopes={
        "pinned": flag("is_pinned"),
        "unlocked": flag("is_locked", False),
        "recent": recent(),
        "search": search("title", "body"),
    },
    hooks=counter_cache("forums", "forum_id", "topic_count"),
    soft_deletes=True,
)

FORUM_POSTS = EntitySchema(
    name="forum_posts",
    fields={
        "topic_id": reference("forum_topics"),
        "user_id": user_ref(),
        "parent_id": reference("forum_posts", on_delete="SET NULL"),
        "body": text(nullable=False),
        "is_solution": boolean(),
        "like_count": counter(),
    },
    fillable=("topic_id", "user_id", "parent_id", "body", "is_solution"),
    relations=(
        belongs_to("topic", "forum_topics", "topic_id"),
        belongs_to("author", "users", "user_id"),
        belongs_to("parent", "forum_posts", "parent_id"),
        has_many("replies", "forum_posts", "parent_id"),
        has_many("likes", "forum_post_likes", "post_id"),
    ),
    scopes={
        "top_level": is_null("parent_id"),
        "solutions": flag("is_solution"),
        "recent": recent(),
    },
    hooks=counter_cache("forum_topics", "topic_id", "reply_count"),
    soft_deletes=True,
)

FORUM_POST_LIKES = EntitySchema(
    name="forum_post_likes",
    fields={
        "post_id": reference("forum_posts"),
        "user_id": user_ref(),
    },
    relations=(
        belongs_to("post", "forum_posts", "post_id"),
        belongs_to("user", "users", "user_id"),
    ),
    hooks=counter_cache("forum_posts", "post_id", "like_count"),
    unique_together=(("post_id", "user_id"),),
)

FORUM_TAGS = EntitySchema(
    name="forum_tags",
    fields={
        "institution_id": tenant_field(),
        "name": string(100, nullable=False),
        "slug": string(100, nullable=False),
        "color": string(20),
        "usage_count": counter(),
    },
    fillable=("institution_id", "name", "slug", "color"),
    relations=(
        belongs_to_many("topics", "forum_topics", "forum_topic_tags", "tag_id", "topic_id", pivot_fields=("tagged_by",)),
    ),
    scopes={"search": search("name", "slug")},
    tenant_key=TENANT_KEY,
    unique_together=(("institution_id", "slug"),),
)

FORUM_TOPIC_TAGS = EntitySchema(
    name="forum_topic_tags",
    fields={
        "topic_id": reference("forum_topics"),
        "tag_id": reference("forum_tags"),
        "tagged_by": user_ref(on_delete="SET NULL"),
    },
    hooks=counter_cache("forum_tags", "tag_id", "usage_count"),
    unique_together=(("topic_id", "tag_id"),),
)

SCHEMAS = (FORUMS, FORUM_TOPICS, FORUM_POSTS, FORUM_POST_LIKES, FORUM_TAGS, FORUM_TOPIC_TAGS)
