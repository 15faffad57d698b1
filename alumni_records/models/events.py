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
from alumni_records.schemas.enums import EventStatus, EventType, PhotoVisibility, RegistrationStatus
from alumni_records.services.analytics import attendance_rate, duration_minutes, is_expired
from alumni_records.store import EntitySchema, belongs_to, counter_cache, has_many
from alumni_records.store.scopes import after_now, before_now, equals, fixed, flag, not_null, recent


def _positive(query):
    return query.where(query.column("rating") >= 4)


EVENTS = EntitySchema(
    name="events",
    fields={
        "institution_id": tenant_field(),
        "organizer_id": user_ref(on_delete="SET NULL"),
        "title": string(nullable=False),
        "description": text(),
        "event_type": choice(EventType, default=EventType.NETWORKING),
        "status": choice(EventStatus, default=EventStatus.DRAFT),
        "location": string(),
        "is_virtual": boolean(),
        "starts_at": timestamp(nullable=False),
        "ends_at": timestamp(),
        "registration_deadline": timestamp(),
        "capacity": integer(),
        "attendee_count": counter(),
        "attended_count": counter(),
    },
    fillable=(
        "institution_id", "organizer_id", "title", "description", "event_type", "status",
        "location", "is_virtual", "starts_at", "ends_at", "registration_deadline",
        "capacity", "attended_count",
    ),
    relations=(
        belongs_to("institution", "institutions", "institution_id"),
        belongs_to("organizer", "users", "organizer_id"),
        has_many("registrations", "event_registrations", "event_id"),
        has_many("feedback", "event_feedback", "event_id", order_by=("-created_at", "-id")),
        has_many("photos", "reunion_photos", "event_id"),
        has_many("memories", "reunion_memories", "event_id"),
    ),
    scopes={
        "upcoming": after_now("starts_at"),
        "past": before_now("starts_at"),
        "published": fixed("status", EventStatus.PUBLISHED),
        "type": equals("event_type"),
        "virtual": flag("is_virtual"),
    },
    accessors={
        "registration_closed": lambda event: is_expired(event.registration_deadline),
        "duration": lambda event: duration_minutes(event.starts_at, event.ends_at),
        "attendance_rate": lambda event: attendance_rate(event.attended_count, event.attendee_count),
    },
    tenant_key=TENANT_KEY,
)

EVENT_REGISTRATIONS = EntitySchema(
    name="event_registrations",
    fields={
        "event_id": reference("events"),
        "user_id": user_ref(),
        "status": choice(RegistrationStatus, default=RegistrationStatus.REGISTERED),
        "guests": integer(nullable=False, default=0),
        "checked_in_at": timestamp(),
    },
    relations=(
        belongs_to("event", "events", "event_id"),
        belongs_to("user", "users", "user_id"),
    ),
    scopes={
        "status": equals("status"),
        "checked_in": not_null("checked_in_at"),
    },
    hooks=counter_cache("events", "event_id", "attendee_count"),
    unique_together=(("event_id", "user_id"),),
)

EVENT_FEEDBACK = EntitySchema(
    name="event_feedback",
    fields={
        "event_id": reference("events"),
        "user_id": user_ref(on_delete="SET NULL"),
        "rating": integer(nullable=False),
        "comments": text(),
        "would_recommend": boolean(default=True),
    },
    relations=(
        belongs_to("event", "events", "event_id"),
        belongs_to("user", "users", "user_id"),
    ),
    scopes={"positive": _positive},
)

REUNION_PHOTOS = EntitySchema(
    name="reunion_photos",
    fields={
        "event_id": reference("events"),
        "user_id": user_ref(),
        "file_path": string(500, nullable=False),
        "caption": text(),
        "visibility": choice(PhotoVisibility, default=PhotoVisibility.ALUMNI_ONLY),
        "is_featured": boolean(),
        "like_count": counter(),
    },
    fillable=("event_id", "user_id", "file_path", "caption", "visibility", "is_featured"),
    relations=(
        belongs_to("event", "events", "event_id"),
        belongs_to("uploader", "users", "user_id"),
        has_many("likes", "reunion_photo_likes", "photo_id"),
    ),
    scopes={
        "featured": flag("is_featured"),
        "visibility": equals("visibility"),
        "recent": recent(),
    },
    soft_deletes=True,
)

REUNION_PHOTO_LIKES = EntitySchema(
    name="reunion_photo_likes",
    fields={
        "photo_id": reference("reunion_photos"),
        "user_id": user_ref(),
    },
    relations=(
        belongs_to("photo", "reunion_photos", "photo_id"),
        belongs_to("user", "users", "user_id"),
    ),
    hooks=counter_cache("reunion_photos", "photo_id", "like_count"),
    unique_together=(("photo_id", "user_id"),),
)

REUNION_MEMORIES = EntitySchema(
    name="reunion_memories",
    fields={
        "event_id": reference("events"),
        "user_id": user_ref(),
        "title": string(),
        "content": text(nullable=False),
        "media": json_field(default=list),
        "is_featured": boolean(),
    },
    relations=(
        belongs_to("event", "events", "event_id"),
        belongs_to("author", "users", "user_id"),
    ),
    scopes={"featured": flag("is_featured")},
    soft_deletes=True,
)

SCHEMAS = (EVENTS, EVENT_REGISTRATIONS, EVENT_FEEDBACK, REUNION_PHOTOS, REUNION_PHOTO_LIKES, REUNION_MEMORIES)
