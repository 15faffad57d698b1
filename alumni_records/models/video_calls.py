from alumni_records.models.base import (
    TENANT_KEY,
    choice,
    counter,
    json_field,
    reference,
    string,
    tenant_field,
    timestamp,
    user_ref,
)
from alumni_records.schemas.enums import VideoCallRole, VideoCallStatus
from alumni_records.services.analytics import duration_minutes
from alumni_records.store import EntitySchema, belongs_to, belongs_to_many, counter_cache
from alumni_records.store.scopes import after_now, equals, fixed

VIDEO_CALLS = EntitySchema(
    name="video_calls",
    fields={
        "institution_id": tenant_field(),
        "host_id": user_ref(),
        "title": string(nullable=False),
        "status": choice(VideoCallStatus, default=VideoCallStatus.SCHEDULED),
        "provider": string(50),
        "room_id": string(100),
        "scheduled_at": timestamp(),
        "started_at": timestamp(),
        "ended_at": timestamp(),
        "recording_url": string(500),
        "settings": json_field(default=dict),
        "participant_count": counter(),
    },
    fillable=(
        "institution_id", "host_id", "title", "status", "provider", "room_id",
        "scheduled_at", "started_at", "ended_at", "recording_url", "settings",
    ),
    relations=(
        belongs_to("host", "users", "host_id"),
        belongs_to_many(
            "participants", "users", "video_call_participants",
            "video_call_id", "user_id", pivot_fields=("role", "joined_at", "left_at"),
        ),
    ),
    scopes={
        "upcoming": after_now("scheduled_at"),
        "active": fixed("status", VideoCallStatus.ACTIVE),
        "status": equals("status"),
    },
    accessors={
        "duration": lambda call: duration_minutes(call.started_at, call.ended_at),
    },
    tenant_key=TENANT_KEY,
)

VIDEO_CALL_PARTICIPANTS = EntitySchema(
    name="video_call_participants",
    fields={
        "video_call_id": reference("video_calls"),
        "user_id": user_ref(),
        "role": choice(VideoCallRole, default=VideoCallRole.PARTICIPANT),
        "joined_at": timestamp(),
        "left_at": timestamp(),
    },
    hooks=counter_cache("video_calls", "video_call_id", "participant_count"),
    unique_together=(("video_call_id", "user_id"),),
)

SCHEMAS = (VIDEO_CALLS, VIDEO_CALL_PARTICIPANTS)
