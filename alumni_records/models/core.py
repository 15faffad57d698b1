from alumni_records.models.base import boolean, choice, json_field, reference, string, timestamp
from alumni_records.schemas.enums import InstitutionStatus, UserRole
from alumni_records.store import EntitySchema, belongs_to, belongs_to_many, has_many
from alumni_records.store.scopes import equals, fixed, flag, search

INSTITUTIONS = EntitySchema(
    name="institutions",
    fields={
        "name": string(nullable=False),
        "slug": string(100, nullable=False, unique=True),
        "domain": string(),
        "status": choice(InstitutionStatus, default=InstitutionStatus.ACTIVE),
        "settings": json_field(default=dict),
    },
    relations=(
        has_many("users", "users", "institution_id"),
        has_many("events", "events", "institution_id", order_by="starts_at"),
        has_many("scholarships", "scholarships", "institution_id"),
    ),
    scopes={
        "active": fixed("status", InstitutionStatus.ACTIVE),
        "search": search("name", "slug"),
    },
)

# Users may exist outside any institution (platform staff), so they are not tenant-scoped
USERS = EntitySchema(
    name="users",
    fields={
        "institution_id": reference("institutions", on_delete="SET NULL"),
        "name": string(nullable=False),
        "email": string(nullable=False, unique=True),
        "role": choice(UserRole, default=UserRole.GRADUATE),
        "is_active": boolean(default=True),
        "last_login_at": timestamp(),
    },
    relations=(
        belongs_to("institution", "institutions", "institution_id"),
        has_many("skills", "user_skills", "user_id"),
        has_many("career_timeline", "career_timelines", "user_id", order_by="-start_date"),
        has_many("salary_progressions", "salary_progressions", "user_id", order_by="effective_date"),
        has_many("event_registrations", "event_registrations", "user_id"),
        belongs_to_many(
            "conversations", "conversations", "conversation_participants",
            "user_id", "conversation_id", pivot_fields=("role", "last_read_at"),
        ),
    ),
    scopes={
        "active": flag("is_active"),
        "role": equals("role"),
        "search": search("name", "email"),
    },
    soft_deletes=True,
)

SCHEMAS = (INSTITUTIONS, USERS)
