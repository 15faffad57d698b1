from alumni_records.models.base import boolean, json_field, string, timestamp, user_ref
from alumni_records.services.analytics import has_engaged
from alumni_records.store import EntitySchema, belongs_to, has_many
from alumni_records.store.scopes import equals, flag, not_null, recent

ONBOARDING_STATES = EntitySchema(
    name="onboarding_states",
    fields={
        "user_id": user_ref(),
        "current_step": string(100),
        "completed_steps": json_field(default=list),
        "dismissed_prompts": json_field(default=list),
        "interactions": json_field(default=list),
        "last_interaction_at": timestamp(),
        "is_completed": boolean(),
        "completed_at": timestamp(),
    },
    relations=(
        belongs_to("user", "users", "user_id"),
        has_many("events", "onboarding_events", "user_id", local_key="user_id", order_by=("created_at", "id")),
    ),
    scopes={
        "completed": flag("is_completed"),
        "incomplete": flag("is_completed", False),
        "engaged": not_null("last_interaction_at"),
    },
    accessors={
        "has_engaged": lambda state: has_engaged(state.last_interaction_at, state.interactions),
    },
    unique_together=(("user_id",),),
)

ONBOARDING_EVENTS = EntitySchema(
    name="onboarding_events",
    fields={
        "user_id": user_ref(),
        "event_type": string(100, nullable=False),
        "step": string(100),
        "data": json_field(default=dict),
    },
    relations=(belongs_to("user", "users", "user_id"),),
    scopes={
        "type": equals("event_type"),
        "step": equals("step"),
        "recent": recent(days=7),
    },
)

SCHEMAS = (ONBOARDING_STATES, ONBOARDING_EVENTS)
