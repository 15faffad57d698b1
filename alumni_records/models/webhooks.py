from alumni_records.models.base import (
    TENANT_KEY,
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
from alumni_records.schemas.enums import DeliveryStatus, WebhookStatus
from alumni_records.services.analytics import percentage
from alumni_records.store import EntitySchema, belongs_to, counter_cache, has_many
from alumni_records.store.scopes import equals, fixed, recent

WEBHOOKS = EntitySchema(
    name="webhooks",
    fields={
        "institution_id": tenant_field(),
        "created_by": user_ref(on_delete="SET NULL"),
        "name": string(nullable=False),
        "url": string(500, nullable=False),
        "events": json_field(default=list, nullable=False),
        "secret": string(),
        "status": choice(WebhookStatus, default=WebhookStatus.ACTIVE),
        "last_triggered_at": timestamp(),
        "failure_count": integer(nullable=False, default=0),
        "delivery_count": counter(),
    },
    # secret is set through a dedicated rotation path, never by mass assignment
    fillable=(
        "institution_id", "created_by", "name", "url", "events", "status",
        "last_triggered_at", "failure_count",
    ),
    relations=(
        belongs_to("institution", "institutions", "institution_id"),
        has_many("deliveries", "webhook_deliveries", "webhook_id", order_by=("-created_at", "-id")),
    ),
    scopes={
        "active": fixed("status", WebhookStatus.ACTIVE),
        "status": equals("status"),
    },
    accessors={
        "failure_rate": lambda webhook: percentage(webhook.failure_count, webhook.delivery_count),
    },
    tenant_key=TENANT_KEY,
)

WEBHOOK_DELIVERIES = EntitySchema(
    name="webhook_deliveries",
    fields={
        "webhook_id": reference("webhooks"),
        "event": string(100, nullable=False),
        "payload": json_field(default=dict),
        "status": choice(DeliveryStatus, default=DeliveryStatus.PENDING),
        "response_code": integer(),
        "response_body": text(),
        "attempts": integer(nullable=False, default=0),
        "delivered_at": timestamp(),
    },
    relations=(belongs_to("webhook", "webhooks", "webhook_id"),),
    scopes={
        "failed": fixed("status", DeliveryStatus.FAILED),
        "pending": fixed("status", DeliveryStatus.PENDING),
        "event": equals("event"),
        "recent": recent(days=7),
    },
    hooks=counter_cache("webhooks", "webhook_id", "delivery_count"),
)

SCHEMAS = (WEBHOOKS, WEBHOOK_DELIVERIES)
