from alumni_records.models.base import (
    TENANT_KEY,
    boolean,
    choice,
    counter,
    json_field,
    reference,
    string,
    tenant_field,
    text,
    timestamp,
    user_ref,
)
from alumni_records.schemas.enums import ConversationType, MessageType, ParticipantRole
from alumni_records.store import EntitySchema, after_create, belongs_to, belongs_to_many, counter_cache, has_many
from alumni_records.store.scopes import equals, fixed, flag, recent, search


async def touch_conversation(ctx, message):
    """Bump the conversation's last activity to the new message."""
    await ctx.store.update("conversations", message.conversation_id, last_message_at=message.created_at)


CONVERSATIONS = EntitySchema(
    name="conversations",
    fields={
        "institution_id": tenant_field(),
        "created_by": user_ref(on_delete="SET NULL"),
        "type": choice(ConversationType, default=ConversationType.DIRECT),
        "title": string(),
        "is_archived": boolean(),
        "last_message_at": timestamp(),
        "participant_count": counter(),
        "message_count": counter(),
    },
    fillable=("institution_id", "created_by", "type", "title", "is_archived", "last_message_at"),
    relations=(
        belongs_to("creator", "users", "created_by"),
        belongs_to_many(
            "participants", "users", "conversation_participants",
            "conversation_id", "user_id", pivot_fields=("role", "last_read_at"),
        ),
        has_many("messages", "messages", "conversation_id", order_by=("created_at", "id")),
    ),
    scopes={
        "direct": fixed("type", ConversationType.DIRECT),
        "group": fixed("type", ConversationType.GROUP),
        "active": flag("is_archived", False),
        "recent": recent("last_message_at"),
    },
    tenant_key=TENANT_KEY,
)

CONVERSATION_PARTICIPANTS = EntitySchema(
    name="conversation_participants",
    fields={
        "conversation_id": reference("conversations"),
        "user_id": user_ref(),
        "role": choice(ParticipantRole, default=ParticipantRole.MEMBER),
        "last_read_at": timestamp(),
    },
    hooks=counter_cache("conversations", "conversation_id", "participant_count"),
    unique_together=(("conversation_id", "user_id"),),
)

MESSAGES = EntitySchema(
    name="messages",
    fields={
        "conversation_id": reference("conversations"),
        "user_id": user_ref(on_delete="SET NULL"),
        "reply_to_id": reference("messages", on_delete="SET NULL"),
        "body": text(nullable=False),
        "message_type": choice(MessageType, default=MessageType.TEXT),
        "attachments": json_field(default=list),
        "edited_at": timestamp(),
    },
    relations=(
        belongs_to("conversation", "conversations", "conversation_id"),
        belongs_to("sender", "users", "user_id"),
        belongs_to("reply_to", "messages", "reply_to_id"),
    ),
    scopes={
        "type": equals("message_type"),
        "search": search("body"),
    },
    hooks=(
        *counter_cache("conversations", "conversation_id", "message_count"),
        after_create(touch_conversation, name="touch conversation"),
    ),
    soft_deletes=True,
)

SCHEMAS = (CONVERSATIONS, CONVERSATION_PARTICIPANTS, MESSAGES)
