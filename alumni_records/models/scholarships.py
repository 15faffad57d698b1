from datetime import datetime, timezone

from sqlalchemy import or_

from alumni_records.models.base import (
    TENANT_KEY,
    boolean,
    choice,
    counter,
    decimal,
    integer,
    json_field,
    reference,
    string,
    tenant_field,
    text,
    timestamp,
    user_ref,
)
from alumni_records.schemas.enums import ApplicationStatus, ReviewRecommendation, ScholarshipStatus
from alumni_records.services.analytics import is_expired
from alumni_records.store import EntitySchema, belongs_to, counter_cache, has_many
from alumni_records.store.scopes import equals, fixed, flag, not_null, search


def _open(query):
    """Active scholarships still taking applications."""
    deadline = query.column("deadline")
    return query.scope("active").where(or_(deadline.is_(None), deadline > datetime.now(timezone.utc)))


SCHOLARSHIPS = EntitySchema(
    name="scholarships",
    fields={
        "institution_id": tenant_field(),
        "created_by": user_ref(on_delete="SET NULL"),
        "title": string(nullable=False),
        "description": text(),
        "category": string(100),
        "amount": decimal(),
        "currency": string(3, nullable=False, default="USD"),
        "deadline": timestamp(),
        "status": choice(ScholarshipStatus, default=ScholarshipStatus.DRAFT),
        "max_awards": integer(),
        "is_featured": boolean(),
        "eligibility": json_field(default=dict),
        "application_count": counter(),
    },
    fillable=(
        "institution_id", "created_by", "title", "description", "category", "amount",
        "currency", "deadline", "status", "max_awards", "is_featured", "eligibility",
    ),
    relations=(
        belongs_to("institution", "institutions", "institution_id"),
        belongs_to("creator", "users", "created_by"),
        has_many("applications", "scholarship_applications", "scholarship_id", order_by="submitted_at"),
    ),
    scopes={
        "active": fixed("status", ScholarshipStatus.ACTIVE),
        "by_category": equals("category"),
        "featured": flag("is_featured"),
        "open": _open,
        "search": search("title", "description"),
    },
    accessors={
        "is_expired": lambda scholarship: is_expired(scholarship.deadline),
    },
    tenant_key=TENANT_KEY,
)

SCHOLARSHIP_APPLICATIONS = EntitySchema(
    name="scholarship_applications",
    fields={
        "scholarship_id": reference("scholarships"),
        "user_id": user_ref(),
        "status": choice(ApplicationStatus, default=ApplicationStatus.DRAFT),
        "essay": text(),
        "documents": json_field(default=list),
        "gpa": decimal(4, 2),
        "submitted_at": timestamp(),
        "reviewed_at": timestamp(),
        "review_count": counter(),
    },
    fillable=("scholarship_id", "user_id", "status", "essay", "documents", "gpa", "submitted_at", "reviewed_at"),
    relations=(
        belongs_to("scholarship", "scholarships", "scholarship_id"),
        belongs_to("applicant", "users", "user_id"),
        has_many("reviews", "scholarship_reviews", "application_id"),
    ),
    scopes={
        "status": equals("status"),
        "submitted": not_null("submitted_at"),
    },
    hooks=counter_cache("scholarships", "scholarship_id", "application_count"),
    unique_together=(("scholarship_id", "user_id"),),
)

SCHOLARSHIP_REVIEWS = EntitySchema(
    name="scholarship_reviews",
    fields={
        "application_id": reference("scholarship_applications"),
        "reviewer_id": user_ref(on_delete="SET NULL"),
        "score": integer(),
        "recommendation": choice(ReviewRecommendation, nullable=True),
        "comments": text(),
    },
    relations=(
        belongs_to("application", "scholarship_applications", "application_id"),
        belongs_to("reviewer", "users", "reviewer_id"),
    ),
    scopes={"recommendation": equals("recommendation")},
    hooks=counter_cache("scholarship_applications", "application_id", "review_count"),
)

SCHEMAS = (SCHOLARSHIPS, SCHOLARSHIP_APPLICATIONS, SCHOLARSHIP_REVIEWS)
