# alumni_records/schemas/enums.py
from enum import Enum


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    INSTITUTION_ADMIN = "institution_admin"
    GRADUATE = "graduate"
    STUDENT = "student"
    EMPLOYER = "employer"


class InstitutionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    PENDING = "pending"


# A/B testing
class ABTestStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


# Forums
class ForumVisibility(str, Enum):
    PUBLIC = "public"
    ALUMNI_ONLY = "alumni_only"
    PRIVATE = "private"


# Events and reunions
class EventType(str, Enum):
    REUNION = "reunion"
    NETWORKING = "networking"
    WEBINAR = "webinar"
    WORKSHOP = "workshop"
    SOCIAL = "social"


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class RegistrationStatus(str, Enum):
    REGISTERED = "registered"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"
    ATTENDED = "attended"


class PhotoVisibility(str, Enum):
    PUBLIC = "public"
    ALUMNI_ONLY = "alumni_only"
    PRIVATE = "private"


# Scholarships
class ScholarshipStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    AWARDED = "awarded"


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewRecommendation(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    WAITLIST = "waitlist"


# Webhooks
class WebhookStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    DISABLED = "disabled"


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"


# Messaging
class ConversationType(str, Enum):
    DIRECT = "direct"
    GROUP = "group"


class ParticipantRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


# Career analytics
class SalaryType(str, Enum):
    HOURLY = "hourly"
    MONTHLY = "monthly"
    ANNUAL = "annual"


class ProficiencyLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


# Video calls
class VideoCallStatus(str, Enum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"


class VideoCallRole(str, Enum):
    HOST = "host"
    PARTICIPANT = "participant"


# Imports
class ImportType(str, Enum):
    GRADUATES = "graduates"
    EMPLOYERS = "employers"
    COURSES = "courses"
    JOBS = "jobs"


class ImportStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Publishing
class VersionStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
