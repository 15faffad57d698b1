# alumni_records/schemas/__init__.py

from .common.error import ErrorResponse
from .enums import (
    ABTestStatus,
    ApplicationStatus,
    ConversationType,
    DeliveryStatus,
    EventStatus,
    EventType,
    ImportStatus,
    ImportType,
    InstitutionStatus,
    MessageType,
    ParticipantRole,
    PhotoVisibility,
    ProficiencyLevel,
    RegistrationStatus,
    ReviewRecommendation,
    SalaryType,
    ScholarshipStatus,
    UserRole,
    VersionStatus,
    VideoCallRole,
    VideoCallStatus,
    WebhookStatus,
)
