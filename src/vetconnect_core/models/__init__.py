"""
Database models for the vetconnect-core package.

This module contains the SQLAlchemy tables backing the persistence adapter
and the enumerations shared with the Pydantic schemas.
"""

# Base model will be imported by all other models
from .base import Base, BaseModel
from .onboarding import (
    VERIFICATION_STEPS,
    OnboardingRecord,
    OnboardingStep,
    StepStatus,
)
from .veterinarian import (
    CaseComplexity,
    ClinicType,
    ExperienceLevel,
    NotificationMethod,
    StudentLevel,
    VerificationStatus,
    VeterinarianRecord,
    VeterinarianStatus,
    Weekday,
)
from .workflow import (
    AlertSeverity,
    AlertType,
    CaseAssignmentRecord,
    CaseStatus,
    ConsultationType,
    NotificationType,
    Priority,
    ScheduleEntryStatus,
    TaskStatus,
    TaskType,
    UrgencyLevel,
    WorkflowRecord,
)

__all__ = [
    "Base",
    "BaseModel",
    "VeterinarianRecord",
    "VeterinarianStatus",
    "ExperienceLevel",
    "StudentLevel",
    "Weekday",
    "VerificationStatus",
    "ClinicType",
    "CaseComplexity",
    "NotificationMethod",
    "OnboardingRecord",
    "OnboardingStep",
    "StepStatus",
    "VERIFICATION_STEPS",
    "WorkflowRecord",
    "CaseAssignmentRecord",
    "CaseStatus",
    "UrgencyLevel",
    "ConsultationType",
    "NotificationType",
    "Priority",
    "TaskType",
    "TaskStatus",
    "AlertType",
    "AlertSeverity",
    "ScheduleEntryStatus",
]
