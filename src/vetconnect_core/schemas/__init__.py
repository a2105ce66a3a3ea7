"""
Pydantic schemas for validation and serialization.

These schemas are the domain documents of the package: the persistence
adapters store them as JSON and the services operate on them directly.
"""

from .aggregate import VeterinarianAggregate, parse_payload
from .matching import MatchCandidate, MatchResult, ScoreBreakdown
from .onboarding import (
    REQUIRED_DOCUMENTS,
    OnboardingProgress,
    ParkedVerification,
    StepProgress,
    StepResult,
)
from .veterinarian import (
    Availability,
    BlackoutPeriod,
    DailySchedule,
    EducationRecord,
    EmergencyAvailability,
    InsuranceInfo,
    PerformanceMetrics,
    PersonalInfo,
    Preferences,
    ProfessionalInfo,
    Specialization,
    TimeSlot,
    VeterinarianCreate,
    VeterinarianProfile,
    VeterinarianUpdate,
    VeterinaryLicense,
    default_weekly_schedule,
    generate_id,
)
from .workflow import (
    ActiveCase,
    CaseRequest,
    CaseRequirements,
    Notification,
    PendingCase,
    PerformanceAlert,
    ScheduleEntry,
    TaskCreate,
    WorkflowState,
    WorkflowTask,
)

__all__ = [
    # Aggregate
    "VeterinarianAggregate",
    "parse_payload",
    # Veterinarian schemas
    "VeterinarianProfile",
    "VeterinarianCreate",
    "VeterinarianUpdate",
    "PersonalInfo",
    "ProfessionalInfo",
    "VeterinaryLicense",
    "EducationRecord",
    "InsuranceInfo",
    "Specialization",
    "Availability",
    "DailySchedule",
    "TimeSlot",
    "BlackoutPeriod",
    "EmergencyAvailability",
    "Preferences",
    "PerformanceMetrics",
    "default_weekly_schedule",
    "generate_id",
    # Onboarding schemas
    "OnboardingProgress",
    "StepProgress",
    "StepResult",
    "ParkedVerification",
    "REQUIRED_DOCUMENTS",
    # Matching schemas
    "ScoreBreakdown",
    "MatchCandidate",
    "MatchResult",
    # Workflow schemas
    "CaseRequirements",
    "CaseRequest",
    "ActiveCase",
    "PendingCase",
    "ScheduleEntry",
    "Notification",
    "WorkflowTask",
    "TaskCreate",
    "PerformanceAlert",
    "WorkflowState",
]
