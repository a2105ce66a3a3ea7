"""
Veterinarian model for the vetconnect-core package.

This module contains the enumerations describing a veterinarian profile and
the ``VeterinarianRecord`` table, the root row of a veterinarian aggregate.
The full profile document is stored as JSON; ``status`` is duplicated into
its own indexed column so active veterinarians can be listed cheaply.
"""

import enum
from datetime import date
from typing import Any, Dict, List

from sqlalchemy import Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from vetconnect_core.database.types import JSONType

from .base import BaseModel


def enum_values(enum_cls: type) -> List[str]:
    """Persist enums by value rather than by member name."""
    return [member.value for member in enum_cls]


class VeterinarianStatus(enum.Enum):
    """Enumeration of veterinarian profile statuses."""

    PENDING_VERIFICATION = "pending_verification"
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    UNDER_REVIEW = "under_review"
    DEACTIVATED = "deactivated"


class ExperienceLevel(enum.Enum):
    """Enumeration of experience levels within a specialization."""

    NOVICE = "novice"
    COMPETENT = "competent"
    PROFICIENT = "proficient"
    EXPERT = "expert"


class StudentLevel(enum.Enum):
    """Enumeration of student levels a consultation can be aimed at."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Weekday(enum.Enum):
    """Enumeration of days of the week, declared in ``date.weekday()`` order."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, value: date) -> "Weekday":
        """Return the weekday of a date or datetime."""
        return list(cls)[value.weekday()]


class VerificationStatus(enum.Enum):
    """Enumeration of credential verification statuses."""

    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"


class ClinicType(enum.Enum):
    """Enumeration of clinic types."""

    SMALL_ANIMAL = "small_animal"
    LARGE_ANIMAL = "large_animal"
    MIXED = "mixed"
    EQUINE = "equine"
    EXOTIC = "exotic"
    MOBILE = "mobile"


class CaseComplexity(enum.Enum):
    """Enumeration of case complexity levels."""

    ROUTINE = "routine"
    MODERATE = "moderate"
    COMPLEX = "complex"
    EMERGENCY = "emergency"


class NotificationMethod(enum.Enum):
    """Enumeration of notification delivery methods."""

    PUSH = "push"
    EMAIL = "email"
    SMS = "sms"
    IN_APP = "in_app"


class VeterinarianRecord(BaseModel):
    """
    Root row of a veterinarian aggregate.

    ``version`` is the optimistic concurrency counter for the whole aggregate
    (profile, workflow and onboarding rows); every committed write increments
    it exactly once.
    """

    __tablename__ = "veterinarians"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Veterinarian identifier",
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Contact email, duplicated from the profile for lookups",
    )

    status: Mapped[VeterinarianStatus] = mapped_column(
        Enum(
            VeterinarianStatus,
            name="veterinarianstatus",
            values_callable=enum_values,
        ),
        nullable=False,
        default=VeterinarianStatus.PENDING_VERIFICATION,
        index=True,
        comment="Current profile status",
    )

    profile: Mapped[Dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        comment="Full veterinarian profile document",
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Optimistic concurrency version of the aggregate",
    )

    @property
    def is_active(self) -> bool:
        """Check if the veterinarian can receive cases."""
        return self.status == VeterinarianStatus.ACTIVE
