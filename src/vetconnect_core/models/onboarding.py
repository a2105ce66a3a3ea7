"""
Onboarding model for the vetconnect-core package.

Defines the fixed onboarding step order, the per-step status enumeration and
the ``OnboardingRecord`` table holding one progress document per
veterinarian.
"""

import enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from vetconnect_core.database.types import JSONType

from .base import BaseModel
from .veterinarian import enum_values


class OnboardingStep(enum.Enum):
    """Enumeration of onboarding steps, declared in their fixed order."""

    PERSONAL_INFO = "personal_info"
    PROFESSIONAL_INFO = "professional_info"
    LICENSE_VERIFICATION = "license_verification"
    EDUCATION_VERIFICATION = "education_verification"
    INSURANCE_VERIFICATION = "insurance_verification"
    SPECIALIZATION_ASSESSMENT = "specialization_assessment"
    PLATFORM_TRAINING = "platform_training"
    EDUCATIONAL_TRAINING = "educational_training"
    TRIAL_CONSULTATIONS = "trial_consultations"
    FINAL_APPROVAL = "final_approval"

    @classmethod
    def ordered(cls) -> List["OnboardingStep"]:
        """Return the steps in onboarding order."""
        return list(cls)

    @property
    def position(self) -> int:
        """Zero-based position of the step in the fixed order."""
        return self.ordered().index(self)

    @property
    def next_step(self) -> Optional["OnboardingStep"]:
        """The step that follows this one, or None for the last step."""
        steps = self.ordered()
        index = steps.index(self)
        return steps[index + 1] if index < len(steps) - 1 else None


class StepStatus(enum.Enum):
    """Enumeration of onboarding step statuses."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    REQUIRES_REVIEW = "requires_review"


VERIFICATION_STEPS = frozenset(
    {
        OnboardingStep.LICENSE_VERIFICATION,
        OnboardingStep.EDUCATION_VERIFICATION,
        OnboardingStep.INSURANCE_VERIFICATION,
    }
)


class OnboardingRecord(BaseModel):
    """Onboarding progress row, one per veterinarian."""

    __tablename__ = "veterinarian_onboarding"

    veterinarian_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("veterinarians.id", ondelete="CASCADE"),
        primary_key=True,
        comment="Veterinarian being onboarded",
    )

    current_step: Mapped[OnboardingStep] = mapped_column(
        Enum(OnboardingStep, name="onboardingstep", values_callable=enum_values),
        nullable=False,
        comment="Step the veterinarian is currently on",
    )

    progress: Mapped[Dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        comment="Full onboarding progress document",
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the final step was completed",
    )

    archived_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
        comment="When the progress document was archived",
    )

    @property
    def is_archived(self) -> bool:
        """Check if onboarding has finished and been archived."""
        return self.archived_at is not None
