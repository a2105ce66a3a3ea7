"""
Onboarding Pydantic schemas.

This module contains the per-step progress record, the onboarding progress
document and the result returned to callers after a step decision.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.onboarding import OnboardingStep, StepStatus
from ..utils.datetime_utils import get_current_utc

REQUIRED_DOCUMENTS: Dict[OnboardingStep, List[str]] = {
    OnboardingStep.PERSONAL_INFO: ["photo_id", "profile_photo"],
    OnboardingStep.PROFESSIONAL_INFO: [
        "clinic_information",
        "professional_references",
    ],
    OnboardingStep.LICENSE_VERIFICATION: [
        "veterinary_license",
        "license_verification_form",
    ],
    OnboardingStep.EDUCATION_VERIFICATION: ["diploma", "transcripts"],
    OnboardingStep.INSURANCE_VERIFICATION: ["malpractice_insurance_certificate"],
    OnboardingStep.SPECIALIZATION_ASSESSMENT: [
        "certification_documents",
        "experience_portfolio",
    ],
    OnboardingStep.PLATFORM_TRAINING: ["training_completion_certificate"],
    OnboardingStep.EDUCATIONAL_TRAINING: ["educational_methodology_assessment"],
    OnboardingStep.TRIAL_CONSULTATIONS: ["trial_consultation_reports"],
    OnboardingStep.FINAL_APPROVAL: ["background_check", "final_interview_notes"],
}


class ParkedVerification(BaseModel):
    """Verification result that arrived before its step started."""

    verified: bool
    notes: Optional[str] = None
    received_at: datetime = Field(default_factory=get_current_utc)


class StepProgress(BaseModel):
    """Progress of a single onboarding step."""

    model_config = ConfigDict(from_attributes=True)

    status: StepStatus = StepStatus.NOT_STARTED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    documents_required: List[str] = Field(default_factory=list)
    documents_submitted: List[str] = Field(default_factory=list)
    reviewer_comments: List[str] = Field(default_factory=list)
    parked_verification: Optional[ParkedVerification] = None

    @property
    def missing_documents(self) -> List[str]:
        """Required documents that have not been submitted yet."""
        return [
            doc
            for doc in self.documents_required
            if doc not in self.documents_submitted
        ]


class OnboardingProgress(BaseModel):
    """Onboarding progress document, one per veterinarian."""

    model_config = ConfigDict(from_attributes=True)

    veterinarian_id: str
    current_step: OnboardingStep = OnboardingStep.PERSONAL_INFO
    completed_steps: List[OnboardingStep] = Field(default_factory=list)
    step_progress: Dict[OnboardingStep, StepProgress] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=get_current_utc)
    completed_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    @model_validator(mode="after")
    def fill_missing_steps(self) -> "OnboardingProgress":
        """Every step always has a progress entry with its required documents."""
        for step in OnboardingStep.ordered():
            if step not in self.step_progress:
                self.step_progress[step] = StepProgress(
                    documents_required=list(REQUIRED_DOCUMENTS[step])
                )
        return self

    @classmethod
    def start(
        cls, veterinarian_id: str, now: Optional[datetime] = None
    ) -> "OnboardingProgress":
        """Create progress with the first step already in progress."""
        now = now or get_current_utc()
        progress = cls(veterinarian_id=veterinarian_id, started_at=now)
        first = progress.step_progress[OnboardingStep.PERSONAL_INFO]
        first.status = StepStatus.IN_PROGRESS
        first.started_at = now
        return progress

    def step(self, step: OnboardingStep) -> StepProgress:
        """Return the progress entry for ``step``."""
        return self.step_progress[step]

    @property
    def is_complete(self) -> bool:
        """Check if every step has been completed."""
        return self.completed_at is not None

    @property
    def steps_in_progress(self) -> List[OnboardingStep]:
        """Steps currently in progress (at most one)."""
        return [
            step
            for step in OnboardingStep.ordered()
            if self.step_progress[step].status == StepStatus.IN_PROGRESS
        ]

    @property
    def percent_complete(self) -> float:
        """Share of completed steps as a percentage."""
        return round(100.0 * len(self.completed_steps) / len(OnboardingStep), 1)


class StepResult(BaseModel):
    """Outcome of an onboarding decision, presented to the caller."""

    veterinarian_id: str
    step: OnboardingStep
    status: StepStatus
    passed: bool
    notes: Optional[str] = None
    current_step: OnboardingStep
    onboarding_complete: bool = False
    applied: bool = Field(
        True, description="False when a verification result was parked for later"
    )
