"""
Onboarding state machine.

Steps follow a fixed order and only the current step can be decided. A step
moves ``not_started -> in_progress -> completed | failed | requires_review``;
a failed or reviewed step goes back to ``in_progress`` on retry and never
to ``not_started``. Completing a step starts the next one, and completing
the last step finishes (and archives) onboarding.

Verification results from the identity port may arrive for a step that has
not started yet. They are parked on that step and applied when it starts.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple, Union

from ..exceptions import (
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from ..models.onboarding import VERIFICATION_STEPS, OnboardingStep, StepStatus
from ..models.veterinarian import VerificationStatus, VeterinarianStatus
from ..schemas.aggregate import VeterinarianAggregate
from ..schemas.onboarding import (
    REQUIRED_DOCUMENTS,
    OnboardingProgress,
    ParkedVerification,
    StepProgress,
    StepResult,
)
from ..utils.datetime_utils import elapsed_days
from .transaction import AggregateService
from .verification import IdentityVerifier, SimulatedIdentityVerifier

logger = logging.getLogger(__name__)

DECISIONS = frozenset(
    {StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.REQUIRES_REVIEW}
)
RETRYABLE = frozenset({StepStatus.FAILED, StepStatus.REQUIRES_REVIEW})


def _parse_step(step: Union[OnboardingStep, str]) -> OnboardingStep:
    try:
        return OnboardingStep(step)
    except ValueError as e:
        raise ValidationException(
            f"Unknown onboarding step: {step}", field="step", value=step
        ) from e


def _parse_outcome(outcome: Union[StepStatus, str]) -> StepStatus:
    try:
        return StepStatus(outcome)
    except ValueError as e:
        raise ValidationException(
            f"Unknown step outcome: {outcome}", field="outcome", value=outcome
        ) from e


def _active_progress(aggregate: VeterinarianAggregate) -> OnboardingProgress:
    """Return onboarding progress that can still change."""
    progress = aggregate.onboarding
    if progress is None:
        raise NotFoundException(
            resource_type="onboarding", resource_id=aggregate.veterinarian_id
        )
    if progress.is_complete:
        raise InvalidTransitionException(
            "Onboarding is already complete",
            entity=aggregate.veterinarian_id,
            current_state="completed",
        )
    return progress


class OnboardingStateMachine(AggregateService):
    """Drives a veterinarian through the fixed onboarding steps."""

    def __init__(self, *args, verifier: Optional[IdentityVerifier] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.verifier = verifier or SimulatedIdentityVerifier()

    async def get_progress(self, veterinarian_id: str) -> OnboardingProgress:
        """
        Get a veterinarian's onboarding progress.

        Raises:
            NotFoundException: If the veterinarian or its progress is missing
        """
        aggregate = await self.load_aggregate(veterinarian_id)
        if aggregate.onboarding is None:
            raise NotFoundException(
                resource_type="onboarding", resource_id=veterinarian_id
            )
        return aggregate.onboarding

    async def advance(
        self,
        veterinarian_id: str,
        step: Union[OnboardingStep, str],
        outcome: Union[StepStatus, str],
        notes: Optional[str] = None,
    ) -> StepResult:
        """
        Record a decision on the current step.

        Args:
            veterinarian_id: Veterinarian being onboarded
            step: Step the decision applies to; must be the current step
            outcome: ``completed``, ``failed``, ``requires_review`` or, to
                retry a failed or reviewed step, ``in_progress``
            notes: Reviewer notes stored on the step

        Returns:
            The recorded result

        Raises:
            InvalidTransitionException: If the step is not current or the
                outcome is not reachable from its status
        """
        step = _parse_step(step)
        outcome = _parse_outcome(outcome)

        async with self.transaction(veterinarian_id) as tx:
            result = self._advance(tx.aggregate, step, outcome, notes, self.clock())

        return result

    async def submit_document(
        self,
        veterinarian_id: str,
        step: Union[OnboardingStep, str],
        document: str,
    ) -> StepProgress:
        """
        Track a submitted document; the step status does not change.

        Documents may be submitted for any step that is not completed yet.
        Submitting the same document twice has no further effect.

        Raises:
            ValidationException: If the step does not require the document
            InvalidTransitionException: If the step is already completed
        """
        step = _parse_step(step)
        if document not in REQUIRED_DOCUMENTS[step]:
            raise ValidationException(
                f"Document {document} is not required for step {step.value}",
                field="document",
                value=document,
            )

        async with self.transaction(veterinarian_id) as tx:
            progress = _active_progress(tx.aggregate)
            entry = progress.step(step)
            if entry.status == StepStatus.COMPLETED:
                raise InvalidTransitionException(
                    f"Step {step.value} is already completed",
                    entity=step.value,
                    current_state=entry.status.value,
                )
            if document not in entry.documents_submitted:
                entry.documents_submitted.append(document)
                logger.info(
                    f"Veterinarian {veterinarian_id} submitted {document} "
                    f"for {step.value}"
                )

        return tx.aggregate.onboarding.step(step)

    async def record_verification_result(
        self,
        veterinarian_id: str,
        step: Union[OnboardingStep, str],
        verified: bool,
        notes: Optional[str] = None,
    ) -> StepResult:
        """
        Record the outcome of an external verification.

        A result for the current step is applied right away as a
        ``completed`` or ``failed`` decision; a result for a step that has
        not started is parked and applied when the step starts. A negative
        result is returned, not raised.

        Raises:
            ValidationException: If the step is not a verification step
            InvalidTransitionException: If the step is already completed
        """
        step = _parse_step(step)
        self._require_verification_step(step)

        async with self.transaction(veterinarian_id) as tx:
            result = self._apply_verification(
                tx.aggregate, step, verified, notes, self.clock()
            )

        return result

    async def verify_license(
        self,
        veterinarian_id: str,
        license_number: Optional[str] = None,
        state: Optional[str] = None,
    ) -> StepResult:
        """
        Verify a license through the identity port and record the result.

        The profile's primary license is used unless another one is given.
        """
        aggregate = await self.load_aggregate(veterinarian_id)
        on_file = aggregate.profile.professional_info.primary_license
        number = license_number or on_file.license_number
        state = state or on_file.state

        # Remote call happens outside the aggregate lock
        verified = await self.verifier.verify_license(number, state)

        async with self.transaction(veterinarian_id) as tx:
            now = self.clock()
            primary = tx.aggregate.profile.professional_info.primary_license
            if primary.license_number == number and primary.state == state:
                if verified:
                    primary.verification_status = VerificationStatus.VERIFIED
                    primary.verified_at = now
                else:
                    primary.verification_status = VerificationStatus.FAILED
            notes = None if verified else f"License {number} ({state}) not verified"
            result = self._apply_verification(
                tx.aggregate, OnboardingStep.LICENSE_VERIFICATION, verified, notes, now
            )

        return result

    async def verify_education(
        self,
        veterinarian_id: str,
        institution: Optional[str] = None,
        degree: Optional[str] = None,
    ) -> StepResult:
        """
        Verify a degree through the identity port and record the result.

        The first education record on the profile is used unless another
        institution and degree are given.

        Raises:
            ValidationException: If no degree is given or on the profile
        """
        aggregate = await self.load_aggregate(veterinarian_id)
        records = aggregate.profile.professional_info.education
        if institution is None or degree is None:
            if not records:
                raise ValidationException(
                    "No education record to verify", field="education"
                )
            institution = institution or records[0].institution
            degree = degree or records[0].degree

        verified = await self.verifier.verify_education(institution, degree)

        async with self.transaction(veterinarian_id) as tx:
            for record in tx.aggregate.profile.professional_info.education:
                if record.institution == institution and record.degree == degree:
                    record.verification_status = (
                        VerificationStatus.VERIFIED
                        if verified
                        else VerificationStatus.FAILED
                    )
            notes = None if verified else f"{degree} from {institution} not verified"
            result = self._apply_verification(
                tx.aggregate,
                OnboardingStep.EDUCATION_VERIFICATION,
                verified,
                notes,
                self.clock(),
            )

        return result

    async def flag_stale_verifications(
        self, now: Optional[datetime] = None
    ) -> List[Tuple[str, OnboardingStep]]:
        """
        Send verification steps that waited too long to manual review.

        Returns:
            The ``(veterinarian_id, step)`` pairs that were flagged
        """
        now = now or self.clock()
        timeout = self.settings.verification_timeout_days
        flagged: List[Tuple[str, OnboardingStep]] = []

        for snapshot in await self.repository.list_all():
            if not self._stale_steps(snapshot, now, timeout):
                continue
            async with self.transaction(snapshot.veterinarian_id) as tx:
                # Re-check under the lock; the snapshot may be outdated
                for step in self._stale_steps(tx.aggregate, now, timeout):
                    entry = tx.aggregate.onboarding.step(step)
                    entry.status = StepStatus.REQUIRES_REVIEW
                    entry.reviewer_comments.append(
                        f"Verification pending for more than {timeout} days"
                    )
                    flagged.append((snapshot.veterinarian_id, step))
                    logger.warning(
                        f"Veterinarian {snapshot.veterinarian_id}: {step.value} "
                        f"pending for more than {timeout} days, sent to review"
                    )

        return flagged

    @staticmethod
    def _stale_steps(
        aggregate: VeterinarianAggregate, now: datetime, timeout: int
    ) -> List[OnboardingStep]:
        progress = aggregate.onboarding
        if progress is None or progress.is_complete:
            return []
        return [
            step
            for step in OnboardingStep.ordered()
            if step in VERIFICATION_STEPS
            and progress.step(step).status == StepStatus.IN_PROGRESS
            and elapsed_days(progress.step(step).started_at, now) > timeout
        ]

    @staticmethod
    def _require_verification_step(step: OnboardingStep) -> None:
        if step not in VERIFICATION_STEPS:
            raise ValidationException(
                f"Step {step.value} does not take verification results",
                field="step",
                value=step.value,
            )

    def _apply_verification(
        self,
        aggregate: VeterinarianAggregate,
        step: OnboardingStep,
        verified: bool,
        notes: Optional[str],
        now: datetime,
    ) -> StepResult:
        progress = _active_progress(aggregate)
        entry = progress.step(step)

        if entry.status == StepStatus.COMPLETED:
            raise InvalidTransitionException(
                f"Step {step.value} is already completed",
                entity=step.value,
                current_state=entry.status.value,
            )

        if entry.status == StepStatus.NOT_STARTED:
            entry.parked_verification = ParkedVerification(
                verified=verified, notes=notes, received_at=now
            )
            logger.info(
                f"Veterinarian {aggregate.veterinarian_id}: verification result "
                f"for {step.value} parked until the step starts"
            )
            return StepResult(
                veterinarian_id=aggregate.veterinarian_id,
                step=step,
                status=entry.status,
                passed=verified,
                notes=notes,
                current_step=progress.current_step,
                applied=False,
            )

        if entry.status in RETRYABLE:
            # A fresh result counts as a resubmission
            self._advance(aggregate, step, StepStatus.IN_PROGRESS, None, now)

        outcome = StepStatus.COMPLETED if verified else StepStatus.FAILED
        return self._advance(aggregate, step, outcome, notes, now)

    def _advance(
        self,
        aggregate: VeterinarianAggregate,
        step: OnboardingStep,
        outcome: StepStatus,
        notes: Optional[str],
        now: datetime,
    ) -> StepResult:
        progress = _active_progress(aggregate)
        vet_id = aggregate.veterinarian_id

        if step != progress.current_step:
            raise InvalidTransitionException(
                f"Cannot advance {step.value}: current step is "
                f"{progress.current_step.value}",
                entity=step.value,
                current_state=progress.step(step).status.value,
                requested_state=outcome.value,
            )

        entry = progress.step(step)
        current = entry.status
        allowed = (outcome in DECISIONS and current == StepStatus.IN_PROGRESS) or (
            outcome == StepStatus.IN_PROGRESS and current in RETRYABLE
        )
        if not allowed:
            logger.warning(
                f"Veterinarian {vet_id}: rejected {step.value} "
                f"{current.value} -> {outcome.value}"
            )
            raise InvalidTransitionException(
                f"Step {step.value} cannot move from {current.value} "
                f"to {outcome.value}",
                entity=step.value,
                current_state=current.value,
                requested_state=outcome.value,
            )

        if notes:
            entry.notes = notes
            entry.reviewer_comments.append(notes)
        entry.status = outcome

        if outcome == StepStatus.IN_PROGRESS:
            entry.started_at = now
            logger.info(f"Veterinarian {vet_id}: retrying {step.value}")
        elif outcome == StepStatus.COMPLETED:
            self._complete(aggregate, progress, step, now)
        else:
            logger.info(f"Veterinarian {vet_id}: {step.value} marked {outcome.value}")

        return StepResult(
            veterinarian_id=vet_id,
            step=step,
            status=outcome,
            passed=outcome == StepStatus.COMPLETED,
            notes=notes,
            current_step=progress.current_step,
            onboarding_complete=progress.is_complete,
        )

    def _complete(
        self,
        aggregate: VeterinarianAggregate,
        progress: OnboardingProgress,
        step: OnboardingStep,
        now: datetime,
    ) -> None:
        entry = progress.step(step)
        entry.completed_at = now
        if step not in progress.completed_steps:
            progress.completed_steps.append(step)
        logger.info(f"Veterinarian {aggregate.veterinarian_id}: {step.value} completed")

        next_step = step.next_step
        if next_step is None:
            progress.completed_at = now
            progress.archived_at = now
            if aggregate.profile.status == VeterinarianStatus.PENDING_VERIFICATION:
                aggregate.profile.status = VeterinarianStatus.ACTIVE
                aggregate.profile.updated_at = now
            logger.info(
                f"Veterinarian {aggregate.veterinarian_id} completed onboarding"
            )
            return

        progress.current_step = next_step
        if next_step in progress.completed_steps:
            return
        self._start(aggregate, progress, next_step, now)

    def _start(
        self,
        aggregate: VeterinarianAggregate,
        progress: OnboardingProgress,
        step: OnboardingStep,
        now: datetime,
    ) -> None:
        entry = progress.step(step)
        entry.status = StepStatus.IN_PROGRESS
        entry.started_at = now

        parked = entry.parked_verification
        if parked is not None:
            entry.parked_verification = None
            logger.info(
                f"Veterinarian {aggregate.veterinarian_id}: applying parked "
                f"verification result for {step.value}"
            )
            outcome = StepStatus.COMPLETED if parked.verified else StepStatus.FAILED
            self._advance(aggregate, step, outcome, parked.notes, now)
