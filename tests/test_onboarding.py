"""
Tests for the onboarding state machine.
"""

import pytest

from conftest import registration_payload
from vetconnect_core.exceptions import (
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from vetconnect_core.models.onboarding import OnboardingStep, StepStatus
from vetconnect_core.models.veterinarian import VerificationStatus, VeterinarianStatus
from vetconnect_core.services import IdentityVerifier

STEPS = OnboardingStep.ordered()


class RejectingVerifier(IdentityVerifier):
    """Verifier that rejects everything."""

    async def verify_license(self, license_number: str, state: str) -> bool:
        return False

    async def verify_education(self, institution: str, degree: str) -> bool:
        return False


async def _register(platform) -> str:
    profile = await platform.register_veterinarian(registration_payload())
    return profile.id


async def _complete_through(platform, vet_id: str, last: OnboardingStep) -> None:
    for step in STEPS[: last.position + 1]:
        await platform.onboarding.advance(vet_id, step, "completed")


def _assert_prefix_property(progress) -> None:
    """Completed steps form a prefix of the order; at most one is running."""
    completed = progress.completed_steps
    assert completed == STEPS[: len(completed)]
    assert len(progress.steps_in_progress) <= 1


class TestStepOrder:
    """Test cases for the fixed step order."""

    @pytest.mark.asyncio
    async def test_complete_moves_to_next_step(self, platform):
        """Test completing the current step starts the next one."""
        vet_id = await _register(platform)

        result = await platform.onboarding.advance(
            vet_id, OnboardingStep.PERSONAL_INFO, "completed", notes="ID checked"
        )

        assert result.passed
        assert result.current_step == OnboardingStep.PROFESSIONAL_INFO
        progress = await platform.onboarding.get_progress(vet_id)
        assert progress.step(OnboardingStep.PROFESSIONAL_INFO).status == StepStatus.IN_PROGRESS
        assert progress.step(OnboardingStep.PERSONAL_INFO).reviewer_comments == ["ID checked"]
        _assert_prefix_property(progress)

    @pytest.mark.asyncio
    async def test_cannot_skip_ahead(self, platform):
        """Test only the current step can be decided."""
        vet_id = await _register(platform)

        with pytest.raises(InvalidTransitionException):
            await platform.onboarding.advance(
                vet_id, OnboardingStep.LICENSE_VERIFICATION, "completed"
            )

    @pytest.mark.asyncio
    async def test_unknown_step_or_outcome(self, platform):
        """Test unknown names are validation errors."""
        vet_id = await _register(platform)

        with pytest.raises(ValidationException):
            await platform.onboarding.advance(vet_id, "dance_lessons", "completed")
        with pytest.raises(ValidationException):
            await platform.onboarding.advance(vet_id, "personal_info", "approved")

    @pytest.mark.asyncio
    async def test_not_started_is_not_an_outcome(self, platform):
        """Test a step can never go back to not_started."""
        vet_id = await _register(platform)

        with pytest.raises(InvalidTransitionException):
            await platform.onboarding.advance(vet_id, "personal_info", "not_started")

    @pytest.mark.asyncio
    async def test_unknown_veterinarian(self, platform):
        """Test advancing an unknown veterinarian."""
        with pytest.raises(NotFoundException):
            await platform.onboarding.advance("missing", "personal_info", "completed")


class TestRetries:
    """Test cases for failed and reviewed steps."""

    @pytest.mark.asyncio
    async def test_failed_step_can_retry(self, platform, clock):
        """Test a failed step goes back to in_progress, not not_started."""
        vet_id = await _register(platform)
        await platform.onboarding.advance(vet_id, "personal_info", "failed", "Blurry ID")

        with pytest.raises(InvalidTransitionException):
            await platform.onboarding.advance(vet_id, "personal_info", "completed")

        clock.advance(days=1)
        retry = await platform.onboarding.advance(vet_id, "personal_info", "in_progress")

        assert retry.status == StepStatus.IN_PROGRESS
        progress = await platform.onboarding.get_progress(vet_id)
        assert progress.step(OnboardingStep.PERSONAL_INFO).started_at == clock()

        done = await platform.onboarding.advance(vet_id, "personal_info", "completed")
        assert done.current_step == OnboardingStep.PROFESSIONAL_INFO

    @pytest.mark.asyncio
    async def test_in_progress_step_cannot_restart(self, platform):
        """Test in_progress is only reachable from failed or requires_review."""
        vet_id = await _register(platform)

        with pytest.raises(InvalidTransitionException):
            await platform.onboarding.advance(vet_id, "personal_info", "in_progress")

    @pytest.mark.asyncio
    async def test_review_then_retry(self, platform):
        """Test a reviewed step can be retried."""
        vet_id = await _register(platform)
        await platform.onboarding.advance(vet_id, "personal_info", "requires_review")

        result = await platform.onboarding.advance(vet_id, "personal_info", "in_progress")

        assert result.status == StepStatus.IN_PROGRESS


class TestDocuments:
    """Test cases for document tracking."""

    @pytest.mark.asyncio
    async def test_submit_document(self, platform):
        """Test submissions are tracked without changing the status."""
        vet_id = await _register(platform)

        entry = await platform.onboarding.submit_document(
            vet_id, "personal_info", "photo_id"
        )
        again = await platform.onboarding.submit_document(
            vet_id, "personal_info", "photo_id"
        )

        assert entry.documents_submitted == ["photo_id"]
        assert again.documents_submitted == ["photo_id"]
        assert again.status == StepStatus.IN_PROGRESS
        assert again.missing_documents == ["profile_photo"]

    @pytest.mark.asyncio
    async def test_submit_for_future_step(self, platform):
        """Test documents may arrive before their step starts."""
        vet_id = await _register(platform)

        entry = await platform.onboarding.submit_document(
            vet_id, "education_verification", "diploma"
        )

        assert entry.status == StepStatus.NOT_STARTED
        assert entry.documents_submitted == ["diploma"]

    @pytest.mark.asyncio
    async def test_unknown_document(self, platform):
        """Test documents must be required by the step."""
        vet_id = await _register(platform)

        with pytest.raises(ValidationException):
            await platform.onboarding.submit_document(vet_id, "personal_info", "diploma")

    @pytest.mark.asyncio
    async def test_completed_step_rejects_documents(self, platform):
        """Test completed steps take no more documents."""
        vet_id = await _register(platform)
        await platform.onboarding.advance(vet_id, "personal_info", "completed")

        with pytest.raises(InvalidTransitionException):
            await platform.onboarding.submit_document(vet_id, "personal_info", "photo_id")


class TestVerification:
    """Test cases for verification results."""

    @pytest.mark.asyncio
    async def test_result_for_current_step(self, platform):
        """Test a result for the current step is applied at once."""
        vet_id = await _register(platform)
        await _complete_through(platform, vet_id, OnboardingStep.PROFESSIONAL_INFO)

        result = await platform.onboarding.record_verification_result(
            vet_id, "license_verification", True
        )

        assert result.applied
        assert result.current_step == OnboardingStep.EDUCATION_VERIFICATION

    @pytest.mark.asyncio
    async def test_negative_result_is_returned(self, platform):
        """Test a negative verification fails the step without raising."""
        vet_id = await _register(platform)
        await _complete_through(platform, vet_id, OnboardingStep.PROFESSIONAL_INFO)

        result = await platform.onboarding.record_verification_result(
            vet_id, "license_verification", False, notes="Expired"
        )

        assert not result.passed
        assert result.status == StepStatus.FAILED
        assert result.current_step == OnboardingStep.LICENSE_VERIFICATION

    @pytest.mark.asyncio
    async def test_result_for_failed_step_retries(self, platform):
        """Test a fresh result on a failed step counts as a retry."""
        vet_id = await _register(platform)
        await _complete_through(platform, vet_id, OnboardingStep.PROFESSIONAL_INFO)
        await platform.onboarding.record_verification_result(
            vet_id, "license_verification", False
        )

        result = await platform.onboarding.record_verification_result(
            vet_id, "license_verification", True
        )

        assert result.passed
        assert result.current_step == OnboardingStep.EDUCATION_VERIFICATION

    @pytest.mark.asyncio
    async def test_early_result_is_parked(self, platform):
        """Test results for steps not yet started wait for the step."""
        vet_id = await _register(platform)

        parked = await platform.onboarding.record_verification_result(
            vet_id, "license_verification", True
        )

        assert not parked.applied
        assert parked.status == StepStatus.NOT_STARTED
        progress = await platform.onboarding.get_progress(vet_id)
        assert progress.current_step == OnboardingStep.PERSONAL_INFO
        _assert_prefix_property(progress)

        await _complete_through(platform, vet_id, OnboardingStep.PROFESSIONAL_INFO)

        progress = await platform.onboarding.get_progress(vet_id)
        license_step = progress.step(OnboardingStep.LICENSE_VERIFICATION)
        assert license_step.status == StepStatus.COMPLETED
        assert license_step.parked_verification is None
        assert progress.current_step == OnboardingStep.EDUCATION_VERIFICATION
        _assert_prefix_property(progress)

    @pytest.mark.asyncio
    async def test_non_verification_step(self, platform):
        """Test only verification steps take verification results."""
        vet_id = await _register(platform)

        with pytest.raises(ValidationException):
            await platform.onboarding.record_verification_result(
                vet_id, "platform_training", True
            )

    @pytest.mark.asyncio
    async def test_verify_license_through_port(self, platform):
        """Test the simulated verifier accepts the registered license."""
        vet_id = await _register(platform)
        await _complete_through(platform, vet_id, OnboardingStep.PROFESSIONAL_INFO)

        result = await platform.onboarding.verify_license(vet_id)

        assert result.passed
        profile = await platform.profiles.get(vet_id)
        license_ = profile.professional_info.primary_license
        assert license_.verification_status == VerificationStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_verify_education_rejected(self, platform):
        """Test a rejecting verifier fails the step and the record."""
        platform.onboarding.verifier = RejectingVerifier()
        vet_id = await _register(platform)
        await _complete_through(platform, vet_id, OnboardingStep.LICENSE_VERIFICATION)

        result = await platform.onboarding.verify_education(vet_id)

        assert result.status == StepStatus.FAILED
        profile = await platform.profiles.get(vet_id)
        education = profile.professional_info.education[0]
        assert education.verification_status == VerificationStatus.FAILED


class TestStaleVerifications:
    """Test cases for verification timeouts."""

    @pytest.mark.asyncio
    async def test_stale_step_sent_to_review(self, platform, clock):
        """Test verification steps pending too long go to review."""
        vet_id = await _register(platform)
        await _complete_through(platform, vet_id, OnboardingStep.PROFESSIONAL_INFO)

        assert await platform.onboarding.flag_stale_verifications() == []

        clock.advance(days=15)
        flagged = await platform.onboarding.flag_stale_verifications()

        assert flagged == [(vet_id, OnboardingStep.LICENSE_VERIFICATION)]
        progress = await platform.onboarding.get_progress(vet_id)
        entry = progress.step(OnboardingStep.LICENSE_VERIFICATION)
        assert entry.status == StepStatus.REQUIRES_REVIEW
        assert entry.reviewer_comments

    @pytest.mark.asyncio
    async def test_non_verification_steps_ignored(self, platform, clock):
        """Test other steps never time out."""
        await _register(platform)
        clock.advance(days=30)

        assert await platform.onboarding.flag_stale_verifications() == []


class TestCompletion:
    """Test cases for finishing onboarding."""

    @pytest.mark.asyncio
    async def test_final_step_activates_profile(self, platform, clock):
        """Test completing every step archives onboarding and activates."""
        vet_id = await _register(platform)
        clock.advance(days=3)

        await _complete_through(platform, vet_id, OnboardingStep.FINAL_APPROVAL)

        progress = await platform.onboarding.get_progress(vet_id)
        assert progress.is_complete
        assert progress.completed_at == clock()
        assert progress.archived_at == clock()
        assert progress.completed_steps == STEPS
        assert progress.percent_complete == 100.0

        profile = await platform.profiles.get(vet_id)
        assert profile.status == VeterinarianStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_completed_onboarding_is_closed(self, platform):
        """Test no further decisions are accepted after completion."""
        vet_id = await _register(platform)
        await _complete_through(platform, vet_id, OnboardingStep.FINAL_APPROVAL)

        with pytest.raises(InvalidTransitionException):
            await platform.onboarding.advance(vet_id, "final_approval", "completed")
