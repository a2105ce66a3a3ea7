"""
Case matching engine.

Scores active veterinarians against a case's requirements and returns a
deterministic shortlist. Scoring and ranking are pure functions of profile
snapshots; ``CaseMatchingEngine.match`` only adds the read of those
snapshots, without locking, so a slightly stale load count is possible.

Rubric:
    +40  a specialization topic equals the required specialty
    +20  the student level is among the preferred levels
    +20  a requested objective is a preferred educational focus
    +20  at most, overall rating x 4
    +10  current load below 80% of the daily case limit
    +10  emergency case and emergency availability
"""

import logging
from datetime import date
from typing import Iterable, List, Optional, Union

from ..exceptions import ValidationException
from ..models.workflow import UrgencyLevel
from ..repositories.base import AggregateRepository
from ..schemas.aggregate import VeterinarianAggregate, parse_payload
from ..schemas.matching import MatchCandidate, MatchResult, ScoreBreakdown
from ..schemas.veterinarian import VeterinarianProfile
from ..schemas.workflow import CaseRequirements, WorkflowState
from ..utils.config import VetConnectSettings

logger = logging.getLogger(__name__)

SPECIALTY_POINTS = 40.0
STUDENT_LEVEL_POINTS = 20.0
EDUCATIONAL_FOCUS_POINTS = 20.0
RATING_MULTIPLIER = 4.0
RATING_CAP = 20.0
CAPACITY_POINTS = 10.0
CAPACITY_THRESHOLD = 0.8
EMERGENCY_POINTS = 10.0


def current_load(workflow: WorkflowState, day: date) -> int:
    """Number of current cases scheduled on ``day``."""
    return len(workflow.cases_on(day))


def is_eligible(profile: VeterinarianProfile, load: int, day: date) -> bool:
    """
    Check if a veterinarian can take a case on ``day``.

    The profile must be active, the weekday must be available with at least
    one shift, no blackout period may cover the date, and the day's load
    must be below the daily limit.
    """
    availability = profile.availability
    return (
        profile.is_active
        and availability.is_available_on(day)
        and load < availability.max_cases_per_day
    )


def score_candidate(
    profile: VeterinarianProfile, requirements: CaseRequirements, load: int
) -> ScoreBreakdown:
    """Score one veterinarian against the case requirements."""
    preferences = profile.preferences
    availability = profile.availability

    objectives = set(requirements.educational_objectives)
    focus_areas = set(preferences.educational_focus_areas)

    emergency = (
        requirements.urgency_level == UrgencyLevel.EMERGENCY
        and availability.emergency_availability.available
    )

    return ScoreBreakdown(
        specialty=(
            SPECIALTY_POINTS if profile.has_specialty(requirements.specialty) else 0.0
        ),
        student_level=(
            STUDENT_LEVEL_POINTS
            if requirements.student_level in preferences.student_level_preferences
            else 0.0
        ),
        educational_focus=EDUCATIONAL_FOCUS_POINTS if objectives & focus_areas else 0.0,
        rating=min(
            RATING_CAP, profile.performance.overall_rating * RATING_MULTIPLIER
        ),
        capacity=(
            CAPACITY_POINTS
            if load < availability.max_cases_per_day * CAPACITY_THRESHOLD
            else 0.0
        ),
        emergency=EMERGENCY_POINTS if emergency else 0.0,
    )


def rank_candidates(
    snapshots: Iterable[VeterinarianAggregate],
    requirements: CaseRequirements,
    limit: Optional[int] = 5,
) -> List[MatchCandidate]:
    """
    Filter, score and order veterinarian snapshots.

    Candidates are ordered by score (highest first), then by lower load,
    then by veterinarian id, so equal inputs always give equal output.
    A ``limit`` of ``None`` returns every eligible candidate.
    """
    day = requirements.scheduled_time.date()
    candidates = []
    for snapshot in snapshots:
        load = current_load(snapshot.workflow, day)
        if not is_eligible(snapshot.profile, load, day):
            continue
        breakdown = score_candidate(snapshot.profile, requirements, load)
        candidates.append(
            MatchCandidate(
                veterinarian_id=snapshot.veterinarian_id,
                display_name=snapshot.profile.personal_info.full_name,
                score=breakdown.total,
                current_load=load,
                breakdown=breakdown,
            )
        )

    candidates.sort(key=lambda c: (-c.score, c.current_load, c.veterinarian_id))
    return candidates[:limit]


class CaseMatchingEngine:
    """Builds shortlists of veterinarians for incoming cases."""

    def __init__(
        self,
        repository: AggregateRepository,
        settings: Optional[VetConnectSettings] = None,
    ):
        self.repository = repository
        self.settings = settings or VetConnectSettings()

    async def match(
        self,
        requirements: Union[CaseRequirements, dict],
        limit: Optional[int] = None,
    ) -> MatchResult:
        """
        Rank active veterinarians for a case.

        Args:
            requirements: Case requirements
            limit: Shortlist size (defaults to the configured size)

        Returns:
            The shortlist; empty when nobody qualifies

        Raises:
            ValidationException: If the specialty is missing
        """
        requirements = parse_payload(CaseRequirements, requirements)
        if not requirements.specialty.strip():
            raise ValidationException("Specialty is required", field="specialty")

        limit = limit or self.settings.shortlist_size
        snapshots = await self.repository.list_active()
        day = requirements.scheduled_time.date()
        eligible = rank_candidates(snapshots, requirements, limit=None)
        candidates = eligible[:limit]

        logger.info(
            f"Matched {requirements.specialty} case on {day}: "
            f"{len(candidates)} of {len(eligible)} eligible "
            f"({len(snapshots)} active)"
        )
        return MatchResult(
            requirements=requirements,
            requested_date=day,
            candidates=candidates,
            evaluated=len(snapshots),
            eligible=len(eligible),
        )
