"""
Case matching result schemas.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .workflow import CaseRequirements


class ScoreBreakdown(BaseModel):
    """Points awarded to a candidate per scoring criterion."""

    model_config = ConfigDict(frozen=True)

    specialty: float = 0.0
    student_level: float = 0.0
    educational_focus: float = 0.0
    rating: float = 0.0
    capacity: float = 0.0
    emergency: float = 0.0

    @property
    def total(self) -> float:
        """Sum of all criteria."""
        return (
            self.specialty
            + self.student_level
            + self.educational_focus
            + self.rating
            + self.capacity
            + self.emergency
        )


class MatchCandidate(BaseModel):
    """A ranked veterinarian on a shortlist."""

    model_config = ConfigDict(frozen=True)

    veterinarian_id: str
    display_name: str
    score: float
    current_load: int = Field(..., ge=0)
    breakdown: ScoreBreakdown


class MatchResult(BaseModel):
    """Shortlist returned for a set of case requirements."""

    requirements: CaseRequirements
    requested_date: date
    candidates: List[MatchCandidate] = Field(default_factory=list)
    evaluated: int = Field(0, ge=0, description="Active veterinarians considered")
    eligible: int = Field(0, ge=0, description="Candidates that passed the filter")

    @property
    def best(self) -> Optional[MatchCandidate]:
        """Top-ranked candidate, if any."""
        return self.candidates[0] if self.candidates else None
