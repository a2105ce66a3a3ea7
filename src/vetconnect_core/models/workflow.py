"""
Workflow models for the vetconnect-core package.

This module contains the case, task, notification and alert enumerations,
the ``WorkflowRecord`` table holding each veterinarian's workflow document,
and the ``CaseAssignmentRecord`` table that guards single ownership of a
case across veterinarians.
"""

import enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from vetconnect_core.database.types import JSONType

from .base import BaseModel


class CaseStatus(enum.Enum):
    """Enumeration of case statuses, declared in lifecycle order."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    AWAITING_DOCUMENTATION = "awaiting_documentation"
    COMPLETED = "completed"

    @classmethod
    def ordered(cls) -> List["CaseStatus"]:
        """Return the statuses in lifecycle order."""
        return list(cls)

    def can_transition_to(self, new_status: "CaseStatus") -> bool:
        """
        Cases advance one step at a time, except that an in-progress case
        may be completed without waiting for documentation.
        """
        steps = self.ordered()
        if steps.index(new_status) == steps.index(self) + 1:
            return True
        return (self, new_status) == (CaseStatus.IN_PROGRESS, CaseStatus.COMPLETED)


class UrgencyLevel(enum.Enum):
    """Enumeration of case urgency levels."""

    ROUTINE = "routine"
    URGENT = "urgent"
    EMERGENCY = "emergency"


class ConsultationType(enum.Enum):
    """Enumeration of consultation types."""

    VIDEO = "video"
    PHONE = "phone"
    TEXT = "text"
    PHOTO_REVIEW = "photo_review"


class NotificationType(enum.Enum):
    """Enumeration of notification types."""

    NEW_CASE = "new_case"
    URGENT_CASE = "urgent_case"
    SCHEDULE_CHANGE = "schedule_change"
    EDUCATIONAL_UPDATE = "educational_update"
    SYSTEM_ALERT = "system_alert"


class Priority(enum.Enum):
    """Enumeration of notification and task priorities."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskType(enum.Enum):
    """Enumeration of workflow task types."""

    DOCUMENTATION = "documentation"
    EDUCATIONAL_FOLLOW_UP = "educational_follow_up"
    FOLLOW_UP = "follow_up"
    REVIEW = "review"
    ADMINISTRATIVE = "administrative"
    EDUCATIONAL = "educational"


class TaskStatus(enum.Enum):
    """Enumeration of workflow task statuses."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class AlertType(enum.Enum):
    """Enumeration of performance alert types."""

    RESPONSE_TIME = "response_time"
    SATISFACTION = "satisfaction"


class AlertSeverity(enum.Enum):
    """Enumeration of performance alert severities."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class ScheduleEntryStatus(enum.Enum):
    """Enumeration of schedule entry statuses."""

    BOOKED = "booked"
    COMPLETED = "completed"


class WorkflowRecord(BaseModel):
    """Workflow state row, one per veterinarian."""

    __tablename__ = "veterinarian_workflows"

    veterinarian_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("veterinarians.id", ondelete="CASCADE"),
        primary_key=True,
        comment="Veterinarian owning the workflow",
    )

    state: Mapped[Dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        comment="Full workflow state document",
    )


class CaseAssignmentRecord(BaseModel):
    """
    Ownership row for an assigned case.

    The primary key on ``case_id`` makes a claim a compare-and-swap: a second
    insert for the same case fails at the database regardless of which
    process attempts it.
    """

    __tablename__ = "case_assignments"

    case_id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Case identifier, unique system-wide",
    )

    veterinarian_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("veterinarians.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Veterinarian that owns the case",
    )

    released_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the case left the veterinarian's current cases",
    )

    @property
    def is_open(self) -> bool:
        """Check if the case is still in the owner's current cases."""
        return self.released_at is None
