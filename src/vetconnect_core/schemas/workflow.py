"""
Workflow Pydantic schemas.

This module contains the case payloads, the records appended to a
veterinarian's workflow (notifications, tasks, schedule entries,
performance alerts) and the workflow state document itself.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.veterinarian import StudentLevel
from ..models.workflow import (
    AlertSeverity,
    AlertType,
    CaseStatus,
    ConsultationType,
    NotificationType,
    Priority,
    ScheduleEntryStatus,
    TaskStatus,
    TaskType,
    UrgencyLevel,
)
from ..utils.datetime_utils import ensure_utc, get_current_utc
from .veterinarian import generate_id


class CaseRequirements(BaseModel):
    """Requirements submitted by case intake to find a veterinarian."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    specialty: str = Field(..., description="Specialty tag the case needs")
    urgency_level: UrgencyLevel = UrgencyLevel.ROUTINE
    student_level: StudentLevel = StudentLevel.BEGINNER
    educational_objectives: List[str] = Field(default_factory=list)
    consultation_type: ConsultationType = ConsultationType.VIDEO
    scheduled_time: datetime = Field(default_factory=get_current_utc)

    @field_validator("scheduled_time")
    @classmethod
    def normalize_scheduled_time(cls, v: datetime) -> datetime:
        """Store scheduled times in UTC."""
        return ensure_utc(v)


class CaseRequest(BaseModel):
    """Payload of a case being assigned to a veterinarian."""

    model_config = ConfigDict(
        from_attributes=True, frozen=True, str_strip_whitespace=True
    )

    case_id: str = Field(..., min_length=1, max_length=64)
    student_id: str = Field(..., min_length=1, max_length=64)
    animal_id: str = Field(..., min_length=1, max_length=64)
    specialty: str = Field(..., min_length=1, description="Specialty tag the case needs")
    urgency_level: UrgencyLevel = UrgencyLevel.ROUTINE
    consultation_type: ConsultationType = ConsultationType.VIDEO
    estimated_duration: int = Field(30, ge=1, description="Minutes")
    scheduled_time: datetime
    educational_objectives: List[str] = Field(default_factory=list)
    student_level: StudentLevel = StudentLevel.BEGINNER

    @field_validator("scheduled_time")
    @classmethod
    def normalize_scheduled_time(cls, v: datetime) -> datetime:
        """Store scheduled times in UTC."""
        return ensure_utc(v)


class ActiveCase(BaseModel):
    """A case owned by a veterinarian: immutable payload plus mutable status."""

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    case_id: str = Field(..., frozen=True)
    student_id: str = Field(..., frozen=True)
    animal_id: str = Field(..., frozen=True)
    specialty: str = Field(..., frozen=True)
    urgency_level: UrgencyLevel = Field(UrgencyLevel.ROUTINE, frozen=True)
    consultation_type: ConsultationType = Field(ConsultationType.VIDEO, frozen=True)
    estimated_duration: int = Field(30, frozen=True)
    scheduled_time: datetime = Field(..., frozen=True)
    educational_objectives: List[str] = Field(default_factory=list, frozen=True)
    student_level: StudentLevel = Field(StudentLevel.BEGINNER, frozen=True)
    status: CaseStatus = CaseStatus.SCHEDULED
    assigned_at: datetime = Field(default_factory=get_current_utc, frozen=True)
    status_changed_at: Optional[datetime] = None

    @classmethod
    def from_request(cls, request: CaseRequest, now: datetime) -> "ActiveCase":
        """Create a scheduled case from an assignment payload."""
        return cls(
            **request.model_dump(),
            status=CaseStatus.SCHEDULED,
            assigned_at=now,
            status_changed_at=now,
        )


class PendingCase(BaseModel):
    """A case offered to a veterinarian but not yet assigned."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    case_id: str = Field(..., min_length=1, max_length=64)
    submitted_at: datetime = Field(default_factory=get_current_utc)
    urgency_level: UrgencyLevel = UrgencyLevel.ROUTINE
    specialty_required: List[str] = Field(default_factory=list)
    estimated_duration: int = Field(30, ge=1)
    educational_context: str = ""
    requires_review: bool = False


class ScheduleEntry(BaseModel):
    """A booked block of time in the veterinarian's schedule."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=generate_id)
    case_id: str
    start_time: datetime
    end_time: datetime
    status: ScheduleEntryStatus = ScheduleEntryStatus.BOOKED


class Notification(BaseModel):
    """A notification addressed to a veterinarian."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=generate_id)
    type: NotificationType
    title: str
    message: str
    created_at: datetime = Field(default_factory=get_current_utc)
    read_at: Optional[datetime] = None
    action_required: bool = False
    action_url: Optional[str] = None
    priority: Priority = Priority.MEDIUM

    @property
    def is_read(self) -> bool:
        """Check if the notification has been read."""
        return self.read_at is not None


class WorkflowTask(BaseModel):
    """A follow-up task in a veterinarian's workflow."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=generate_id)
    type: TaskType
    title: str
    description: str = ""
    due_date: datetime
    priority: Priority = Priority.MEDIUM
    related_case_id: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    estimated_time: int = Field(15, ge=0, description="Minutes")
    created_at: datetime = Field(default_factory=get_current_utc)
    completed_at: Optional[datetime] = None

    def is_overdue(self, now: datetime) -> bool:
        """Check if the task is past due and not completed."""
        return self.status != TaskStatus.COMPLETED and self.due_date < now


class TaskCreate(BaseModel):
    """Payload for adding a task by hand."""

    type: TaskType
    title: str = Field(..., min_length=1)
    description: str = ""
    due_date: datetime
    priority: Priority = Priority.MEDIUM
    related_case_id: Optional[str] = None
    estimated_time: int = Field(15, ge=0)


class PerformanceAlert(BaseModel):
    """A threshold breach recorded against a veterinarian."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=generate_id)
    type: AlertType
    severity: AlertSeverity
    message: str
    metric: str
    current_value: float
    expected_value: float
    action_items: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=get_current_utc)
    resolved_at: Optional[datetime] = None
    resolution_note: Optional[str] = None

    @property
    def is_open(self) -> bool:
        """Check if the alert has not been resolved."""
        return self.resolved_at is None


class WorkflowState(BaseModel):
    """Workflow state document, one per veterinarian."""

    model_config = ConfigDict(from_attributes=True)

    veterinarian_id: str
    current_cases: List[ActiveCase] = Field(default_factory=list)
    pending_cases: List[PendingCase] = Field(default_factory=list)
    schedule_entries: List[ScheduleEntry] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)
    tasks: List[WorkflowTask] = Field(default_factory=list)
    performance_alerts: List[PerformanceAlert] = Field(default_factory=list)

    def find_case(self, case_id: str) -> Optional[ActiveCase]:
        """Return the current case with ``case_id``, if any."""
        return next((c for c in self.current_cases if c.case_id == case_id), None)

    def find_task(self, task_id: str) -> Optional[WorkflowTask]:
        """Return the task with ``task_id``, if any."""
        return next((t for t in self.tasks if t.id == task_id), None)

    def open_alert(self, alert_type: AlertType) -> Optional[PerformanceAlert]:
        """Return the unresolved alert of ``alert_type``, if any."""
        return next(
            (
                alert
                for alert in self.performance_alerts
                if alert.type == alert_type and alert.is_open
            ),
            None,
        )

    def cases_on(self, day) -> List[ActiveCase]:
        """Current cases scheduled on the calendar date ``day``."""
        return [c for c in self.current_cases if c.scheduled_time.date() == day]

    @property
    def open_tasks(self) -> List[WorkflowTask]:
        """Tasks that have not been completed."""
        return [t for t in self.tasks if t.status != TaskStatus.COMPLETED]

    @property
    def unread_notifications(self) -> List[Notification]:
        """Notifications that have not been read."""
        return [n for n in self.notifications if not n.is_read]
