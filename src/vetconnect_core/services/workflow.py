"""
Workflow manager.

Owns the case lifecycle ``scheduled -> in_progress -> awaiting_documentation
-> completed`` (one step at a time; an in-progress case may skip
``awaiting_documentation``) together with the notifications, schedule
entries and follow-up tasks a case produces. Completing a case releases its
claim, creates the follow-up tasks and feeds the performance monitor in the
same aggregate transaction.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Union

from ..exceptions import (
    CaseConflictException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from ..models.veterinarian import VeterinarianStatus
from ..models.workflow import (
    CaseStatus,
    NotificationType,
    Priority,
    ScheduleEntryStatus,
    TaskStatus,
    TaskType,
    UrgencyLevel,
)
from ..schemas.aggregate import VeterinarianAggregate, parse_payload
from ..schemas.workflow import (
    ActiveCase,
    CaseRequest,
    Notification,
    PendingCase,
    ScheduleEntry,
    TaskCreate,
    WorkflowState,
    WorkflowTask,
)
from ..utils.datetime_utils import days_from, hours_from
from .performance import queue_alert_notifications, record_consultation_completed
from .transaction import AggregateService

logger = logging.getLogger(__name__)


def case_notification(case: ActiveCase, now: datetime) -> Notification:
    """Build the notification announcing a newly assigned case."""
    emergency = case.urgency_level == UrgencyLevel.EMERGENCY
    scheduled = case.scheduled_time.strftime("%Y-%m-%d %H:%M UTC")
    return Notification(
        type=NotificationType.URGENT_CASE if emergency else NotificationType.NEW_CASE,
        title=f"New {case.urgency_level.value} consultation assigned",
        message=(
            f"You have been assigned a {case.consultation_type.value} "
            f"consultation scheduled for {scheduled}"
        ),
        created_at=now,
        action_required=True,
        action_url=f"/consultation/{case.case_id}",
        priority=Priority.URGENT if emergency else Priority.MEDIUM,
    )


class WorkflowManager(AggregateService):
    """Assigns cases and tracks them until their follow-up work is done."""

    async def get_workflow(self, veterinarian_id: str) -> WorkflowState:
        """
        Get a veterinarian's workflow state.

        Raises:
            NotFoundException: If the veterinarian does not exist
        """
        aggregate = await self.load_aggregate(veterinarian_id)
        return aggregate.workflow

    async def offer_case(
        self, veterinarian_id: str, pending: Union[PendingCase, dict]
    ) -> PendingCase:
        """
        Offer a case to a veterinarian without assigning it.

        Offering the same case twice keeps the first offer.

        Raises:
            ValidationException: If the payload is invalid
            NotFoundException: If the veterinarian does not exist
            CaseConflictException: If the case already has an owner
        """
        pending = parse_payload(PendingCase, pending)

        owner = await self.repository.get_case_owner(pending.case_id)
        if owner is not None:
            logger.warning(
                f"Not offering case {pending.case_id}: "
                f"already assigned to veterinarian {owner}"
            )
            raise CaseConflictException(pending.case_id, owner)

        async with self.transaction(veterinarian_id) as tx:
            workflow = tx.aggregate.workflow
            existing = next(
                (p for p in workflow.pending_cases if p.case_id == pending.case_id),
                None,
            )
            if existing is None:
                workflow.pending_cases.append(pending)
                logger.info(
                    f"Offered case {pending.case_id} to veterinarian {veterinarian_id}"
                )

        return existing or pending

    async def assign(
        self, veterinarian_id: str, case: Union[CaseRequest, dict]
    ) -> ActiveCase:
        """
        Assign a case to a veterinarian.

        The case is claimed for this veterinarian, appended to the current
        cases as ``scheduled``, booked in the schedule and announced with a
        notification delivered after the assignment is saved.

        Raises:
            ValidationException: If the payload is invalid
            NotFoundException: If the veterinarian does not exist
            CaseConflictException: If the case already has an owner
            InvalidTransitionException: If the veterinarian is deactivated
        """
        request = parse_payload(CaseRequest, case)

        owner = await self.repository.get_case_owner(request.case_id)
        if owner is not None:
            logger.warning(
                f"Case {request.case_id} already assigned to veterinarian {owner}"
            )
            raise CaseConflictException(request.case_id, owner)

        async with self.transaction(veterinarian_id) as tx:
            now = self.clock()
            aggregate = tx.aggregate
            self._require_assignable(aggregate)
            workflow = aggregate.workflow

            active = ActiveCase.from_request(request, now)
            workflow.current_cases.append(active)
            workflow.pending_cases = [
                p for p in workflow.pending_cases if p.case_id != request.case_id
            ]
            workflow.schedule_entries.append(
                ScheduleEntry(
                    case_id=active.case_id,
                    start_time=active.scheduled_time,
                    end_time=active.scheduled_time
                    + timedelta(minutes=active.estimated_duration),
                )
            )
            notification = case_notification(active, now)
            workflow.notifications.append(notification)

            tx.claim(active.case_id)
            tx.notify(notification)

        logger.info(
            f"Assigned {active.urgency_level.value} case {active.case_id} "
            f"to veterinarian {veterinarian_id}"
        )
        return active

    async def update_status(
        self,
        veterinarian_id: str,
        case_id: str,
        new_status: Union[CaseStatus, str],
        response_time_minutes: Optional[float] = None,
    ) -> ActiveCase:
        """
        Move a case forward in its lifecycle.

        Completing a case removes it from the current cases, releases its
        claim, closes its schedule entry, creates a documentation task and,
        when the case had educational objectives, an educational follow-up
        task, then records the completed consultation.

        Raises:
            ValidationException: If the status is unknown or the response
                time is negative
            NotFoundException: If the veterinarian or case does not exist
            InvalidTransitionException: If the move skips or reverses a step
        """
        try:
            status = CaseStatus(new_status)
        except ValueError as e:
            raise ValidationException(
                f"Unknown case status: {new_status}", field="status", value=new_status
            ) from e
        if response_time_minutes is not None and response_time_minutes < 0:
            raise ValidationException(
                "Response time cannot be negative",
                field="response_time_minutes",
                value=response_time_minutes,
            )

        async with self.transaction(veterinarian_id) as tx:
            now = self.clock()
            workflow = tx.aggregate.workflow
            case = workflow.find_case(case_id)
            if case is None:
                raise NotFoundException(resource_type="case", resource_id=case_id)

            previous = case.status
            if not previous.can_transition_to(status):
                logger.warning(
                    f"Rejected case {case_id} transition "
                    f"{previous.value} -> {status.value}"
                )
                raise InvalidTransitionException(
                    f"Case {case_id} cannot move from {previous.value} "
                    f"to {status.value}",
                    entity=case_id,
                    current_state=previous.value,
                    requested_state=status.value,
                )

            case.status = status
            case.status_changed_at = now

            if status == CaseStatus.COMPLETED:
                self._complete_case(tx.aggregate, case, now)
                tx.release(case_id)
                alerts = record_consultation_completed(
                    tx.aggregate, case, response_time_minutes, now
                )
                queue_alert_notifications(tx, alerts)

        logger.info(
            f"Case {case_id} of veterinarian {veterinarian_id}: "
            f"{previous.value} -> {status.value}"
        )
        return case

    async def add_task(
        self, veterinarian_id: str, task: Union[TaskCreate, dict]
    ) -> WorkflowTask:
        """Append a task to a veterinarian's workflow."""
        data = parse_payload(TaskCreate, task)

        async with self.transaction(veterinarian_id) as tx:
            new_task = WorkflowTask(**data.model_dump(), created_at=self.clock())
            tx.aggregate.workflow.tasks.append(new_task)

        logger.info(
            f"Added {new_task.type.value} task {new_task.id} "
            f"for veterinarian {veterinarian_id}"
        )
        return new_task

    async def complete_task(self, veterinarian_id: str, task_id: str) -> WorkflowTask:
        """
        Mark a task completed; completing it again changes nothing.

        Raises:
            NotFoundException: If the task does not exist
        """
        async with self.transaction(veterinarian_id) as tx:
            task = tx.aggregate.workflow.find_task(task_id)
            if task is None:
                raise NotFoundException(resource_type="task", resource_id=task_id)
            if task.status != TaskStatus.COMPLETED:
                task.status = TaskStatus.COMPLETED
                task.completed_at = self.clock()
                logger.info(
                    f"Veterinarian {veterinarian_id} completed task {task_id}"
                )

        return task

    async def mark_notification_read(
        self, veterinarian_id: str, notification_id: str
    ) -> Notification:
        """
        Mark a notification read; marking it again changes nothing.

        Raises:
            NotFoundException: If the notification does not exist
        """
        async with self.transaction(veterinarian_id) as tx:
            notification = next(
                (
                    n
                    for n in tx.aggregate.workflow.notifications
                    if n.id == notification_id
                ),
                None,
            )
            if notification is None:
                raise NotFoundException(
                    resource_type="notification", resource_id=notification_id
                )
            if not notification.is_read:
                notification.read_at = self.clock()

        return notification

    async def list_overdue_tasks(
        self, veterinarian_id: str, now: Optional[datetime] = None
    ) -> List[WorkflowTask]:
        """Tasks past their due date that are not completed."""
        workflow = await self.get_workflow(veterinarian_id)
        now = now or self.clock()
        return [task for task in workflow.tasks if task.is_overdue(now)]

    @staticmethod
    def _require_assignable(aggregate: VeterinarianAggregate) -> None:
        status = aggregate.profile.status
        if status == VeterinarianStatus.DEACTIVATED:
            raise InvalidTransitionException(
                f"Veterinarian {aggregate.veterinarian_id} is deactivated",
                entity=aggregate.veterinarian_id,
                current_state=status.value,
            )

    def _complete_case(
        self, aggregate: VeterinarianAggregate, case: ActiveCase, now: datetime
    ) -> None:
        workflow = aggregate.workflow
        workflow.current_cases = [
            c for c in workflow.current_cases if c.case_id != case.case_id
        ]
        for entry in workflow.schedule_entries:
            if entry.case_id == case.case_id:
                entry.status = ScheduleEntryStatus.COMPLETED

        workflow.tasks.append(
            WorkflowTask(
                type=TaskType.DOCUMENTATION,
                title="Complete Case Documentation",
                description=(
                    f"Finalize documentation for {case.consultation_type.value} "
                    "consultation"
                ),
                due_date=hours_from(now, self.settings.documentation_due_hours),
                priority=Priority.HIGH,
                related_case_id=case.case_id,
                estimated_time=20,
                created_at=now,
            )
        )

        if case.educational_objectives:
            workflow.tasks.append(
                WorkflowTask(
                    type=TaskType.EDUCATIONAL_FOLLOW_UP,
                    title="Educational Follow-up",
                    description=(
                        "Follow up on student learning outcomes and provide "
                        "additional resources"
                    ),
                    due_date=days_from(now, self.settings.follow_up_due_days),
                    priority=Priority.MEDIUM,
                    related_case_id=case.case_id,
                    estimated_time=15,
                    created_at=now,
                )
            )
