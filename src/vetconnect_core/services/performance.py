"""
Performance monitor.

Metrics are kept as running means instead of full histories. After every
update the alert thresholds are re-evaluated: a veterinarian has at most
one open alert per alert type, an open alert is resolved automatically once
its metric is back within the threshold, and a later breach raises a new
one. Evaluating alerts never changes the metrics.
"""

import logging
from datetime import datetime
from typing import List, Optional

from ..exceptions import NotFoundException, ValidationException
from ..models.workflow import (
    AlertSeverity,
    AlertType,
    NotificationType,
    Priority,
    TaskType,
    UrgencyLevel,
)
from ..schemas.aggregate import VeterinarianAggregate
from ..schemas.veterinarian import PerformanceMetrics
from ..schemas.workflow import (
    ActiveCase,
    Notification,
    PerformanceAlert,
    WorkflowTask,
)
from ..utils.datetime_utils import get_current_utc, hours_from
from .transaction import AggregateService, AggregateTransaction

logger = logging.getLogger(__name__)

RESPONSE_TIME_FACTOR = 1.5
SATISFACTION_THRESHOLD = 4.0
MIN_RATING = 1.0
MAX_RATING = 5.0

RESPONSE_TIME_ACTIONS = [
    "Review schedule and availability",
    "Consider adjusting response time commitment",
    "Optimize workflow processes",
]
SATISFACTION_ACTIONS = [
    "Review recent consultation feedback",
    "Schedule coaching session",
    "Update communication techniques",
]


def incremental_mean(old_mean: float, n: int, value: float) -> float:
    """
    Fold one more sample into a running mean.

    Args:
        old_mean: Mean of the first ``n - 1`` samples
        n: Sample count including ``value``
        value: The new sample
    """
    if n < 1:
        raise ValueError("Sample count must be at least 1")
    return ((old_mean * (n - 1)) + value) / n


def apply_response_time(metrics: PerformanceMetrics, minutes: float) -> None:
    """Add a response-time sample to the running average."""
    metrics.response_time_samples += 1
    metrics.average_response_time = incremental_mean(
        metrics.average_response_time, metrics.response_time_samples, minutes
    )


def apply_rating(metrics: PerformanceMetrics, rating: float) -> None:
    """Add a satisfaction rating to the running average."""
    metrics.rating_count += 1
    metrics.overall_rating = incremental_mean(
        metrics.overall_rating, metrics.rating_count, rating
    )


def record_consultation_completed(
    aggregate: VeterinarianAggregate,
    case: ActiveCase,
    response_time: Optional[float] = None,
    now: Optional[datetime] = None,
) -> List[PerformanceAlert]:
    """
    Update the metrics for a completed consultation.

    Returns:
        Alerts raised by the update
    """
    metrics = aggregate.profile.performance
    metrics.total_consultations += 1
    metrics.completion_rate = incremental_mean(
        metrics.completion_rate, metrics.total_consultations, 1.0
    )

    kind = case.consultation_type.value
    metrics.consultations_by_type[kind] = metrics.consultations_by_type.get(kind, 0) + 1
    if case.urgency_level == UrgencyLevel.EMERGENCY:
        metrics.emergency_consultations += 1
    elif case.urgency_level == UrgencyLevel.ROUTINE:
        metrics.routine_consultations += 1

    if response_time is not None:
        apply_response_time(metrics, response_time)

    logger.info(
        f"Veterinarian {aggregate.veterinarian_id} completed consultation "
        f"{case.case_id} ({metrics.total_consultations} total)"
    )
    return evaluate_alerts(aggregate, now)


def _response_time_alert(
    metrics: PerformanceMetrics, commitment: int, now: Optional[datetime]
) -> PerformanceAlert:
    alert = PerformanceAlert(
        type=AlertType.RESPONSE_TIME,
        severity=AlertSeverity.WARNING,
        message="Average response time exceeds commitment",
        metric="average_response_time",
        current_value=metrics.average_response_time,
        expected_value=float(commitment),
        action_items=list(RESPONSE_TIME_ACTIONS),
    )
    if now is not None:
        alert.created_at = now
    return alert


def _satisfaction_alert(
    metrics: PerformanceMetrics, now: Optional[datetime]
) -> PerformanceAlert:
    alert = PerformanceAlert(
        type=AlertType.SATISFACTION,
        severity=AlertSeverity.CRITICAL,
        message="Client satisfaction below threshold",
        metric="overall_rating",
        current_value=metrics.overall_rating,
        expected_value=SATISFACTION_THRESHOLD,
        action_items=list(SATISFACTION_ACTIONS),
    )
    if now is not None:
        alert.created_at = now
    return alert


def evaluate_alerts(
    aggregate: VeterinarianAggregate, now: Optional[datetime] = None
) -> List[PerformanceAlert]:
    """
    Raise or resolve alerts for the current metrics.

    A threshold is only checked once its metric has samples.

    Returns:
        Alerts raised by this evaluation
    """
    metrics = aggregate.profile.performance
    commitment = aggregate.profile.availability.response_time_commitment
    workflow = aggregate.workflow

    breaches = {}
    if metrics.response_time_samples > 0:
        breaches[AlertType.RESPONSE_TIME] = (
            metrics.average_response_time > commitment * RESPONSE_TIME_FACTOR
        )
    if metrics.rating_count > 0:
        breaches[AlertType.SATISFACTION] = (
            metrics.overall_rating < SATISFACTION_THRESHOLD
        )

    raised = []
    for alert_type, breached in breaches.items():
        open_alert = workflow.open_alert(alert_type)
        if breached and open_alert is None:
            if alert_type == AlertType.RESPONSE_TIME:
                alert = _response_time_alert(metrics, commitment, now)
            else:
                alert = _satisfaction_alert(metrics, now)
            workflow.performance_alerts.append(alert)
            raised.append(alert)
            logger.warning(
                f"Veterinarian {aggregate.veterinarian_id}: {alert.message} "
                f"({alert.metric}={alert.current_value:.2f})"
            )
        elif not breached and open_alert is not None:
            open_alert.resolved_at = now or get_current_utc()
            open_alert.resolution_note = "Metric returned within threshold"
            logger.info(
                f"Veterinarian {aggregate.veterinarian_id}: "
                f"{alert_type.value} alert resolved automatically"
            )

    return raised


def alert_notification(alert: PerformanceAlert) -> Notification:
    """Build the system notification announcing a new alert."""
    return Notification(
        type=NotificationType.SYSTEM_ALERT,
        title=f"Performance alert: {alert.type.value.replace('_', ' ')}",
        message=alert.message,
        created_at=alert.created_at,
        action_required=True,
        priority=(
            Priority.URGENT
            if alert.severity == AlertSeverity.CRITICAL
            else Priority.HIGH
        ),
    )


def queue_alert_notifications(
    tx: AggregateTransaction, alerts: List[PerformanceAlert]
) -> None:
    """Record and queue a notification for each newly raised alert."""
    for alert in alerts:
        notification = alert_notification(alert)
        tx.aggregate.workflow.notifications.append(notification)
        tx.notify(notification)


class PerformanceMonitor(AggregateService):
    """Records performance samples and keeps alerts up to date."""

    async def get_metrics(self, veterinarian_id: str) -> PerformanceMetrics:
        """Get a veterinarian's current metrics."""
        aggregate = await self.load_aggregate(veterinarian_id)
        return aggregate.profile.performance

    async def get_alerts(
        self, veterinarian_id: str, open_only: bool = False
    ) -> List[PerformanceAlert]:
        """List a veterinarian's alerts, oldest first."""
        aggregate = await self.load_aggregate(veterinarian_id)
        alerts = aggregate.workflow.performance_alerts
        return [a for a in alerts if a.is_open] if open_only else list(alerts)

    async def record_response_time(
        self, veterinarian_id: str, minutes: float
    ) -> PerformanceMetrics:
        """
        Record how long a veterinarian took to respond.

        Raises:
            ValidationException: If ``minutes`` is negative
        """
        if minutes < 0:
            raise ValidationException(
                "Response time cannot be negative", field="minutes", value=minutes
            )

        async with self.transaction(veterinarian_id) as tx:
            apply_response_time(tx.aggregate.profile.performance, minutes)
            alerts = evaluate_alerts(tx.aggregate, self.clock())
            queue_alert_notifications(tx, alerts)

        return tx.aggregate.profile.performance

    async def record_satisfaction(
        self, veterinarian_id: str, rating: float
    ) -> PerformanceMetrics:
        """
        Record a client satisfaction rating.

        Raises:
            ValidationException: If ``rating`` is outside 1 to 5
        """
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationException(
                f"Rating must be between {MIN_RATING:g} and {MAX_RATING:g}",
                field="rating",
                value=rating,
            )

        async with self.transaction(veterinarian_id) as tx:
            apply_rating(tx.aggregate.profile.performance, rating)
            alerts = evaluate_alerts(tx.aggregate, self.clock())
            queue_alert_notifications(tx, alerts)

        return tx.aggregate.profile.performance

    async def record_educational_outcome(
        self,
        veterinarian_id: str,
        student_id: str,
        case_id: str,
        objectives_achieved: List[str],
        skills_assessed: List[str],
        engagement: float,
    ) -> WorkflowTask:
        """
        Record what a student got out of a consultation.

        Updates the educational metrics and adds a task to document the
        outcome.

        Returns:
            The documentation task

        Raises:
            ValidationException: If ``engagement`` is negative
        """
        if engagement < 0:
            raise ValidationException(
                "Engagement cannot be negative", field="engagement", value=engagement
            )

        async with self.transaction(veterinarian_id) as tx:
            now = self.clock()
            metrics = tx.aggregate.profile.performance
            metrics.learning_objectives_achieved += len(objectives_achieved)
            metrics.students_supported += 1
            metrics.assessment_participation += len(skills_assessed)
            metrics.educational_outcome_success = incremental_mean(
                metrics.educational_outcome_success,
                metrics.students_supported,
                engagement,
            )

            task = WorkflowTask(
                type=TaskType.EDUCATIONAL,
                title="Document Educational Outcomes",
                description=(
                    "Complete educational assessment documentation for case "
                    f"{case_id} (student {student_id})"
                ),
                due_date=hours_from(now, self.settings.educational_outcome_due_hours),
                priority=Priority.MEDIUM,
                related_case_id=case_id,
                estimated_time=30,
                created_at=now,
            )
            tx.aggregate.workflow.tasks.append(task)

        logger.info(
            f"Veterinarian {veterinarian_id}: educational outcome recorded "
            f"for student {student_id} on case {case_id}"
        )
        return task

    async def resolve_alert(
        self, veterinarian_id: str, alert_id: str, note: Optional[str] = None
    ) -> PerformanceAlert:
        """
        Resolve an alert by hand; resolving a resolved alert changes nothing.

        Raises:
            NotFoundException: If the alert does not exist
        """
        async with self.transaction(veterinarian_id) as tx:
            alert = next(
                (
                    a
                    for a in tx.aggregate.workflow.performance_alerts
                    if a.id == alert_id
                ),
                None,
            )
            if alert is None:
                raise NotFoundException(resource_type="alert", resource_id=alert_id)
            if alert.is_open:
                alert.resolved_at = self.clock()
                alert.resolution_note = note or "Resolved manually"
                logger.info(
                    f"Veterinarian {veterinarian_id}: alert {alert_id} resolved"
                )

        return alert
