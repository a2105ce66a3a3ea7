"""
Services implementing case routing, onboarding, workflow and performance.
"""

from .matching import (
    CaseMatchingEngine,
    current_load,
    is_eligible,
    rank_candidates,
    score_candidate,
)
from .notifications import (
    LoggingNotificationChannel,
    NotificationChannel,
    NotificationDispatcher,
    WebhookNotificationChannel,
)
from .onboarding import OnboardingStateMachine
from .performance import (
    PerformanceMonitor,
    evaluate_alerts,
    incremental_mean,
    record_consultation_completed,
)
from .platform import VetConnectPlatform, build_dispatcher
from .profile_store import ProfileStore
from .transaction import AggregateLocks, AggregateService, AggregateTransaction
from .verification import IdentityVerifier, SimulatedIdentityVerifier
from .workflow import WorkflowManager, case_notification

__all__ = [
    # Facade
    "VetConnectPlatform",
    "build_dispatcher",
    # Components
    "ProfileStore",
    "OnboardingStateMachine",
    "CaseMatchingEngine",
    "WorkflowManager",
    "PerformanceMonitor",
    # Transactions
    "AggregateLocks",
    "AggregateService",
    "AggregateTransaction",
    # Matching functions
    "current_load",
    "is_eligible",
    "score_candidate",
    "rank_candidates",
    # Performance functions
    "incremental_mean",
    "evaluate_alerts",
    "record_consultation_completed",
    "case_notification",
    # Ports and adapters
    "NotificationChannel",
    "LoggingNotificationChannel",
    "WebhookNotificationChannel",
    "NotificationDispatcher",
    "IdentityVerifier",
    "SimulatedIdentityVerifier",
]
