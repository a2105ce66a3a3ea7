"""
Case intake facade.

``VetConnectPlatform`` wires the components around one persistence adapter,
one lock registry and one notification dispatcher, and exposes the calls a
case intake service needs. The components stay reachable as attributes.

Example:
    async with await VetConnectPlatform.from_settings() as platform:
        profile = await platform.register_veterinarian(payload)
        result = await platform.find_veterinarians(requirements)
        await platform.assign_case(result.best.veterinarian_id, case)
"""

import logging
from typing import Optional, Union

from ..database.connection import check_connection, close_engine, create_engine
from ..database.session import SessionManager
from ..exceptions import PersistenceException
from ..models.workflow import CaseStatus
from ..repositories.base import AggregateRepository
from ..repositories.memory import InMemoryAggregateRepository
from ..repositories.sql import SqlAlchemyAggregateRepository
from ..schemas.matching import MatchResult
from ..schemas.veterinarian import VeterinarianCreate, VeterinarianProfile
from ..schemas.workflow import ActiveCase, CaseRequest, CaseRequirements
from ..utils.config import VetConnectSettings
from .matching import CaseMatchingEngine
from .notifications import (
    LoggingNotificationChannel,
    NotificationDispatcher,
    WebhookNotificationChannel,
)
from .onboarding import OnboardingStateMachine
from .performance import PerformanceMonitor
from .profile_store import ProfileStore
from .transaction import AggregateLocks, Clock
from .verification import IdentityVerifier
from .workflow import WorkflowManager

logger = logging.getLogger(__name__)


def build_dispatcher(settings: VetConnectSettings) -> NotificationDispatcher:
    """Create a dispatcher with the channels the settings enable."""
    dispatcher = NotificationDispatcher([LoggingNotificationChannel()])
    if settings.notification_webhook_url:
        dispatcher.add_channel(
            WebhookNotificationChannel(
                settings.notification_webhook_url,
                timeout=settings.notification_timeout,
            )
        )
    return dispatcher


class VetConnectPlatform:
    """Entry point bundling the case routing and workflow components."""

    def __init__(
        self,
        repository: Optional[AggregateRepository] = None,
        settings: Optional[VetConnectSettings] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        verifier: Optional[IdentityVerifier] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize the platform.

        Args:
            repository: Persistence adapter (in-memory when omitted)
            settings: Tunable parameters (defaults when omitted)
            dispatcher: Notification dispatcher (built from settings when omitted)
            verifier: Identity/verification port (simulated when omitted)
            clock: Returns the current UTC time
        """
        self.settings = settings or VetConnectSettings()
        self.repository = repository or InMemoryAggregateRepository()
        self.dispatcher = dispatcher or build_dispatcher(self.settings)
        self.locks = AggregateLocks()

        shared = {
            "locks": self.locks,
            "settings": self.settings,
            "dispatcher": self.dispatcher,
            "clock": clock,
        }
        self.profiles = ProfileStore(self.repository, **shared)
        self.onboarding = OnboardingStateMachine(
            self.repository, verifier=verifier, **shared
        )
        self.workflow = WorkflowManager(self.repository, **shared)
        self.performance = PerformanceMonitor(self.repository, **shared)
        self.matching = CaseMatchingEngine(self.repository, self.settings)

    @classmethod
    async def from_settings(
        cls,
        settings: Optional[VetConnectSettings] = None,
        create_tables: bool = False,
        **kwargs,
    ) -> "VetConnectPlatform":
        """
        Build a platform from settings, typically ``VetConnectSettings.from_env()``.

        Args:
            settings: Settings to use (loaded from the environment when omitted)
            create_tables: Create the database tables instead of relying on
                migrations; meant for SQLite and tests
            **kwargs: Passed through to the constructor

        Returns:
            A platform on the configured database, or in memory if none is set

        Raises:
            PersistenceException: If the configured database is unreachable
        """
        settings = settings or VetConnectSettings.from_env()
        repository: AggregateRepository
        if settings.database_url:
            engine = create_engine(settings.database_url)
            if not await check_connection(engine):
                await close_engine(engine)
                raise PersistenceException(
                    "Database is unreachable",
                    error_code="DATABASE_UNREACHABLE",
                )
            session_manager = SessionManager(engine)
            if create_tables:
                await session_manager.initialize_database()
            repository = SqlAlchemyAggregateRepository(session_manager)
            logger.info("Using SQLAlchemy aggregate repository")
        else:
            repository = InMemoryAggregateRepository()
            logger.info("No database configured, using in-memory repository")

        return cls(repository=repository, settings=settings, **kwargs)

    async def register_veterinarian(
        self, payload: Union[VeterinarianCreate, dict]
    ) -> VeterinarianProfile:
        """Register a veterinarian and start onboarding."""
        return await self.profiles.create(payload)

    async def find_veterinarians(
        self, requirements: Union[CaseRequirements, dict]
    ) -> MatchResult:
        """Rank veterinarians for a case."""
        return await self.matching.match(requirements)

    async def assign_case(
        self, veterinarian_id: str, case: Union[CaseRequest, dict]
    ) -> ActiveCase:
        """Assign a case to the chosen veterinarian."""
        return await self.workflow.assign(veterinarian_id, case)

    async def update_case_status(
        self,
        veterinarian_id: str,
        case_id: str,
        status: Union[CaseStatus, str],
        response_time_minutes: Optional[float] = None,
    ) -> ActiveCase:
        """Move a case forward in its lifecycle."""
        return await self.workflow.update_status(
            veterinarian_id, case_id, status, response_time_minutes
        )

    async def close(self) -> None:
        """Wait for pending notifications and release the repository."""
        await self.dispatcher.drain()
        await self.repository.close()

    async def __aenter__(self) -> "VetConnectPlatform":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
