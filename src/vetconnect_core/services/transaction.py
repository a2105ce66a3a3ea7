"""
Per-veterinarian aggregate transactions.

Every mutating operation runs inside an ``AggregateTransaction``: the
veterinarian's lock is held while the aggregate is loaded, mutated and saved
with an optimistic version check. If the block raises, nothing is written.
Notifications queued during the block are handed to the dispatcher only
after the save succeeded.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..exceptions import NotFoundException
from ..repositories.base import AggregateRepository
from ..schemas.aggregate import VeterinarianAggregate
from ..schemas.workflow import Notification
from ..utils.config import VetConnectSettings
from ..utils.datetime_utils import get_current_utc
from .notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class AggregateLocks:
    """Registry handing out one ``asyncio.Lock`` per veterinarian."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, veterinarian_id: str) -> asyncio.Lock:
        """Return the lock guarding a veterinarian's aggregate."""
        lock = self._locks.get(veterinarian_id)
        if lock is None:
            lock = self._locks[veterinarian_id] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._locks)


class AggregateTransaction:
    """
    Async context manager for a read-modify-write of one aggregate.

    Example:
        async with AggregateTransaction(repository, locks, vet_id) as tx:
            tx.aggregate.workflow.tasks.append(task)
            tx.notify(notification)
    """

    def __init__(
        self,
        repository: AggregateRepository,
        locks: AggregateLocks,
        veterinarian_id: str,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.repository = repository
        self.locks = locks
        self.veterinarian_id = veterinarian_id
        self.dispatcher = dispatcher

        self.aggregate: Optional[VeterinarianAggregate] = None
        self.committed = False
        self._expected_version = 0
        self._claims: List[str] = []
        self._releases: List[str] = []
        self._outbox: List[Notification] = []
        self._lock: Optional[asyncio.Lock] = None

    def claim(self, case_id: str) -> None:
        """Claim ownership of a case when the transaction commits."""
        self._claims.append(case_id)

    def release(self, case_id: str) -> None:
        """Release a case claim when the transaction commits."""
        self._releases.append(case_id)

    def notify(self, notification: Notification) -> None:
        """Queue a notification for delivery after commit."""
        self._outbox.append(notification)

    async def __aenter__(self) -> "AggregateTransaction":
        self._lock = self.locks.get(self.veterinarian_id)
        await self._lock.acquire()
        try:
            loaded = await self.repository.load(self.veterinarian_id)
        except BaseException:
            self._lock.release()
            raise

        if loaded is None:
            self._lock.release()
            raise NotFoundException(
                resource_type="veterinarian", resource_id=self.veterinarian_id
            )

        self._expected_version = loaded.version
        self.aggregate = loaded.model_copy(deep=True)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                self.aggregate = await self.repository.save(
                    self.aggregate,
                    self._expected_version,
                    claims=self._claims,
                    releases=self._releases,
                )
                self.committed = True
            else:
                logger.debug(
                    f"Discarding changes to veterinarian {self.veterinarian_id}: "
                    f"{exc_type.__name__}"
                )
        finally:
            self._lock.release()

        if self.committed and self.dispatcher is not None:
            for notification in self._outbox:
                self.dispatcher.dispatch(self.veterinarian_id, notification)
        return False


class AggregateService:
    """Base class for services that read and mutate veterinarian aggregates."""

    def __init__(
        self,
        repository: AggregateRepository,
        locks: Optional[AggregateLocks] = None,
        settings: Optional[VetConnectSettings] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize the service.

        Args:
            repository: Persistence port holding the aggregates
            locks: Lock registry shared by every service writing aggregates
            settings: Tunable parameters (defaults when omitted)
            dispatcher: Delivers notifications queued by transactions
            clock: Returns the current UTC time
        """
        self.repository = repository
        self.locks = locks if locks is not None else AggregateLocks()
        self.settings = settings or VetConnectSettings()
        self.dispatcher = dispatcher
        self.clock: Clock = clock or get_current_utc

    def transaction(self, veterinarian_id: str) -> AggregateTransaction:
        """Open a transaction over one veterinarian's aggregate."""
        return AggregateTransaction(
            self.repository, self.locks, veterinarian_id, self.dispatcher
        )

    async def load_aggregate(self, veterinarian_id: str) -> VeterinarianAggregate:
        """
        Read an aggregate without locking it.

        Raises:
            NotFoundException: If the veterinarian does not exist
        """
        aggregate = await self.repository.load(veterinarian_id)
        if aggregate is None:
            raise NotFoundException(
                resource_type="veterinarian", resource_id=veterinarian_id
            )
        return aggregate
