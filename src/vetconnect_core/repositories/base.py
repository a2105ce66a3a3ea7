"""
Persistence port for veterinarian aggregates.

Adapters store the profile, workflow state and onboarding progress of one
veterinarian as a single versioned unit, together with the case ownership
claims that guard against double assignment.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from ..schemas.aggregate import VeterinarianAggregate


class AggregateRepository(ABC):
    """Abstract storage for veterinarian aggregates."""

    @abstractmethod
    async def load(self, veterinarian_id: str) -> Optional[VeterinarianAggregate]:
        """
        Load the aggregate of a veterinarian.

        Args:
            veterinarian_id: Veterinarian to load

        Returns:
            A detached copy of the stored aggregate, or None if unknown
        """

    @abstractmethod
    async def save(
        self,
        aggregate: VeterinarianAggregate,
        expected_version: int,
        claims: Iterable[str] = (),
        releases: Iterable[str] = (),
    ) -> VeterinarianAggregate:
        """
        Atomically write an aggregate and its case ownership changes.

        An ``expected_version`` of 0 inserts a new aggregate. Either every
        change is written or none is.

        Args:
            aggregate: Aggregate to write
            expected_version: Version the caller read before mutating
            claims: Case ids to claim for this veterinarian
            releases: Case ids this veterinarian no longer holds

        Returns:
            The aggregate carrying its new version

        Raises:
            ConcurrencyException: If the stored version differs
            CaseConflictException: If a claimed case already has an owner
        """

    @abstractmethod
    async def list_active(self) -> List[VeterinarianAggregate]:
        """Snapshots of every aggregate whose profile is active."""

    @abstractmethod
    async def list_all(self) -> List[VeterinarianAggregate]:
        """Snapshots of every stored aggregate, ordered by veterinarian id."""

    @abstractmethod
    async def get_case_owner(self, case_id: str) -> Optional[str]:
        """
        Return the veterinarian recorded as owner of a case.

        Released claims keep their owner: a case id is never handed to a
        second veterinarian.
        """

    async def exists(self, veterinarian_id: str) -> bool:
        """Check if a veterinarian aggregate is stored."""
        return await self.load(veterinarian_id) is not None

    async def close(self) -> None:
        """Release any resources held by the adapter."""
