"""
In-memory persistence adapter.

Aggregates are kept as JSON documents so callers always receive detached
copies, the same way they would from a database.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import CaseConflictException, ConcurrencyException
from ..schemas.aggregate import VeterinarianAggregate
from ..utils.datetime_utils import get_current_utc
from .base import AggregateRepository

logger = logging.getLogger(__name__)


class InMemoryAggregateRepository(AggregateRepository):
    """Aggregate storage held in process memory."""

    def __init__(self) -> None:
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._claims: Dict[str, Dict[str, Any]] = {}

    async def load(self, veterinarian_id: str) -> Optional[VeterinarianAggregate]:
        document = self._documents.get(veterinarian_id)
        if document is None:
            return None
        return VeterinarianAggregate.model_validate(document)

    async def save(
        self,
        aggregate: VeterinarianAggregate,
        expected_version: int,
        claims: Iterable[str] = (),
        releases: Iterable[str] = (),
    ) -> VeterinarianAggregate:
        vet_id = aggregate.veterinarian_id
        claims = list(claims)
        releases = list(releases)

        stored = self._documents.get(vet_id)
        stored_version = stored["version"] if stored is not None else 0
        if stored_version != expected_version:
            logger.warning(
                f"Rejected write for veterinarian {vet_id}: "
                f"expected version {expected_version}, found {stored_version}"
            )
            raise ConcurrencyException(vet_id, expected_version)

        # Check every claim before touching any state
        for case_id in claims:
            existing = self._claims.get(case_id)
            if existing is not None:
                raise CaseConflictException(case_id, existing["veterinarian_id"])

        saved = aggregate.model_copy(update={"version": expected_version + 1})
        self._documents[vet_id] = saved.model_dump(mode="json")

        now = get_current_utc()
        for case_id in claims:
            self._claims[case_id] = {"veterinarian_id": vet_id, "released_at": None}
        for case_id in releases:
            claim = self._claims.get(case_id)
            if claim is not None and claim["veterinarian_id"] == vet_id:
                claim["released_at"] = now

        logger.debug(f"Saved veterinarian {vet_id} at version {saved.version}")
        return VeterinarianAggregate.model_validate(self._documents[vet_id])

    async def list_active(self) -> List[VeterinarianAggregate]:
        aggregates = await self.list_all()
        return [aggregate for aggregate in aggregates if aggregate.profile.is_active]

    async def list_all(self) -> List[VeterinarianAggregate]:
        return [
            VeterinarianAggregate.model_validate(self._documents[vet_id])
            for vet_id in sorted(self._documents)
        ]

    async def get_case_owner(self, case_id: str) -> Optional[str]:
        claim = self._claims.get(case_id)
        return claim["veterinarian_id"] if claim is not None else None

    async def exists(self, veterinarian_id: str) -> bool:
        return veterinarian_id in self._documents
