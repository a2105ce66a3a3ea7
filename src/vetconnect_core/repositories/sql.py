"""
SQLAlchemy persistence adapter.

Each aggregate spans three rows (``veterinarians``,
``veterinarian_workflows`` and ``veterinarian_onboarding``) written in one
transaction. The version column of ``veterinarians`` is checked in the
``UPDATE`` itself, and case claims are rows in ``case_assignments`` whose
primary key rejects a second owner even across processes.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.session import SessionManager
from ..exceptions import (
    CaseConflictException,
    ConcurrencyException,
    PersistenceException,
)
from ..models.onboarding import OnboardingRecord
from ..models.veterinarian import VeterinarianRecord, VeterinarianStatus
from ..models.workflow import CaseAssignmentRecord, WorkflowRecord
from ..schemas.aggregate import VeterinarianAggregate
from ..utils.datetime_utils import get_current_utc
from .base import AggregateRepository

logger = logging.getLogger(__name__)


def _to_aggregate(
    record: VeterinarianRecord,
    workflow: Optional[WorkflowRecord],
    onboarding: Optional[OnboardingRecord],
) -> VeterinarianAggregate:
    """Rebuild an aggregate from its rows."""
    return VeterinarianAggregate.model_validate(
        {
            "profile": record.profile,
            "workflow": (
                workflow.state
                if workflow is not None
                else {"veterinarian_id": record.id}
            ),
            "onboarding": onboarding.progress if onboarding is not None else None,
            "version": record.version,
        }
    )


class SqlAlchemyAggregateRepository(AggregateRepository):
    """Aggregate storage backed by an async SQLAlchemy engine."""

    def __init__(self, session_manager: SessionManager):
        """
        Initialize the adapter.

        Args:
            session_manager: Session manager bound to the target database
        """
        self.session_manager = session_manager

    async def load(self, veterinarian_id: str) -> Optional[VeterinarianAggregate]:
        try:
            async with self.session_manager.get_session() as session:
                record = await session.get(VeterinarianRecord, veterinarian_id)
                if record is None:
                    return None
                workflow = await session.get(WorkflowRecord, veterinarian_id)
                onboarding = await session.get(OnboardingRecord, veterinarian_id)
                return _to_aggregate(record, workflow, onboarding)
        except SQLAlchemyError as e:
            raise PersistenceException(
                f"Failed to load veterinarian {veterinarian_id}", original_error=e
            ) from e

    async def save(
        self,
        aggregate: VeterinarianAggregate,
        expected_version: int,
        claims: Iterable[str] = (),
        releases: Iterable[str] = (),
    ) -> VeterinarianAggregate:
        vet_id = aggregate.veterinarian_id
        new_version = expected_version + 1
        documents = aggregate.model_dump(mode="json")

        try:
            async with self.session_manager.get_transaction() as session:
                if expected_version == 0:
                    await self._insert(session, aggregate, documents)
                else:
                    await self._update(session, aggregate, documents, expected_version)

                await self._claim_cases(session, vet_id, list(claims))

                releases = list(releases)
                if releases:
                    await session.execute(
                        update(CaseAssignmentRecord)
                        .where(
                            CaseAssignmentRecord.case_id.in_(releases),
                            CaseAssignmentRecord.veterinarian_id == vet_id,
                        )
                        .values(released_at=get_current_utc())
                    )
        except SQLAlchemyError as e:
            logger.error(f"Failed to save veterinarian {vet_id}: {e}")
            raise PersistenceException(
                f"Failed to save veterinarian {vet_id}", original_error=e
            ) from e

        logger.debug(f"Saved veterinarian {vet_id} at version {new_version}")
        return aggregate.model_copy(update={"version": new_version})

    async def _insert(
        self, session: AsyncSession, aggregate: VeterinarianAggregate, documents: dict
    ) -> None:
        vet_id = aggregate.veterinarian_id
        session.add(
            VeterinarianRecord(
                id=vet_id,
                email=aggregate.profile.personal_info.email,
                status=aggregate.profile.status,
                profile=documents["profile"],
                version=1,
            )
        )
        try:
            # Parent row first so the foreign keys below resolve
            await session.flush()
        except IntegrityError as e:
            raise ConcurrencyException(
                vet_id, 0, message=f"Veterinarian {vet_id} already exists"
            ) from e

        session.add(WorkflowRecord(veterinarian_id=vet_id, state=documents["workflow"]))
        if aggregate.onboarding is not None:
            session.add(
                OnboardingRecord(
                    veterinarian_id=vet_id,
                    current_step=aggregate.onboarding.current_step,
                    progress=documents["onboarding"],
                    completed_at=aggregate.onboarding.completed_at,
                    archived_at=aggregate.onboarding.archived_at,
                )
            )
        await session.flush()

    async def _update(
        self,
        session: AsyncSession,
        aggregate: VeterinarianAggregate,
        documents: dict,
        expected_version: int,
    ) -> None:
        vet_id = aggregate.veterinarian_id
        result = await session.execute(
            update(VeterinarianRecord)
            .where(
                VeterinarianRecord.id == vet_id,
                VeterinarianRecord.version == expected_version,
            )
            .values(
                email=aggregate.profile.personal_info.email,
                status=aggregate.profile.status,
                profile=documents["profile"],
                version=expected_version + 1,
            )
        )
        if result.rowcount != 1:
            logger.warning(
                f"Rejected write for veterinarian {vet_id}: "
                f"version {expected_version} is stale"
            )
            raise ConcurrencyException(vet_id, expected_version)

        await session.merge(
            WorkflowRecord(veterinarian_id=vet_id, state=documents["workflow"])
        )
        if aggregate.onboarding is not None:
            await session.merge(
                OnboardingRecord(
                    veterinarian_id=vet_id,
                    current_step=aggregate.onboarding.current_step,
                    progress=documents["onboarding"],
                    completed_at=aggregate.onboarding.completed_at,
                    archived_at=aggregate.onboarding.archived_at,
                )
            )

    async def _claim_cases(
        self, session: AsyncSession, vet_id: str, claims: List[str]
    ) -> None:
        for case_id in claims:
            existing = await session.get(CaseAssignmentRecord, case_id)
            if existing is not None:
                raise CaseConflictException(case_id, existing.veterinarian_id)

            session.add(CaseAssignmentRecord(case_id=case_id, veterinarian_id=vet_id))
            try:
                await session.flush()
            except IntegrityError as e:
                # Claimed by another process between the read and the insert
                raise CaseConflictException(case_id) from e

    async def list_active(self) -> List[VeterinarianAggregate]:
        return await self._list(VeterinarianStatus.ACTIVE)

    async def list_all(self) -> List[VeterinarianAggregate]:
        return await self._list()

    async def _list(
        self, status: Optional[VeterinarianStatus] = None
    ) -> List[VeterinarianAggregate]:
        stmt = (
            select(VeterinarianRecord, WorkflowRecord, OnboardingRecord)
            .outerjoin(
                WorkflowRecord,
                WorkflowRecord.veterinarian_id == VeterinarianRecord.id,
            )
            .outerjoin(
                OnboardingRecord,
                OnboardingRecord.veterinarian_id == VeterinarianRecord.id,
            )
            .order_by(VeterinarianRecord.id)
        )
        if status is not None:
            stmt = stmt.where(VeterinarianRecord.status == status)

        try:
            async with self.session_manager.get_session() as session:
                result = await session.execute(stmt)
                return [
                    _to_aggregate(record, workflow, onboarding)
                    for record, workflow, onboarding in result.all()
                ]
        except SQLAlchemyError as e:
            raise PersistenceException(
                "Failed to list veterinarians", original_error=e
            ) from e

    async def get_case_owner(self, case_id: str) -> Optional[str]:
        async with self.session_manager.get_session() as session:
            claim = await session.get(CaseAssignmentRecord, case_id)
            return claim.veterinarian_id if claim is not None else None

    async def exists(self, veterinarian_id: str) -> bool:
        async with self.session_manager.get_session() as session:
            result = await session.execute(
                select(VeterinarianRecord.id).where(
                    VeterinarianRecord.id == veterinarian_id
                )
            )
            return result.scalar_one_or_none() is not None

    async def close(self) -> None:
        await self.session_manager.close()
