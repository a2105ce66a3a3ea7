"""
Tests for aggregate transactions and the in-memory adapter.
"""

import asyncio

import pytest

from conftest import NOW, registration_payload
from vetconnect_core.exceptions import (
    CaseConflictException,
    ConcurrencyException,
    NotFoundException,
)
from vetconnect_core.models.workflow import NotificationType
from vetconnect_core.schemas import (
    Notification,
    VeterinarianAggregate,
    VeterinarianCreate,
    VeterinarianProfile,
)
from vetconnect_core.services import AggregateLocks, AggregateService


def _aggregate() -> VeterinarianAggregate:
    data = VeterinarianCreate.model_validate(registration_payload())
    profile = VeterinarianProfile(
        personal_info=data.personal_info,
        professional_info=data.professional_info,
        created_at=NOW,
    )
    return VeterinarianAggregate.new(profile)


def _notification() -> Notification:
    return Notification(
        type=NotificationType.SYSTEM_ALERT, title="Test", message="Test message"
    )


class TestInMemoryRepository:
    """Test cases for the in-memory adapter."""

    @pytest.mark.asyncio
    async def test_returns_detached_copies(self, repository):
        """Test mutating a loaded aggregate does not change the store."""
        saved = await repository.save(_aggregate(), expected_version=0)

        loaded = await repository.load(saved.veterinarian_id)
        loaded.profile.personal_info.first_name = "Changed"

        reloaded = await repository.load(saved.veterinarian_id)
        assert reloaded.profile.personal_info.first_name == "Jane"

    @pytest.mark.asyncio
    async def test_version_check(self, repository):
        """Test saves must name the stored version."""
        saved = await repository.save(_aggregate(), expected_version=0)

        with pytest.raises(ConcurrencyException):
            await repository.save(saved, expected_version=0)
        with pytest.raises(ConcurrencyException):
            await repository.save(saved, expected_version=5)

        assert (await repository.save(saved, expected_version=1)).version == 2

    @pytest.mark.asyncio
    async def test_conflicting_claim_writes_nothing(self, repository):
        """Test a rejected claim leaves the aggregate untouched."""
        first = await repository.save(_aggregate(), expected_version=0)
        second = await repository.save(_aggregate(), expected_version=0)
        await repository.save(first, 1, claims=["case-001"])

        with pytest.raises(CaseConflictException):
            await repository.save(second, 1, claims=["case-002", "case-001"])

        assert (await repository.load(second.veterinarian_id)).version == 1
        assert await repository.get_case_owner("case-002") is None
        assert await repository.get_case_owner("case-001") == first.veterinarian_id


class TestAggregateTransaction:
    """Test cases for the read-modify-write transaction."""

    @pytest.mark.asyncio
    async def test_commit_saves_and_notifies(
        self, repository, dispatcher, recording_channel
    ):
        """Test a clean block saves once and then delivers notifications."""
        saved = await repository.save(_aggregate(), expected_version=0)
        service = AggregateService(repository, dispatcher=dispatcher)
        notification = _notification()

        async with service.transaction(saved.veterinarian_id) as tx:
            tx.aggregate.workflow.notifications.append(notification)
            tx.notify(notification)
        await dispatcher.drain()

        assert tx.committed
        stored = await repository.load(saved.veterinarian_id)
        assert stored.version == 2
        assert stored.workflow.notifications == [notification]
        assert recording_channel.sent == [(saved.veterinarian_id, notification)]

    @pytest.mark.asyncio
    async def test_exception_discards_changes(
        self, repository, dispatcher, recording_channel
    ):
        """Test a failing block writes nothing and sends nothing."""
        saved = await repository.save(_aggregate(), expected_version=0)
        service = AggregateService(repository, dispatcher=dispatcher)

        with pytest.raises(RuntimeError):
            async with service.transaction(saved.veterinarian_id) as tx:
                tx.aggregate.profile.personal_info.first_name = "Changed"
                tx.notify(_notification())
                raise RuntimeError("abort")
        await dispatcher.drain()

        stored = await repository.load(saved.veterinarian_id)
        assert stored.version == 1
        assert stored.profile.personal_info.first_name == "Jane"
        assert recording_channel.sent == []
        assert not service.locks.get(saved.veterinarian_id).locked()

    @pytest.mark.asyncio
    async def test_unknown_veterinarian_releases_lock(self, repository):
        """Test opening a transaction on a missing aggregate."""
        service = AggregateService(repository)

        with pytest.raises(NotFoundException):
            async with service.transaction("missing"):
                pass

        assert not service.locks.get("missing").locked()

    @pytest.mark.asyncio
    async def test_concurrent_transactions_serialize(self, repository):
        """Test concurrent writers on one aggregate never lose an update."""
        saved = await repository.save(_aggregate(), expected_version=0)
        service = AggregateService(repository)

        async def bump():
            async with service.transaction(saved.veterinarian_id) as tx:
                metrics = tx.aggregate.profile.performance
                current = metrics.students_supported
                await asyncio.sleep(0)
                metrics.students_supported = current + 1

        await asyncio.gather(*(bump() for _ in range(10)))

        stored = await repository.load(saved.veterinarian_id)
        assert stored.profile.performance.students_supported == 10
        assert stored.version == 11

    @pytest.mark.asyncio
    async def test_write_outside_lock_is_detected(self, repository):
        """Test the version check catches writers that bypass the lock."""
        saved = await repository.save(_aggregate(), expected_version=0)
        service = AggregateService(repository)

        with pytest.raises(ConcurrencyException):
            async with service.transaction(saved.veterinarian_id):
                await repository.save(saved, expected_version=1)

    def test_locks_are_per_veterinarian(self):
        """Test the registry hands out one lock per veterinarian."""
        locks = AggregateLocks()

        assert locks.get("vet-1") is locks.get("vet-1")
        assert locks.get("vet-1") is not locks.get("vet-2")
        assert len(locks) == 2

    def test_services_share_an_empty_registry(self, repository):
        """Test an empty registry passed in is used, not replaced."""
        locks = AggregateLocks()

        service = AggregateService(repository, locks=locks)

        assert service.locks is locks
