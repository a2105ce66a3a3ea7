"""
Tests for the SQLAlchemy persistence adapter.

These run against a temporary SQLite database through aiosqlite; the same
adapter runs on PostgreSQL through asyncpg.
"""

import pytest
from sqlalchemy import select

from conftest import NOW, case_payload, complete_case, registration_payload
from vetconnect_core.exceptions import CaseConflictException, ConcurrencyException
from vetconnect_core.models import CaseAssignmentRecord, VeterinarianRecord
from vetconnect_core.models.veterinarian import VeterinarianStatus
from vetconnect_core.repositories import SqlAlchemyAggregateRepository
from vetconnect_core.schemas import (
    VeterinarianAggregate,
    VeterinarianCreate,
    VeterinarianProfile,
)
from vetconnect_core.services import VetConnectPlatform
from vetconnect_core.utils.config import VetConnectSettings

pytestmark = pytest.mark.integration


def _new_aggregate(email: str = "jane.doe@example.com", **profile_fields):
    data = VeterinarianCreate.model_validate(registration_payload(email=email))
    profile = VeterinarianProfile(
        personal_info=data.personal_info,
        professional_info=data.professional_info,
        specializations=data.specializations,
        created_at=NOW,
        updated_at=NOW,
        **profile_fields,
    )
    return VeterinarianAggregate.new(profile)


class TestSqlAggregateRepository:
    """Test cases for loading and saving aggregates."""

    @pytest.mark.asyncio
    async def test_insert_and_load(self, sql_repository):
        """Test an aggregate survives a round trip through the tables."""
        aggregate = _new_aggregate()

        saved = await sql_repository.save(aggregate, expected_version=0)
        loaded = await sql_repository.load(aggregate.veterinarian_id)

        assert saved.version == 1
        assert loaded == saved
        assert await sql_repository.exists(aggregate.veterinarian_id)

    @pytest.mark.asyncio
    async def test_load_missing(self, sql_repository):
        """Test loading an unknown veterinarian returns None."""
        assert await sql_repository.load("missing") is None
        assert not await sql_repository.exists("missing")

    @pytest.mark.asyncio
    async def test_update_increments_version(self, sql_repository, session_manager):
        """Test updates bump the version and refresh the lookup columns."""
        saved = await sql_repository.save(_new_aggregate(), expected_version=0)
        saved.profile.status = VeterinarianStatus.ACTIVE

        updated = await sql_repository.save(saved, expected_version=1)

        assert updated.version == 2
        async with session_manager.get_session() as session:
            record = await session.get(VeterinarianRecord, saved.veterinarian_id)
            assert record.version == 2
            assert record.status == VeterinarianStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_stale_version_rejected(self, sql_repository):
        """Test a write based on an old version is rejected."""
        saved = await sql_repository.save(_new_aggregate(), expected_version=0)
        await sql_repository.save(saved, expected_version=1)

        saved.profile.status = VeterinarianStatus.SUSPENDED
        with pytest.raises(ConcurrencyException):
            await sql_repository.save(saved, expected_version=1)

        loaded = await sql_repository.load(saved.veterinarian_id)
        assert loaded.version == 2
        assert loaded.profile.status == VeterinarianStatus.PENDING_VERIFICATION

    @pytest.mark.asyncio
    async def test_duplicate_insert_rejected(self, sql_repository):
        """Test inserting an existing aggregate is a version conflict."""
        aggregate = _new_aggregate()
        await sql_repository.save(aggregate, expected_version=0)

        with pytest.raises(ConcurrencyException):
            await sql_repository.save(aggregate, expected_version=0)

    @pytest.mark.asyncio
    async def test_list_active(self, sql_repository):
        """Test listing filters on status and orders by id."""
        active = _new_aggregate("a@example.com", status=VeterinarianStatus.ACTIVE)
        pending = _new_aggregate("b@example.com")
        await sql_repository.save(active, expected_version=0)
        await sql_repository.save(pending, expected_version=0)

        listed_active = await sql_repository.list_active()
        listed_all = await sql_repository.list_all()

        assert [a.veterinarian_id for a in listed_active] == [active.veterinarian_id]
        assert [a.veterinarian_id for a in listed_all] == sorted(
            [active.veterinarian_id, pending.veterinarian_id]
        )


class TestSqlCaseClaims:
    """Test cases for case ownership rows."""

    @pytest.mark.asyncio
    async def test_claim_and_release(self, sql_repository, session_manager):
        """Test released claims keep their owner."""
        saved = await sql_repository.save(_new_aggregate(), expected_version=0)
        vet_id = saved.veterinarian_id

        saved = await sql_repository.save(saved, 1, claims=["case-001"])
        assert await sql_repository.get_case_owner("case-001") == vet_id

        await sql_repository.save(saved, 2, releases=["case-001"])

        assert await sql_repository.get_case_owner("case-001") == vet_id
        async with session_manager.get_session() as session:
            claim = await session.get(CaseAssignmentRecord, "case-001")
            assert claim.released_at is not None

    @pytest.mark.asyncio
    async def test_conflicting_claim_rolls_back(self, sql_repository):
        """Test a claimed case cannot be claimed again and nothing is written."""
        first = await sql_repository.save(
            _new_aggregate("a@example.com"), expected_version=0
        )
        second = await sql_repository.save(
            _new_aggregate("b@example.com"), expected_version=0
        )
        await sql_repository.save(first, 1, claims=["case-001"])

        second.profile.status = VeterinarianStatus.ACTIVE
        with pytest.raises(CaseConflictException) as exc_info:
            await sql_repository.save(second, 1, claims=["case-001"])

        assert exc_info.value.owner_id == first.veterinarian_id
        loaded = await sql_repository.load(second.veterinarian_id)
        assert loaded.version == 1
        assert loaded.profile.status == VeterinarianStatus.PENDING_VERIFICATION

    @pytest.mark.asyncio
    async def test_unknown_case_has_no_owner(self, sql_repository):
        """Test unclaimed cases have no owner."""
        assert await sql_repository.get_case_owner("case-404") is None


class TestSqlPlatform:
    """End-to-end flow on the SQL adapter."""

    @pytest.mark.asyncio
    async def test_assign_and_complete(self, sql_repository, dispatcher, clock):
        """Test the workflow runs unchanged on the SQL adapter."""
        platform = VetConnectPlatform(
            repository=sql_repository, dispatcher=dispatcher, clock=clock
        )
        profile = await platform.register_veterinarian(registration_payload())
        await platform.profiles.set_status(profile.id, "active")

        result = await platform.find_veterinarians(
            {"specialty": "cattle_medicine", "scheduled_time": NOW}
        )
        await platform.assign_case(result.best.veterinarian_id, case_payload())
        await complete_case(platform, profile.id, "case-001")
        await platform.dispatcher.drain()

        aggregate = await sql_repository.load(profile.id)
        assert aggregate.workflow.current_cases == []
        assert aggregate.profile.performance.total_consultations == 1
        assert len(aggregate.workflow.tasks) == 1
        with pytest.raises(CaseConflictException):
            await platform.assign_case(profile.id, case_payload())

    @pytest.mark.asyncio
    async def test_from_settings(self, tmp_path):
        """Test building a platform on a database from settings."""
        settings = VetConnectSettings(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'platform.db'}"
        )

        async with await VetConnectPlatform.from_settings(
            settings, create_tables=True
        ) as platform:
            profile = await platform.register_veterinarian(registration_payload())
            assert isinstance(platform.repository, SqlAlchemyAggregateRepository)
            assert await platform.profiles.exists(profile.id)

            async with platform.repository.session_manager.get_session() as session:
                result = await session.execute(select(VeterinarianRecord.id))
                assert result.scalars().all() == [profile.id]
