"""
Pytest configuration and fixtures for vetconnect-core tests.

This module provides common fixtures for all tests in the vetconnect-core
package: a controllable clock, in-memory and SQLite-backed repositories,
a notification channel that records deliveries, and factories for
registration payloads and case requests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

from vetconnect_core.database.connection import create_engine
from vetconnect_core.database.session import SessionManager
from vetconnect_core.repositories import (
    InMemoryAggregateRepository,
    SqlAlchemyAggregateRepository,
)
from vetconnect_core.schemas.workflow import Notification
from vetconnect_core.services import (
    NotificationChannel,
    NotificationDispatcher,
    VetConnectPlatform,
)
from vetconnect_core.utils.config import VetConnectSettings

# Monday 09:00 UTC; the default schedule is Monday to Friday 08:00-17:00
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock returning a fixed time that tests can move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingChannel(NotificationChannel):
    """Channel that keeps every delivered notification."""

    name = "recording"

    def __init__(self) -> None:
        self.sent: List[Tuple[str, Notification]] = []

    async def send(self, veterinarian_id: str, notification: Notification) -> None:
        self.sent.append((veterinarian_id, notification))


def registration_payload(
    email: str = "jane.doe@example.com",
    first_name: str = "Jane",
    last_name: str = "Doe",
    specialties: Optional[List[str]] = None,
    **overrides: Any,
) -> Dict[str, Any]:
    """Build a valid registration payload."""
    payload: Dict[str, Any] = {
        "personal_info": {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "phone": "+1-555-0100",
        },
        "professional_info": {
            "clinic_name": "Prairie Large Animal Clinic",
            "clinic_type": "large_animal",
            "primary_license": {"license_number": "VET123456", "state": "NE"},
            "education": [
                {
                    "institution": "Iowa State University",
                    "degree": "Doctor of Veterinary Medicine",
                    "graduation_year": 2012,
                }
            ],
        },
        "specializations": [
            {"topic": topic, "experience_level": "expert", "years_experience": 10}
            for topic in (specialties if specialties is not None else ["cattle_medicine"])
        ],
    }
    payload.update(overrides)
    return payload


def case_payload(
    case_id: str = "case-001",
    specialty: str = "cattle_medicine",
    scheduled_time: datetime = NOW + timedelta(hours=2),
    **overrides: Any,
) -> Dict[str, Any]:
    """Build a valid case assignment payload."""
    payload: Dict[str, Any] = {
        "case_id": case_id,
        "student_id": "student-42",
        "animal_id": "cow-7",
        "specialty": specialty,
        "urgency_level": "routine",
        "consultation_type": "video",
        "estimated_duration": 30,
        "scheduled_time": scheduled_time,
        "educational_objectives": [],
        "student_level": "beginner",
    }
    payload.update(overrides)
    return payload


async def register_active(
    platform: VetConnectPlatform, **kwargs: Any
) -> str:
    """Register a veterinarian, activate them and return their id."""
    profile = await platform.register_veterinarian(registration_payload(**kwargs))
    await platform.profiles.set_status(profile.id, "active")
    return profile.id


async def complete_case(
    platform: VetConnectPlatform, veterinarian_id: str, case_id: str, **kwargs: Any
):
    """Start a scheduled case and complete it."""
    await platform.update_case_status(veterinarian_id, case_id, "in_progress")
    return await platform.update_case_status(
        veterinarian_id, case_id, "completed", **kwargs
    )


@pytest.fixture
def clock() -> FixedClock:
    """Controllable clock starting at ``NOW``."""
    return FixedClock()


@pytest.fixture
def settings() -> VetConnectSettings:
    """Default settings."""
    return VetConnectSettings()


@pytest.fixture
def repository() -> InMemoryAggregateRepository:
    """Empty in-memory repository."""
    return InMemoryAggregateRepository()


@pytest.fixture
def recording_channel() -> RecordingChannel:
    """Channel capturing delivered notifications."""
    return RecordingChannel()


@pytest.fixture
def dispatcher(recording_channel: RecordingChannel) -> NotificationDispatcher:
    """Dispatcher delivering only to the recording channel."""
    return NotificationDispatcher([recording_channel])


@pytest_asyncio.fixture
async def platform(
    repository: InMemoryAggregateRepository,
    settings: VetConnectSettings,
    dispatcher: NotificationDispatcher,
    clock: FixedClock,
) -> AsyncGenerator[VetConnectPlatform, None]:
    """Platform over the in-memory repository with a fixed clock."""
    vetconnect = VetConnectPlatform(
        repository=repository,
        settings=settings,
        dispatcher=dispatcher,
        clock=clock,
    )
    yield vetconnect
    await vetconnect.close()


@pytest_asyncio.fixture
async def session_manager(tmp_path) -> AsyncGenerator[SessionManager, None]:
    """Session manager on a fresh SQLite file with all tables created."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'vetconnect.db'}")
    manager = SessionManager(engine)
    await manager.initialize_database()
    yield manager
    await manager.close()


@pytest.fixture
def sql_repository(session_manager: SessionManager) -> SqlAlchemyAggregateRepository:
    """SQLAlchemy repository on the SQLite test database."""
    return SqlAlchemyAggregateRepository(session_manager)
