"""
Veterinarian profile store.

Profiles are created in ``pending_verification`` with onboarding already
started and an empty workflow. They change only through the explicit
operations below and are never deleted, only deactivated.
"""

import logging
from datetime import date
from typing import List, Optional, Union

from ..exceptions import InvalidTransitionException, ValidationException
from ..models.veterinarian import VeterinarianStatus
from ..schemas.aggregate import VeterinarianAggregate, parse_payload
from ..schemas.veterinarian import (
    Availability,
    Preferences,
    VeterinarianCreate,
    VeterinarianProfile,
    VeterinarianUpdate,
)
from .transaction import AggregateService

logger = logging.getLogger(__name__)


class ProfileStore(AggregateService):
    """Creates, reads and updates veterinarian profiles."""

    async def create(
        self, payload: Union[VeterinarianCreate, dict]
    ) -> VeterinarianProfile:
        """
        Register a veterinarian.

        Args:
            payload: Registration data

        Returns:
            The stored profile

        Raises:
            ValidationException: If the payload is invalid
        """
        data = parse_payload(VeterinarianCreate, payload)
        now = self.clock()
        profile = VeterinarianProfile(
            personal_info=data.personal_info,
            professional_info=data.professional_info,
            specializations=data.specializations,
            availability=data.availability or Availability(),
            preferences=data.preferences or Preferences(),
            status=VeterinarianStatus.PENDING_VERIFICATION,
            created_at=now,
            updated_at=now,
        )
        aggregate = VeterinarianAggregate.new(profile)

        async with self.locks.get(profile.id):
            saved = await self.repository.save(aggregate, expected_version=0)

        logger.info(
            f"Registered veterinarian {profile.id} ({profile.personal_info.full_name})"
        )
        return saved.profile

    async def get(self, veterinarian_id: str) -> VeterinarianProfile:
        """
        Get a veterinarian profile.

        Raises:
            NotFoundException: If the veterinarian does not exist
        """
        aggregate = await self.load_aggregate(veterinarian_id)
        return aggregate.profile

    async def update(
        self, veterinarian_id: str, payload: Union[VeterinarianUpdate, dict]
    ) -> VeterinarianProfile:
        """
        Apply an explicit profile update; fields left out are unchanged.

        Raises:
            ValidationException: If the payload is invalid or empty
            NotFoundException: If the veterinarian does not exist
        """
        data = parse_payload(VeterinarianUpdate, payload)
        changes = data.changes()
        if not changes:
            raise ValidationException("Profile update contains no changes")

        async with self.transaction(veterinarian_id) as tx:
            profile = tx.aggregate.profile
            for name, value in changes.items():
                setattr(profile, name, value)
            profile.updated_at = self.clock()

        logger.info(
            f"Updated veterinarian {veterinarian_id}: {', '.join(sorted(changes))}"
        )
        return tx.aggregate.profile

    async def set_status(
        self, veterinarian_id: str, status: Union[VeterinarianStatus, str]
    ) -> VeterinarianProfile:
        """
        Change a profile's status.

        Deactivation is final; a deactivated profile keeps its history but
        cannot be moved to another status.

        Raises:
            ValidationException: If the status is unknown
            InvalidTransitionException: If the profile is deactivated
            NotFoundException: If the veterinarian does not exist
        """
        try:
            new_status = VeterinarianStatus(status)
        except ValueError as e:
            raise ValidationException(
                f"Unknown veterinarian status: {status}", field="status", value=status
            ) from e

        async with self.transaction(veterinarian_id) as tx:
            profile = tx.aggregate.profile
            current = profile.status
            if current == VeterinarianStatus.DEACTIVATED and new_status != current:
                raise InvalidTransitionException(
                    f"Veterinarian {veterinarian_id} is deactivated",
                    entity=veterinarian_id,
                    current_state=current.value,
                    requested_state=new_status.value,
                )
            profile.status = new_status
            profile.updated_at = self.clock()

        if current != new_status:
            logger.info(
                f"Veterinarian {veterinarian_id} status changed: "
                f"{current.value} -> {new_status.value}"
            )
        return tx.aggregate.profile

    async def deactivate(self, veterinarian_id: str) -> VeterinarianProfile:
        """Deactivate a veterinarian; the profile is retained."""
        return await self.set_status(veterinarian_id, VeterinarianStatus.DEACTIVATED)

    async def list_profiles(
        self, status: Optional[VeterinarianStatus] = None
    ) -> List[VeterinarianProfile]:
        """List profiles, optionally filtered by status."""
        aggregates = await self.repository.list_all()
        return [
            aggregate.profile
            for aggregate in aggregates
            if status is None or aggregate.profile.status == status
        ]

    async def list_by_specialty(self, topic: str) -> List[VeterinarianProfile]:
        """Active veterinarians with an exact specialization match."""
        if not topic or not topic.strip():
            raise ValidationException("Specialty is required", field="specialty")
        aggregates = await self.repository.list_active()
        return [
            aggregate.profile
            for aggregate in aggregates
            if aggregate.profile.has_specialty(topic)
        ]

    async def list_available(
        self, day: Optional[date] = None
    ) -> List[VeterinarianProfile]:
        """Active veterinarians with an open slot on ``day`` (today by default)."""
        day = day or self.clock().date()
        aggregates = await self.repository.list_active()
        return [
            aggregate.profile
            for aggregate in aggregates
            if aggregate.profile.availability.is_available_on(day)
        ]

    async def exists(self, veterinarian_id: str) -> bool:
        """Check if a veterinarian is registered."""
        return await self.repository.exists(veterinarian_id)
