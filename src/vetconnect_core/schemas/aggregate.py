"""
Veterinarian aggregate schema.

The aggregate is the unit of consistency: the profile, workflow state and
onboarding progress of one veterinarian are loaded, mutated and saved
together under a single version number.
"""

from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import ValidationException, format_validation_errors
from .onboarding import OnboardingProgress
from .veterinarian import VeterinarianProfile
from .workflow import WorkflowState

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class VeterinarianAggregate(BaseModel):
    """Profile, workflow and onboarding state owned by one veterinarian."""

    model_config = ConfigDict(from_attributes=True)

    profile: VeterinarianProfile
    workflow: WorkflowState
    onboarding: Optional[OnboardingProgress] = None
    version: int = Field(0, ge=0, description="0 until first saved")

    @property
    def veterinarian_id(self) -> str:
        """Identifier shared by every part of the aggregate."""
        return self.profile.id

    @classmethod
    def new(cls, profile: VeterinarianProfile) -> "VeterinarianAggregate":
        """Build an unsaved aggregate with empty workflow and fresh onboarding."""
        return cls(
            profile=profile,
            workflow=WorkflowState(veterinarian_id=profile.id),
            onboarding=OnboardingProgress.start(profile.id, now=profile.created_at),
        )


def parse_payload(schema: Type[SchemaT], data: Any) -> SchemaT:
    """
    Validate caller input against a schema.

    Instances of the schema pass through unchanged; anything else is
    validated and pydantic errors are re-raised as ``ValidationException``.
    """
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        errors: Dict[str, Any] = format_validation_errors(e.errors())
        raise ValidationException(
            f"Invalid {schema.__name__} payload",
            validation_errors=errors,
        ) from e
