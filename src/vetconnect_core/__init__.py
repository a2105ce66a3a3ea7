"""
VetConnect Core Package

Case routing and veterinarian workflow core for an agricultural-veterinary
telemedicine platform.

The package assigns cases to qualified veterinarians and keeps each
veterinarian's state consistent while doing so. It includes:

- An onboarding state machine driving veterinarians through a fixed
  sequence of verification and training steps
- A case matching engine ranking active veterinarians for a case
- A workflow manager for the case lifecycle, notifications and follow-up tasks
- A performance monitor keeping running metrics and threshold alerts
- In-memory and async SQLAlchemy persistence adapters with per-veterinarian
  locking and optimistic version checks
- Pydantic schemas for every domain document
- Migration support through Alembic integration

Quick Start:
    >>> from vetconnect_core import VetConnectPlatform
    >>> platform = VetConnectPlatform()
    >>> profile = await platform.register_veterinarian(registration)
    >>> result = await platform.find_veterinarians(
    ...     {"specialty": "cattle_medicine", "urgency_level": "routine"}
    ... )
    >>> await platform.assign_case(result.best.veterinarian_id, case)

Requirements:
    - Python 3.11+
    - SQLAlchemy 2.0+
    - Pydantic 2.5+
"""

__version__ = "0.1.0"
__author__ = "VetConnect Platform Team"
__license__ = "MIT"

from . import database, exceptions, models, repositories, schemas, services, utils
from .exceptions import (
    CaseConflictException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
    VetConnectException,
)
from .repositories import InMemoryAggregateRepository, SqlAlchemyAggregateRepository
from .services import VetConnectPlatform
from .utils import VetConnectSettings

__all__ = [
    # Version and metadata
    "__version__",
    "__author__",
    "__license__",
    # Core modules
    "database",
    "exceptions",
    "models",
    "repositories",
    "schemas",
    "services",
    "utils",
    # Convenience imports
    "VetConnectPlatform",
    "VetConnectSettings",
    "InMemoryAggregateRepository",
    "SqlAlchemyAggregateRepository",
    "VetConnectException",
    "NotFoundException",
    "ValidationException",
    "InvalidTransitionException",
    "CaseConflictException",
]
