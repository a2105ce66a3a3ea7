"""
Persistence port and adapters for veterinarian aggregates.
"""

from .base import AggregateRepository
from .memory import InMemoryAggregateRepository
from .sql import SqlAlchemyAggregateRepository

__all__ = [
    "AggregateRepository",
    "InMemoryAggregateRepository",
    "SqlAlchemyAggregateRepository",
]
