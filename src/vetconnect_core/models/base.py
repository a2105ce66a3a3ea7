"""
Base model class for all SQLAlchemy models in the vetconnect-core package.

The persistence adapter stores each veterinarian aggregate as a handful of
rows whose bulk is JSON documents validated by the Pydantic schemas. This
module provides the declarative base and the audit columns shared by every
table.

Example:
    >>> from vetconnect_core.models.base import BaseModel
    >>> from sqlalchemy.orm import Mapped, mapped_column
    >>> from sqlalchemy import String

    >>> class MyRecord(BaseModel):
    ...     __tablename__ = "my_table"
    ...     id: Mapped[str] = mapped_column(String(64), primary_key=True)
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base declarative class for all SQLAlchemy models."""


class BaseModel(Base):
    """
    Abstract base model providing audit timestamps.

    Attributes:
        created_at (datetime): Timestamp when record was created (UTC)
        updated_at (datetime): Timestamp when record was last updated (UTC)

    Note:
        This is an abstract base class and cannot be instantiated directly.
        Concrete models define their own primary key, since aggregate rows are
        keyed by veterinarian or case identifiers rather than surrogate ids.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        """Return string representation of the model instance."""
        key = ", ".join(
            f"{column.name}={getattr(self, column.name)}"
            for column in self.__table__.primary_key.columns
        )
        return f"<{self.__class__.__name__}({key})>"

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model instance to dictionary representation.

        Datetime values are converted to ISO format strings and enum values
        to their string value; everything else is returned unchanged.
        """
        result: Dict[str, Any] = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                result[column.name] = value.isoformat()
            elif hasattr(value, "value") and not isinstance(value, (dict, list)):
                result[column.name] = value.value
            else:
                result[column.name] = value
        return result

    @classmethod
    def get_table_name(cls) -> str:
        """Get the database table name for this model."""
        return cls.__tablename__
