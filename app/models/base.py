"""
Base configurations and mixins for database models.

This module provides the foundation for all database models in the WritersInn
backend: the declarative base with dict serialization, timestamp and UUID
primary-key mixins, and schema-qualification helpers that keep the models
portable between PostgreSQL (schema-qualified) and SQLite (unqualified).
"""

import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, Uuid, inspect
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql.functions import now as db_now

from app.config import settings


def utcnow() -> datetime:
    return datetime.now(UTC)


class CustomBase:
    """
    Custom base class for SQLAlchemy models with enhanced serialization.

    `to_dict` converts model instances to dictionaries, rendering UUIDs as
    strings, datetimes in ISO format and decimals as floats.
    """

    def to_dict(self) -> dict:
        d = {}
        if not self:
            return d
        for column in inspect(self).mapper.column_attrs:
            value = getattr(self, column.key)
            if isinstance(value, uuid.UUID):
                d[column.key] = str(value)
            elif isinstance(value, datetime):
                d[column.key] = value.isoformat()
            elif isinstance(value, Decimal):
                d[column.key] = float(value)
            else:
                d[column.key] = value
        return d


Base = declarative_base(cls=CustomBase)


class TimestampMixin:
    """
    Adds created_at and updated_at columns.

    Values are set in Python (UTC) so that time-window queries compare like
    with like on every backend; the server default covers rows inserted
    outside the ORM.
    """

    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=db_now(),
        nullable=False,
        comment="Timestamp when the record was created",
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=db_now(),
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp when the record was last updated",
    )


class UUIDMixin:
    """Adds a UUID4 primary key."""

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        index=True,
        comment="Primary key using UUID4 format",
    )


SCHEMA_NAME = settings.schema_name


def table_args(*args) -> tuple:
    """Build __table_args__, adding the schema only when one is configured."""
    if SCHEMA_NAME:
        return (*args, {"schema": SCHEMA_NAME})
    return args


def qualified(column_ref: str) -> str:
    """Schema-qualify a 'table.column' reference for ForeignKey targets."""
    if SCHEMA_NAME:
        return f"{SCHEMA_NAME}.{column_ref}"
    return column_ref


__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "SCHEMA_NAME",
    "table_args",
    "qualified",
    "utcnow",
]
