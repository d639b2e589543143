"""
Database Models Base

Shared SQLAlchemy base and common imports for all model modules.
"""

from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Text, JSON, Boolean,
    ForeignKey, Index, UniqueConstraint, Enum
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.dialects.postgresql import JSONB
import uuid

# Shared declarative base for all models
Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    """Generate a string primary key."""
    return str(uuid.uuid4())


__all__ = [
    'Base',
    'Column',
    'String',
    'Integer',
    'Float',
    'DateTime',
    'Text',
    'JSON',
    'JSONType',
    'Boolean',
    'ForeignKey',
    'Index',
    'UniqueConstraint',
    'Enum',
    'relationship',
    'datetime',
    'new_id',
]
