"""
SQLModel database models for the execution store.

Execution entities are stored as versioned JSON documents addressed by
(kind, key). The version column carries the optimistic concurrency check.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, Index
from sqlmodel import Column, Field, SQLModel

from ...domain.shared.base import utcnow


class EntityRecord(SQLModel, table=True):
    """One stored execution entity."""

    __tablename__ = "entity_records"

    kind: str = Field(primary_key=True, max_length=64)
    key: str = Field(primary_key=True, max_length=512)
    version: int = Field(default=1)
    payload: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    __table_args__ = (
        CheckConstraint("version >= 1", name="ck_entity_records_version"),
        Index("idx_entity_records_kind", "kind"),
    )
