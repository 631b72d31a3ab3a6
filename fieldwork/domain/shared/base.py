"""Base classes for domain entities, value objects and events."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .exceptions import BusinessRuleViolation


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValueObject(BaseModel):
    """Base class for value objects (immutable, defined by their values)."""

    model_config = ConfigDict(frozen=True)


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for domain events, published after the transaction commits."""

    aggregate_key: str
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utcnow)

    @property
    def event_type(self) -> str:
        return type(self).__name__


class Entity(BaseModel, ABC):
    """
    Base class for entities (have identity, can change over time).

    Identity is a structured key rather than a surrogate id, so two copies of
    the same record loaded in different transactions compare equal. Pending
    domain events live in a private attribute and are never persisted.
    """

    model_config = ConfigDict(validate_assignment=True)

    kind: ClassVar[str]

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None

    _domain_events: list[DomainEvent] = PrivateAttr(default_factory=list)

    @property
    @abstractmethod
    def key(self) -> ValueObject:
        """Structured key addressing this entity in the store."""

    def __eq__(self, other: Any) -> bool:
        """Entities are equal if they have the same key and type."""
        if not isinstance(other, self.__class__):
            return False
        return self.key == other.key

    def __hash__(self) -> int:
        return hash((self.kind, self.key))

    def mark_updated(self, at: datetime | None = None) -> None:
        """Mark the entity as updated."""
        self.updated_at = at or utcnow()

    @abstractmethod
    def is_valid(self) -> bool:
        """Validate business rules for this entity."""

    def validate_rules(self) -> None:
        """Validate the entity and raise exception if invalid."""
        if not self.is_valid():
            raise BusinessRuleViolation(
                f"{self.kind.upper()}_INVALID",
                f"{self.kind} {self.key} is invalid",
            )

    def add_domain_event(self, event: DomainEvent) -> None:
        """Add a domain event to be published."""
        self._domain_events.append(event)

    def clear_domain_events(self) -> None:
        """Clear all domain events (typically after publishing)."""
        self._domain_events.clear()

    def get_domain_events(self) -> list[DomainEvent]:
        """Get all pending domain events."""
        return self._domain_events.copy()
