"""
Transactional Store Interface

Defines the contract of the key-addressable store the workflow engine runs
on: multi-key read-modify-write transactions with serializable semantics.
"""

from abc import ABC, abstractmethod
from typing import TypeVar

from ...shared.base import Entity
from ..value_objects.keys import EntityKey

EntityT = TypeVar("EntityT", bound=Entity)


class StoreTransaction(ABC):
    """
    One store transaction.

    Reads are repeatable and see the transaction's own writes. Writes are
    buffered and become visible to other transactions only on ``commit``.
    """

    @abstractmethod
    def get(self, entity_type: type[EntityT], key: EntityKey) -> EntityT | None:
        """
        Read an entity by key.

        Args:
            entity_type: Entity class, whose ``kind`` names the record family
            key: Structured key of the entity

        Returns:
            A private copy of the entity, or None if absent

        Raises:
            TransactionClosedError: If the transaction already ended
        """

    @abstractmethod
    def put(self, entity: Entity) -> None:
        """
        Buffer an insert or update of ``entity``.

        Raises:
            TransactionClosedError: If the transaction already ended
        """

    @abstractmethod
    def commit(self) -> None:
        """
        Apply every buffered write atomically.

        Raises:
            ConcurrentModificationError: If another transaction committed a
                change to any key this transaction read or wrote
        """

    @abstractmethod
    def rollback(self) -> None:
        """Discard buffered writes. Safe to call on an ended transaction."""

    @property
    @abstractmethod
    def is_active(self) -> bool:
        """Whether the transaction can still be used."""


class TransactionalStore(ABC):
    """Factory of store transactions."""

    @abstractmethod
    def begin(self) -> StoreTransaction:
        """Open a new transaction."""
