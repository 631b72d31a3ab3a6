"""
Execution Repositories

Typed, key-only access to the four execution entity families inside one
store transaction. No repository ever runs a query: the coordinator's read set
is exactly the keys it names.
"""

from collections.abc import Callable
from typing import Generic

from ...shared.base import Entity
from ...shared.exceptions import NotFoundError
from ..entities import Activity, ExecutionOperation, ExecutionSheet, ParcelAssignment
from ..value_objects.keys import EntityKey
from .store import EntityT, StoreTransaction


class KeyedRepository(Generic[EntityT]):
    """Repository over one entity family of a store transaction."""

    entity_type: type[EntityT]
    label: str

    def __init__(
        self,
        transaction: StoreTransaction,
        on_save: Callable[[Entity], None] | None = None,
    ):
        self._transaction = transaction
        self._on_save = on_save

    def find(self, key: EntityKey) -> EntityT | None:
        """Retrieve an entity by key, or None if absent."""
        return self._transaction.get(self.entity_type, key)

    def get(self, key: EntityKey) -> EntityT:
        """
        Retrieve an entity by key.

        Raises:
            NotFoundError: If the key is absent
        """
        entity = self.find(key)
        if entity is None:
            raise NotFoundError(self.label, str(key))
        return entity

    def get_many(self, keys: list[EntityKey]) -> list[EntityT]:
        return [self.get(key) for key in keys]

    def exists(self, key: EntityKey) -> bool:
        return self.find(key) is not None

    def save(self, entity: EntityT) -> EntityT:
        """
        Buffer the entity's current state in the transaction.

        Raises:
            BusinessRuleViolation: If the entity breaks its own invariants
        """
        entity.validate_rules()
        if self._on_save is not None:
            self._on_save(entity)
        self._transaction.put(entity)
        return entity

    add = save


class SheetRepository(KeyedRepository[ExecutionSheet]):
    entity_type = ExecutionSheet
    label = "Execution sheet"


class OperationRepository(KeyedRepository[ExecutionOperation]):
    entity_type = ExecutionOperation
    label = "Operation"


class ParcelRepository(KeyedRepository[ParcelAssignment]):
    entity_type = ParcelAssignment
    label = "Parcel"


class ActivityRepository(KeyedRepository[Activity]):
    entity_type = Activity
    label = "Activity"
