"""
Unit of Work implementation for execution workflow transactions.

The Unit of Work opens one store transaction, hands out key-only
repositories over it and gathers the domain events raised by every entity it
saves. Events become available to the caller only once the transaction
committed.
"""

from types import TracebackType

from ...domain.execution.repositories.execution_repositories import (
    ActivityRepository,
    OperationRepository,
    ParcelRepository,
    SheetRepository,
)
from ...domain.execution.repositories.store import StoreTransaction, TransactionalStore
from ...domain.shared.base import DomainEvent, Entity
from ...domain.shared.exceptions import TransactionClosedError


class ExecutionUnitOfWork:
    """
    Transaction boundary of one workflow operation attempt.

    Used as a context manager: a clean exit commits, an exception rolls back
    and propagates.
    """

    sheets: SheetRepository
    operations: OperationRepository
    parcels: ParcelRepository
    activities: ActivityRepository

    def __init__(self, store: TransactionalStore):
        self._store = store
        self._transaction: StoreTransaction | None = None
        self._pending_events: list[DomainEvent] = []
        self.committed = False

    def __enter__(self) -> "ExecutionUnitOfWork":
        self._transaction = self._store.begin()
        self._pending_events = []
        self.committed = False

        self.sheets = SheetRepository(self._transaction, self._collect_events)
        self.operations = OperationRepository(self._transaction, self._collect_events)
        self.parcels = ParcelRepository(self._transaction, self._collect_events)
        self.activities = ActivityRepository(self._transaction, self._collect_events)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.rollback()
            return

        try:
            self.commit()
        except Exception:
            self.rollback()
            raise

    def commit(self) -> None:
        """
        Commit the current transaction.

        Raises:
            ConcurrentModificationError: If a concurrent writer won
        """
        transaction = self._require_transaction()
        if not transaction.is_active:
            return
        transaction.commit()
        self.committed = True

    def rollback(self) -> None:
        """Discard the attempt, including the events it raised."""
        if self._transaction is not None:
            self._transaction.rollback()
        self._pending_events = []

    @property
    def events(self) -> list[DomainEvent]:
        """Events raised by the committed attempt, in the order they were saved."""
        if not self.committed:
            return []
        return list(self._pending_events)

    def _collect_events(self, entity: Entity) -> None:
        self._pending_events.extend(entity.get_domain_events())
        entity.clear_domain_events()

    def _require_transaction(self) -> StoreTransaction:
        if self._transaction is None:
            raise TransactionClosedError("Unit of work was not entered")
        return self._transaction
