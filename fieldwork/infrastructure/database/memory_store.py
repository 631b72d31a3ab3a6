"""
In-process transactional store.

Optimistic concurrency control over a dict of versioned JSON payloads. A
transaction remembers the version of every key it read or wrote; commit
succeeds only if none of those versions moved, which makes committed
transactions serializable.
"""

import copy
import threading
from typing import Any

from ...core.observability import get_logger
from ...domain.execution.repositories.store import (
    EntityT,
    StoreTransaction,
    TransactionalStore,
)
from ...domain.execution.value_objects.keys import EntityKey
from ...domain.shared.base import Entity
from ...domain.shared.exceptions import (
    ConcurrentModificationError,
    TransactionClosedError,
)

logger = get_logger(__name__)

RecordId = tuple[str, str]

# Version of a key that was never written
ABSENT_VERSION = 0


class InMemoryTransactionalStore(TransactionalStore):
    """Thread-safe versioned record map."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[RecordId, tuple[int, dict[str, Any]]] = {}
        self.commit_count = 0
        self.conflict_count = 0

    def begin(self) -> "InMemoryTransaction":
        return InMemoryTransaction(self)

    def read(self, record_id: RecordId) -> tuple[int, dict[str, Any] | None]:
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return ABSENT_VERSION, None
            version, payload = record
            return version, copy.deepcopy(payload)

    def version_of(self, kind: str, key: EntityKey) -> int:
        with self._lock:
            record = self._records.get((kind, key.storage_id))
            return record[0] if record else ABSENT_VERSION

    def count(self, kind: str) -> int:
        with self._lock:
            return sum(1 for record_kind, _ in self._records if record_kind == kind)

    def apply(
        self,
        read_versions: dict[RecordId, int],
        writes: dict[RecordId, dict[str, Any]],
    ) -> None:
        """
        Validate the read set and apply the writes atomically.

        Raises:
            ConcurrentModificationError: On the first key whose version moved
        """
        with self._lock:
            for record_id, expected in read_versions.items():
                record = self._records.get(record_id)
                current = record[0] if record else ABSENT_VERSION
                if current != expected:
                    self.conflict_count += 1
                    kind, key = record_id
                    raise ConcurrentModificationError(kind, key)

            for record_id, payload in writes.items():
                version = read_versions[record_id] + 1
                self._records[record_id] = (version, copy.deepcopy(payload))
            self.commit_count += 1


class InMemoryTransaction(StoreTransaction):
    """Transaction against an ``InMemoryTransactionalStore``."""

    def __init__(self, store: InMemoryTransactionalStore):
        self._store = store
        self._read_versions: dict[RecordId, int] = {}
        self._snapshots: dict[RecordId, dict[str, Any] | None] = {}
        self._writes: dict[RecordId, dict[str, Any]] = {}
        self._active = True

    @property
    def is_active(self) -> bool:
        return self._active

    def get(self, entity_type: type[EntityT], key: EntityKey) -> EntityT | None:
        self._check_active()
        record_id = (entity_type.kind, key.storage_id)

        if record_id in self._writes:
            payload = self._writes[record_id]
        else:
            payload = self._snapshot(record_id)

        if payload is None:
            return None
        return entity_type.model_validate(copy.deepcopy(payload))

    def put(self, entity: Entity) -> None:
        self._check_active()
        record_id = (entity.kind, entity.key.storage_id)
        # Blind writes are version checked too
        self._snapshot(record_id)
        self._writes[record_id] = entity.model_dump(mode="json")

    def commit(self) -> None:
        self._check_active()
        try:
            # Read-only transactions are validated too, so views see one snapshot
            self._store.apply(self._read_versions, self._writes)
            logger.debug(
                "Transaction committed",
                reads=len(self._read_versions),
                writes=len(self._writes),
            )
        finally:
            self._active = False

    def rollback(self) -> None:
        self._writes.clear()
        self._active = False

    def _snapshot(self, record_id: RecordId) -> dict[str, Any] | None:
        if record_id not in self._read_versions:
            version, payload = self._store.read(record_id)
            self._read_versions[record_id] = version
            self._snapshots[record_id] = payload
        return self._snapshots[record_id]

    def _check_active(self) -> None:
        if not self._active:
            raise TransactionClosedError("Transaction is no longer active")
