"""
SQLModel-backed transactional store.

Reads run in short sessions and are remembered with the row version they
saw. Commit opens one database transaction: every written row is updated with
a version-guarded ``UPDATE ... WHERE version = ?`` (or inserted when it was
absent), then every row that was only read is re-checked with
``SELECT ... FOR UPDATE``. Any moved version aborts the whole commit. SQLite
reports a writer that lost the database lock as an operational error, which
is mapped to a conflict as well.
"""

import copy
from typing import Any

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from ...core.config import Settings, get_settings
from ...core.observability import get_logger
from ...domain.execution.repositories.store import (
    EntityT,
    StoreTransaction,
    TransactionalStore,
)
from ...domain.execution.value_objects.keys import EntityKey
from ...domain.shared.base import Entity, utcnow
from ...domain.shared.exceptions import (
    ConcurrentModificationError,
    RepositoryError,
    TransactionClosedError,
)
from .sqlmodel_entities import EntityRecord

logger = get_logger(__name__)

RecordId = tuple[str, str]

ABSENT_VERSION = 0


def build_engine(settings: Settings | None = None) -> Engine:
    """Create the engine described by the settings."""
    settings = settings or get_settings()
    connect_args: dict[str, Any] = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        # Sessions are opened from worker threads
        connect_args["check_same_thread"] = False
    return create_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        connect_args=connect_args,
    )


class SqlModelTransactionalStore(TransactionalStore):
    """Transactional store on top of a SQLAlchemy engine."""

    def __init__(self, engine: Engine | None = None):
        self.engine = engine or build_engine()

    def create_tables(self) -> None:
        SQLModel.metadata.create_all(self.engine, tables=[EntityRecord.__table__])

    def drop_tables(self) -> None:
        SQLModel.metadata.drop_all(self.engine, tables=[EntityRecord.__table__])

    def begin(self) -> "SqlModelTransaction":
        return SqlModelTransaction(self.engine)

    def version_of(self, kind: str, key: EntityKey) -> int:
        with Session(self.engine) as session:
            record = session.get(EntityRecord, (kind, key.storage_id))
            return record.version if record else ABSENT_VERSION

    def count(self, kind: str) -> int:
        with Session(self.engine) as session:
            return len(session.exec(select(EntityRecord.key).where(EntityRecord.kind == kind)).all())


class SqlModelTransaction(StoreTransaction):
    """Optimistic transaction validated against row versions at commit."""

    def __init__(self, engine: Engine):
        self._engine = engine
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
        self._snapshot(record_id)
        self._writes[record_id] = entity.model_dump(mode="json")

    def commit(self) -> None:
        self._check_active()
        try:
            with Session(self._engine) as session:
                with session.begin():
                    self._validate_and_write(session)
        except ConcurrentModificationError:
            raise
        except (IntegrityError, OperationalError) as e:
            # Lost a write race detected by the database itself
            logger.info("Store commit lost a write race", error=str(e))
            kind, key = next(iter(self._writes or self._read_versions), ("", ""))
            raise ConcurrentModificationError(kind, key) from e
        except SQLAlchemyError as e:
            raise RepositoryError(f"Failed to commit transaction: {str(e)}") from e
        finally:
            self._active = False

    def rollback(self) -> None:
        self._writes.clear()
        self._active = False

    def _validate_and_write(self, session: Session) -> None:
        now = utcnow()

        # Writes go first: a version-guarded UPDATE both validates the row and
        # takes its write lock until commit
        for record_id, payload in self._writes.items():
            kind, key = record_id
            expected = self._read_versions[record_id]
            if expected == ABSENT_VERSION:
                session.add(
                    EntityRecord(
                        kind=kind,
                        key=key,
                        version=1,
                        payload=payload,
                        created_at=now,
                        updated_at=now,
                    )
                )
                session.flush()
                continue

            result = session.connection().execute(
                update(EntityRecord)
                .where(
                    EntityRecord.kind == kind,
                    EntityRecord.key == key,
                    EntityRecord.version == expected,
                )
                .values(version=expected + 1, payload=payload, updated_at=now)
            )
            if result.rowcount != 1:
                raise ConcurrentModificationError(kind, key)

        for record_id, expected in self._read_versions.items():
            if record_id in self._writes:
                continue
            kind, key = record_id
            current = session.exec(
                select(EntityRecord.version)
                .where(EntityRecord.kind == kind, EntityRecord.key == key)
                .with_for_update()
            ).first()
            if (current or ABSENT_VERSION) != expected:
                raise ConcurrentModificationError(kind, key)

    def _snapshot(self, record_id: RecordId) -> dict[str, Any] | None:
        if record_id not in self._read_versions:
            with Session(self._engine) as session:
                record = session.get(EntityRecord, record_id)
                if record is None:
                    self._read_versions[record_id] = ABSENT_VERSION
                    self._snapshots[record_id] = None
                else:
                    self._read_versions[record_id] = record.version
                    self._snapshots[record_id] = copy.deepcopy(record.payload)
        return self._snapshots[record_id]

    def _check_active(self) -> None:
        if not self._active:
            raise TransactionClosedError("Transaction is no longer active")
