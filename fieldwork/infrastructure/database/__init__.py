"""Transactional store implementations."""

from .memory_store import InMemoryTransaction, InMemoryTransactionalStore
from .sqlmodel_store import SqlModelTransaction, SqlModelTransactionalStore, build_engine
from .unit_of_work import ExecutionUnitOfWork

__all__ = [
    "ExecutionUnitOfWork",
    "InMemoryTransaction",
    "InMemoryTransactionalStore",
    "SqlModelTransaction",
    "SqlModelTransactionalStore",
    "build_engine",
]
