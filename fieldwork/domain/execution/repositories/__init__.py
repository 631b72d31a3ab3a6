"""Repository and collaborator interfaces for field execution."""

from .collaborators import (
    GeometryProvider,
    IdentityProvider,
    NotificationSink,
    WorksheetProvider,
)
from .execution_repositories import (
    ActivityRepository,
    KeyedRepository,
    OperationRepository,
    ParcelRepository,
    SheetRepository,
)
from .store import StoreTransaction, TransactionalStore

__all__ = [
    "ActivityRepository",
    "GeometryProvider",
    "IdentityProvider",
    "KeyedRepository",
    "NotificationSink",
    "OperationRepository",
    "ParcelRepository",
    "SheetRepository",
    "StoreTransaction",
    "TransactionalStore",
    "WorksheetProvider",
]
