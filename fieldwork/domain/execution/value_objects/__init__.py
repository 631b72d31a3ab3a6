"""Value objects for field execution."""

from .enums import ParcelEvent, ParcelStatus, UserRole
from .geometry import Coordinate, Geometry
from .identity import Identity
from .keys import ActivityKey, EntityKey, OperationKey, ParcelKey, SheetKey
from .worksheet import PlannedOperation, WorksheetPlan

__all__ = [
    "ActivityKey",
    "Coordinate",
    "EntityKey",
    "Geometry",
    "Identity",
    "OperationKey",
    "ParcelEvent",
    "ParcelKey",
    "ParcelStatus",
    "PlannedOperation",
    "SheetKey",
    "UserRole",
    "WorksheetPlan",
]
