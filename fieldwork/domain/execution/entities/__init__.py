"""Execution domain entities."""

from .activity import Activity
from .execution_sheet import ExecutionSheet
from .operation import FULL_PERCENT, ExecutionOperation
from .parcel_assignment import GPS_PATH_SEPARATOR, ParcelAssignment

__all__ = [
    "Activity",
    "ExecutionOperation",
    "ExecutionSheet",
    "FULL_PERCENT",
    "GPS_PATH_SEPARATOR",
    "ParcelAssignment",
]
