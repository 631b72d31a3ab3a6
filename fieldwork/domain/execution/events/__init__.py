"""
Domain Events Module

Exports all execution domain events.
"""

from ...shared.base import DomainEvent
from .domain_events import (
    ActivityInfoRecorded,
    ActivityStarted,
    ActivityStopped,
    ExecutionSheetCreated,
    OperationCompleted,
    OperationObservationAdded,
    OperationProgressed,
    ParcelAssigned,
    ParcelCompleted,
    SheetCompleted,
)

__all__ = [
    "DomainEvent",
    # Sheet events
    "ExecutionSheetCreated",
    "SheetCompleted",
    # Operation events
    "OperationProgressed",
    "OperationCompleted",
    "OperationObservationAdded",
    # Parcel events
    "ParcelAssigned",
    "ParcelCompleted",
    # Activity events
    "ActivityStarted",
    "ActivityStopped",
    "ActivityInfoRecorded",
]
