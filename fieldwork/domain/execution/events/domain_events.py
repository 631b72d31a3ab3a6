"""
Domain Events

Events raised by execution entities while a workflow operation runs. They are
collected by the unit of work and handed to the notification sink only once
the transaction has committed.
"""

from dataclasses import dataclass
from datetime import datetime

from ...shared.base import DomainEvent


@dataclass(frozen=True, kw_only=True)
class ExecutionSheetCreated(DomainEvent):
    """Raised when an execution sheet is opened for a worksheet."""

    worksheet_id: int
    operation_codes: tuple[str, ...]
    parcel_count: int
    created_by: str


@dataclass(frozen=True, kw_only=True)
class ParcelAssigned(DomainEvent):
    """Raised when an operator is added to a parcel's operator set."""

    worksheet_id: int
    operation_code: str
    polygon_id: int
    operator: str
    assigned_by: str
    status: str


@dataclass(frozen=True, kw_only=True)
class ActivityStarted(DomainEvent):
    """Raised when an operator opens a work session on a parcel."""

    activity_id: str
    operator: str
    polygon_id: int
    started_at: datetime


@dataclass(frozen=True, kw_only=True)
class ActivityStopped(DomainEvent):
    """Raised when an operator closes a work session."""

    activity_id: str
    operator: str
    polygon_id: int
    ended_at: datetime
    finished: bool


@dataclass(frozen=True, kw_only=True)
class ParcelCompleted(DomainEvent):
    """Raised when a parcel reaches the terminal status."""

    worksheet_id: int
    operation_code: str
    polygon_id: int
    area_ha: float
    completed_at: datetime


@dataclass(frozen=True, kw_only=True)
class OperationProgressed(DomainEvent):
    """Raised when a parcel completion adds to an operation's percent."""

    worksheet_id: int
    operation_code: str
    old_percent: float
    new_percent: float


@dataclass(frozen=True, kw_only=True)
class OperationCompleted(DomainEvent):
    """Raised when an operation reaches 100 percent."""

    worksheet_id: int
    operation_code: str
    completed_at: datetime


@dataclass(frozen=True, kw_only=True)
class SheetCompleted(DomainEvent):
    """Raised when every operation of a sheet is complete."""

    worksheet_id: int
    completed_at: datetime


@dataclass(frozen=True, kw_only=True)
class ActivityInfoRecorded(DomainEvent):
    """Raised when observations, GPS track or photos are attached to an activity."""

    activity_id: str
    operator: str
    has_observation: bool
    has_gps_path: bool
    photo_count: int


@dataclass(frozen=True, kw_only=True)
class OperationObservationAdded(DomainEvent):
    """Raised when a free-text observation is appended to an operation."""

    worksheet_id: int
    operation_code: str
    author: str
