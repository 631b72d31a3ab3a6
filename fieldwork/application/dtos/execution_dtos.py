"""
Execution Data Transfer Objects.

Typed results of the workflow operations. They are snapshots taken inside
the transaction that produced them and carry no reference to live entities.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ...domain.execution.value_objects.enums import ParcelStatus
from ...domain.execution.value_objects.keys import (
    ActivityKey,
    OperationKey,
    ParcelKey,
    SheetKey,
)


class ExecutionDTO(BaseModel):
    model_config = ConfigDict(frozen=True)


class ActivityView(ExecutionDTO):
    """One work session as seen by callers."""

    key: ActivityKey
    activity_id: str
    operator: str
    start_time: datetime
    end_time: datetime | None = None
    observations: list[str] = Field(default_factory=list)
    gps_path: str | None = None
    photo_refs: list[str] = Field(default_factory=list)


class ParcelView(ExecutionDTO):
    """A parcel assignment with its activities."""

    key: ParcelKey
    polygon_id: int
    status: ParcelStatus
    operators: list[str] = Field(default_factory=list)
    start_time: datetime | None = None
    last_activity_time: datetime | None = None
    end_time: datetime | None = None
    observations: list[str] = Field(default_factory=list)
    gps_path: str | None = None
    activities: list[ActivityView] = Field(default_factory=list)


class OperationView(ExecutionDTO):
    """Progress of one operation, without its parcels."""

    key: OperationKey
    operation_code: str
    total_area_ha: float = Field(ge=0.0)
    percent_complete: float = Field(ge=0.0, le=100.0)
    executed_area_ha: float = Field(ge=0.0)
    start_time: datetime | None = None
    last_activity_time: datetime | None = None
    end_time: datetime | None = None
    observations: list[str] = Field(default_factory=list)
    is_complete: bool = False


class OperationStatus(ExecutionDTO):
    """An operation with every parcel and activity under it."""

    operation: OperationView
    parcels: list[ParcelView] = Field(default_factory=list)


class SheetSummary(ExecutionDTO):
    """Result of opening an execution sheet."""

    key: SheetKey
    worksheet_id: int
    operation_codes: list[str]
    parcel_count: int = Field(ge=0)
    created_by: str | None = None
    created_at: datetime


class SheetStatus(ExecutionDTO):
    """Sheet-wide progress: summed area and mean percent over operations."""

    key: SheetKey
    worksheet_id: int
    total_area_ha: float = Field(ge=0.0)
    percent_complete: float = Field(ge=0.0, le=100.0)
    start_time: datetime | None = None
    last_activity_time: datetime | None = None
    end_time: datetime | None = None
    observations: list[str] = Field(default_factory=list)
    operations: list[OperationView] = Field(default_factory=list)
    is_complete: bool = False


class StopActivityResult(ExecutionDTO):
    """Outcome of stopping an activity, including any cascade it triggered."""

    activity: ActivityView
    parcel_status: ParcelStatus
    area_ha: float | None = Field(
        None, description="Geodesic area credited to the operation, when finished"
    )
    operation_percent: float = Field(ge=0.0, le=100.0)
    operation_completed: bool = False
    sheet_completed: bool = False


class ExecutedOperationRow(ExecutionDTO):
    """Executed area of one operation in a sheet export."""

    operation_index: int = Field(ge=1)
    operation_code: str
    total_area_ha: float
    executed_area_ha: float
    percent_complete: float
    start_time: datetime | None = None
    end_time: datetime | None = None
    observations: list[str] = Field(default_factory=list)


class GpsTrack(ExecutionDTO):
    activity_id: str
    operator: str
    gps_path: str | None = None


class PolygonOperationEntry(ExecutionDTO):
    """State of one operation on one polygon in a sheet export."""

    operation_index: int = Field(ge=1)
    operation_code: str
    status: ParcelStatus
    start_time: datetime | None = None
    last_activity_time: datetime | None = None
    end_time: datetime | None = None
    observations: list[str] = Field(default_factory=list)
    tracks: list[GpsTrack] = Field(default_factory=list)


class PolygonBlock(ExecutionDTO):
    polygon_id: int
    operations: list[PolygonOperationEntry] = Field(default_factory=list)


class SheetExport(ExecutionDTO):
    """Per-operation executed area and per-polygon execution detail of a sheet."""

    worksheet_id: int
    start_time: datetime | None = None
    last_activity_time: datetime | None = None
    end_time: datetime | None = None
    observations: list[str] = Field(default_factory=list)
    operations: list[ExecutedOperationRow] = Field(default_factory=list)
    polygons: list[PolygonBlock] = Field(default_factory=list)
