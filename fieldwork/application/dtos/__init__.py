"""Application DTOs."""

from .execution_dtos import (
    ActivityView,
    ExecutedOperationRow,
    GpsTrack,
    OperationStatus,
    OperationView,
    ParcelView,
    PolygonBlock,
    PolygonOperationEntry,
    SheetExport,
    SheetStatus,
    SheetSummary,
    StopActivityResult,
)

__all__ = [
    "ActivityView",
    "ExecutedOperationRow",
    "GpsTrack",
    "OperationStatus",
    "OperationView",
    "ParcelView",
    "PolygonBlock",
    "PolygonOperationEntry",
    "SheetExport",
    "SheetStatus",
    "SheetSummary",
    "StopActivityResult",
]
