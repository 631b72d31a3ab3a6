"""
Execution DTO mappers.

Convert execution entities loaded inside a transaction into DTOs.
"""

from ...domain.execution.entities import (
    Activity,
    ExecutionOperation,
    ExecutionSheet,
    ParcelAssignment,
)
from ..dtos.execution_dtos import (
    ActivityView,
    ExecutedOperationRow,
    GpsTrack,
    OperationView,
    ParcelView,
    PolygonOperationEntry,
    SheetStatus,
    SheetSummary,
)


class ExecutionDTOMapper:
    """Mapper between execution entities and DTOs."""

    def activity_to_view(self, activity: Activity) -> ActivityView:
        return ActivityView(
            key=activity.key,
            activity_id=activity.activity_id,
            operator=activity.operator,
            start_time=activity.start_time,
            end_time=activity.end_time,
            observations=list(activity.observations),
            gps_path=activity.gps_path,
            photo_refs=list(activity.photo_refs),
        )

    def parcel_to_view(
        self, parcel: ParcelAssignment, activities: list[Activity] | None = None
    ) -> ParcelView:
        return ParcelView(
            key=parcel.key,
            polygon_id=parcel.polygon_id,
            status=parcel.status,
            operators=list(parcel.operators),
            start_time=parcel.start_time,
            last_activity_time=parcel.last_activity_time,
            end_time=parcel.end_time,
            observations=list(parcel.observations),
            gps_path=parcel.gps_path,
            activities=[self.activity_to_view(a) for a in activities or []],
        )

    def operation_to_view(self, operation: ExecutionOperation) -> OperationView:
        return OperationView(
            key=operation.key,
            operation_code=operation.operation_code,
            total_area_ha=operation.total_area_ha,
            percent_complete=operation.percent_complete,
            executed_area_ha=operation.executed_area_ha,
            start_time=operation.start_time,
            last_activity_time=operation.last_activity_time,
            end_time=operation.end_time,
            observations=list(operation.observations),
            is_complete=operation.is_complete,
        )

    def sheet_to_summary(self, sheet: ExecutionSheet, parcel_count: int) -> SheetSummary:
        return SheetSummary(
            key=sheet.key,
            worksheet_id=sheet.worksheet_id,
            operation_codes=list(sheet.operation_codes),
            parcel_count=parcel_count,
            created_by=sheet.created_by,
            created_at=sheet.created_at,
        )

    def sheet_to_status(
        self, sheet: ExecutionSheet, operations: list[ExecutionOperation]
    ) -> SheetStatus:
        total_area = sum(op.total_area_ha for op in operations)
        mean_percent = (
            sum(op.percent_complete for op in operations) / len(operations)
            if operations
            else 0.0
        )
        return SheetStatus(
            key=sheet.key,
            worksheet_id=sheet.worksheet_id,
            total_area_ha=total_area,
            percent_complete=min(mean_percent, 100.0),
            start_time=sheet.start_time,
            last_activity_time=sheet.last_activity_time,
            end_time=sheet.end_time,
            observations=list(sheet.observations),
            operations=[self.operation_to_view(op) for op in operations],
            is_complete=sheet.is_complete,
        )

    def operation_to_export_row(
        self, index: int, operation: ExecutionOperation
    ) -> ExecutedOperationRow:
        return ExecutedOperationRow(
            operation_index=index,
            operation_code=operation.operation_code,
            total_area_ha=operation.total_area_ha,
            executed_area_ha=operation.executed_area_ha,
            percent_complete=operation.percent_complete,
            start_time=operation.start_time,
            end_time=operation.end_time,
            observations=list(operation.observations),
        )

    def parcel_to_export_entry(
        self, index: int, parcel: ParcelAssignment, activities: list[Activity]
    ) -> PolygonOperationEntry:
        return PolygonOperationEntry(
            operation_index=index,
            operation_code=parcel.operation.operation_code,
            status=parcel.status,
            start_time=parcel.start_time,
            last_activity_time=parcel.last_activity_time,
            end_time=parcel.end_time,
            observations=list(parcel.observations),
            tracks=[
                GpsTrack(
                    activity_id=a.activity_id,
                    operator=a.operator,
                    gps_path=a.gps_path,
                )
                for a in activities
            ],
        )
