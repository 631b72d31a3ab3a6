"""Operation entity: one unit of planned work within a sheet."""

from datetime import datetime

from pydantic import Field, field_validator

from ...shared.base import Entity
from ...shared.exceptions import BusinessRuleViolation
from ..events import OperationCompleted, OperationProgressed
from ..value_objects.keys import OperationKey, ParcelKey, SheetKey

FULL_PERCENT = 100.0


class ExecutionOperation(Entity):
    """
    Operation entity tracking cumulative progress over its parcels.

    ``percent_complete`` only ever grows and is capped at 100; ``end_time`` is
    set in the same update that brings it to 100.
    """

    kind = "execution_operation"

    sheet: SheetKey = Field(frozen=True)
    operation_code: str = Field(min_length=1, max_length=64, frozen=True)
    total_area_ha: float = Field(ge=0.0, frozen=True)
    percent_complete: float = Field(default=0.0, ge=0.0, le=FULL_PERCENT)
    polygon_ids: list[int] = Field(default_factory=list)
    description: str | None = None

    start_time: datetime | None = None
    last_activity_time: datetime | None = None
    end_time: datetime | None = None
    observations: list[str] = Field(default_factory=list)

    @field_validator("polygon_ids")
    @classmethod
    def validate_polygon_ids(cls, v: list[int]) -> list[int]:
        if len(v) != len(set(v)):
            raise ValueError("Polygon ids must be unique within an operation")
        return v

    @property
    def key(self) -> OperationKey:
        return OperationKey(sheet=self.sheet, operation_code=self.operation_code)

    @property
    def is_complete(self) -> bool:
        return self.end_time is not None

    @property
    def executed_area_ha(self) -> float:
        """Area covered so far, derived from the percent."""
        return self.total_area_ha * self.percent_complete / FULL_PERCENT

    def parcel_keys(self) -> list[ParcelKey]:
        return [self.key.parcel(polygon_id) for polygon_id in self.polygon_ids]

    def record_activity(self, at: datetime) -> None:
        """Register field work on one of this operation's parcels."""
        if self.start_time is None:
            self.start_time = at
        self.last_activity_time = at
        self.mark_updated(at)

    def add_observation(self, text: str, at: datetime | None = None) -> None:
        self.observations.append(text)
        self.mark_updated(at)

    def apply_progress(self, new_percent: float, at: datetime) -> bool:
        """
        Move the operation to a new cumulative percent.

        Args:
            new_percent: Value computed by the progress aggregator
            at: Time of the completion that produced it

        Returns:
            True if this update completed the operation

        Raises:
            BusinessRuleViolation: If the percent would decrease or exceed 100
        """
        if new_percent < self.percent_complete:
            raise BusinessRuleViolation(
                "PERCENT_MONOTONIC",
                f"Operation {self.key} percent cannot decrease from "
                f"{self.percent_complete} to {new_percent}",
            )
        if new_percent > FULL_PERCENT:
            raise BusinessRuleViolation(
                "PERCENT_RANGE",
                f"Operation {self.key} percent cannot exceed {FULL_PERCENT}",
            )

        old_percent = self.percent_complete
        self.percent_complete = new_percent
        self.mark_updated(at)
        self.add_domain_event(
            OperationProgressed(
                aggregate_key=self.key.storage_id,
                worksheet_id=self.sheet.worksheet_id,
                operation_code=self.operation_code,
                old_percent=old_percent,
                new_percent=new_percent,
            )
        )

        if new_percent >= FULL_PERCENT and self.end_time is None:
            self.end_time = at
            self.add_domain_event(
                OperationCompleted(
                    aggregate_key=self.key.storage_id,
                    worksheet_id=self.sheet.worksheet_id,
                    operation_code=self.operation_code,
                    completed_at=at,
                )
            )
            return True
        return False

    def is_valid(self) -> bool:
        # end is set exactly when the percent reached 100
        return (self.end_time is not None) == (self.percent_complete >= FULL_PERCENT)
