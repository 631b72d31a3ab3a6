"""Execution sheet entity: the execution record of one worksheet."""

from datetime import datetime

from pydantic import Field, field_validator

from ...shared.base import Entity
from ..events import ExecutionSheetCreated, SheetCompleted
from ..value_objects.keys import OperationKey, SheetKey


class ExecutionSheet(Entity):
    """
    Execution sheet for one worksheet.

    Holds the codes of its operations so the completion cascade can read every
    sibling operation by key instead of querying. ``end_time`` is written
    exactly once, when the last operation reaches 100 percent.
    """

    kind = "execution_sheet"

    worksheet_id: int = Field(ge=0, frozen=True)
    operation_codes: list[str] = Field(default_factory=list)
    created_by: str | None = None

    start_time: datetime | None = None
    last_activity_time: datetime | None = None
    end_time: datetime | None = None
    observations: list[str] = Field(default_factory=list)

    @field_validator("operation_codes")
    @classmethod
    def validate_operation_codes(cls, v: list[str]) -> list[str]:
        if len(v) != len(set(v)):
            raise ValueError("Operation codes must be unique within a sheet")
        return v

    @classmethod
    def open(
        cls,
        worksheet_id: int,
        operation_codes: list[str],
        created_by: str,
        parcel_count: int,
        at: datetime,
    ) -> "ExecutionSheet":
        """Create a new sheet and record the creation event."""
        sheet = cls(
            worksheet_id=worksheet_id,
            operation_codes=list(operation_codes),
            created_by=created_by,
            created_at=at,
        )
        sheet.add_domain_event(
            ExecutionSheetCreated(
                aggregate_key=sheet.key.storage_id,
                worksheet_id=worksheet_id,
                operation_codes=tuple(operation_codes),
                parcel_count=parcel_count,
                created_by=created_by,
            )
        )
        return sheet

    @property
    def key(self) -> SheetKey:
        return SheetKey(worksheet_id=self.worksheet_id)

    @property
    def is_complete(self) -> bool:
        return self.end_time is not None

    def operation_keys(self) -> list[OperationKey]:
        return [self.key.operation(code) for code in self.operation_codes]

    def record_activity(self, at: datetime) -> None:
        """Register field work under this sheet."""
        if self.start_time is None:
            self.start_time = at
        self.last_activity_time = at
        self.mark_updated(at)

    def add_observation(self, text: str, at: datetime | None = None) -> None:
        self.observations.append(text)
        self.mark_updated(at)

    def complete(self, at: datetime) -> bool:
        """
        Set the end timestamp.

        Returns:
            True if this call completed the sheet, False if it already was.
        """
        if self.end_time is not None:
            return False

        self.end_time = at
        self.mark_updated(at)
        self.add_domain_event(
            SheetCompleted(
                aggregate_key=self.key.storage_id,
                worksheet_id=self.worksheet_id,
                completed_at=at,
            )
        )
        return True

    def is_valid(self) -> bool:
        if not self.operation_codes:
            return False
        if self.end_time is not None and self.start_time is None:
            return False
        return True
