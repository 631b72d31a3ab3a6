"""Worksheet plan read from the ingestion collaborator."""

from pydantic import Field, model_validator
from typing_extensions import Self

from ...shared.base import ValueObject


class PlannedOperation(ValueObject):
    """One operation declared by a worksheet, with its target area."""

    operation_code: str = Field(min_length=1, max_length=64)
    area_ha: float = Field(ge=0.0)
    description: str | None = None


class WorksheetPlan(ValueObject):
    """
    The worksheet an execution sheet is opened for.

    Every declared operation covers every declared polygon: opening a sheet
    creates one parcel assignment per (operation, polygon) pair.
    """

    worksheet_id: int = Field(ge=0)
    operations: tuple[PlannedOperation, ...] = Field(min_length=1)
    polygon_ids: tuple[int, ...] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def check_unique_codes(self) -> Self:
        codes = [operation.operation_code for operation in self.operations]
        if len(codes) != len(set(codes)):
            raise ValueError("Operation codes must be unique within a worksheet")
        if len(self.polygon_ids) != len(set(self.polygon_ids)):
            raise ValueError("Polygon ids must be unique within a worksheet")
        return self

    @property
    def operation_codes(self) -> tuple[str, ...]:
        return tuple(operation.operation_code for operation in self.operations)
