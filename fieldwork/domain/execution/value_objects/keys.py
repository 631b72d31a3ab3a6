"""
Structured keys for the execution entities.

Every entity is addressed by a composite key built from its parent's key, so
the coordinator can read an entity and its ancestors without running queries.
``storage_id`` renders the key as the flat string the stores index by.
"""

from pydantic import Field, field_validator

from ...shared.base import ValueObject

KEY_SEPARATOR = "/"


class SheetKey(ValueObject):
    """Key of an execution sheet: the worksheet it executes."""

    worksheet_id: int = Field(ge=0)

    @property
    def storage_id(self) -> str:
        return f"sheet{KEY_SEPARATOR}{self.worksheet_id}"

    def operation(self, operation_code: str) -> "OperationKey":
        return OperationKey(sheet=self, operation_code=operation_code)

    def __str__(self) -> str:
        return self.storage_id


class OperationKey(ValueObject):
    """Key of an operation: (sheet, operation code)."""

    sheet: SheetKey
    operation_code: str = Field(min_length=1, max_length=64)

    @field_validator("operation_code")
    @classmethod
    def validate_operation_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Operation code cannot be blank")
        if KEY_SEPARATOR in v:
            raise ValueError(f"Operation code cannot contain '{KEY_SEPARATOR}'")
        return v

    @property
    def storage_id(self) -> str:
        return f"{self.sheet.storage_id}{KEY_SEPARATOR}op{KEY_SEPARATOR}{self.operation_code}"

    def parcel(self, polygon_id: int) -> "ParcelKey":
        return ParcelKey(operation=self, polygon_id=polygon_id)

    def __str__(self) -> str:
        return self.storage_id


class ParcelKey(ValueObject):
    """Key of a parcel assignment: (operation, polygon id)."""

    operation: OperationKey
    polygon_id: int = Field(ge=0)

    @property
    def sheet(self) -> SheetKey:
        return self.operation.sheet

    @property
    def storage_id(self) -> str:
        return f"{self.operation.storage_id}{KEY_SEPARATOR}parcel{KEY_SEPARATOR}{self.polygon_id}"

    def activity(self, activity_id: str) -> "ActivityKey":
        return ActivityKey(parcel=self, activity_id=activity_id)

    def __str__(self) -> str:
        return self.storage_id


class ActivityKey(ValueObject):
    """Key of an activity: (parcel, generated activity id)."""

    parcel: ParcelKey
    activity_id: str = Field(min_length=1, max_length=64)

    @field_validator("activity_id")
    @classmethod
    def validate_activity_id(cls, v: str) -> str:
        if KEY_SEPARATOR in v:
            raise ValueError(f"Activity id cannot contain '{KEY_SEPARATOR}'")
        return v

    @property
    def operation(self) -> OperationKey:
        return self.parcel.operation

    @property
    def sheet(self) -> SheetKey:
        return self.parcel.operation.sheet

    @property
    def storage_id(self) -> str:
        return f"{self.parcel.storage_id}{KEY_SEPARATOR}activity{KEY_SEPARATOR}{self.activity_id}"

    def __str__(self) -> str:
        return self.storage_id


EntityKey = SheetKey | OperationKey | ParcelKey | ActivityKey
