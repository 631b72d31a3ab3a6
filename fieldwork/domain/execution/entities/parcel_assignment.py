"""Parcel assignment entity: work tracking for one polygon of one operation."""

from datetime import datetime

from pydantic import Field

from ...shared.base import Entity
from ...shared.exceptions import InvalidStateError
from ..events import ParcelCompleted
from ..value_objects.enums import ParcelStatus
from ..value_objects.keys import ActivityKey, OperationKey, ParcelKey

GPS_PATH_SEPARATOR = ";"


def append_gps_path(existing: str | None, addition: str) -> str:
    """Join GPS path segments with the path separator."""
    if not existing:
        return addition
    return f"{existing}{GPS_PATH_SEPARATOR}{addition}"


class ParcelAssignment(Entity):
    """
    Parcel assignment entity.

    Status changes only through ``change_status``, which the lifecycle state
    machine drives; the entity itself refuses any backward move.
    """

    kind = "parcel_assignment"

    operation: OperationKey = Field(frozen=True)
    polygon_id: int = Field(ge=0, frozen=True)
    status: ParcelStatus = Field(default=ParcelStatus.UNASSIGNED)
    operators: list[str] = Field(default_factory=list)
    activity_ids: list[str] = Field(default_factory=list)

    start_time: datetime | None = None
    last_activity_time: datetime | None = None
    end_time: datetime | None = None
    observations: list[str] = Field(default_factory=list)
    gps_path: str | None = None

    @property
    def key(self) -> ParcelKey:
        return ParcelKey(operation=self.operation, polygon_id=self.polygon_id)

    @property
    def is_complete(self) -> bool:
        return self.status == ParcelStatus.COMPLETED

    def activity_keys(self) -> list[ActivityKey]:
        return [self.key.activity(activity_id) for activity_id in self.activity_ids]

    def has_operator(self, username: str) -> bool:
        return username in self.operators

    def add_operator(self, username: str) -> bool:
        """Add an operator to the ordered set. Returns False if already present."""
        if username in self.operators:
            return False
        self.operators = [*self.operators, username]
        self.mark_updated()
        return True

    def change_status(self, target: ParcelStatus) -> None:
        """Move to ``target``; staying in the same status is a no-op."""
        if target == self.status:
            return
        if not self.status.can_transition_to(target):
            raise InvalidStateError(
                "parcel", str(self.key), self.status.value, f"move to {target.value}"
            )
        self.status = target
        self.mark_updated()

    def record_activity(self, activity_id: str, at: datetime) -> None:
        """Attach a newly started activity."""
        if self.start_time is None:
            self.start_time = at
        self.last_activity_time = at
        self.activity_ids = [*self.activity_ids, activity_id]
        self.mark_updated(at)

    def touch(self, at: datetime) -> None:
        self.last_activity_time = at
        self.mark_updated(at)

    def complete(self, area_ha: float, at: datetime) -> None:
        """Close the parcel; only reachable from IN_PROGRESS."""
        if self.status != ParcelStatus.IN_PROGRESS:
            raise InvalidStateError(
                "parcel", str(self.key), self.status.value, "complete"
            )
        self.change_status(ParcelStatus.COMPLETED)
        self.end_time = at
        self.last_activity_time = at
        self.mark_updated(at)
        self.add_domain_event(
            ParcelCompleted(
                aggregate_key=self.key.storage_id,
                worksheet_id=self.operation.sheet.worksheet_id,
                operation_code=self.operation.operation_code,
                polygon_id=self.polygon_id,
                area_ha=area_ha,
                completed_at=at,
            )
        )

    def add_observation(self, text: str) -> None:
        self.observations = [*self.observations, text]
        self.mark_updated()

    def append_gps_path(self, path: str) -> None:
        self.gps_path = append_gps_path(self.gps_path, path)
        self.mark_updated()

    def is_valid(self) -> bool:
        if self.status == ParcelStatus.UNASSIGNED and self.operators:
            return False
        if self.status != ParcelStatus.UNASSIGNED and not self.operators:
            return False
        if self.status == ParcelStatus.COMPLETED and self.end_time is None:
            return False
        return True
