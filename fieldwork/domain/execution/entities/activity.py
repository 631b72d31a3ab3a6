"""Activity entity: one timed work session of an operator on a parcel."""

from datetime import datetime

from pydantic import Field

from ...shared.base import Entity
from ...shared.exceptions import BusinessRuleViolation, InvalidStateError
from ..value_objects.keys import ActivityKey, ParcelKey
from .parcel_assignment import append_gps_path


class Activity(Entity):
    """
    Activity entity.

    Operator, parcel and start time are fixed at creation. ``end_time`` is set
    once by ``finish``; afterwards only ``record_info`` may change the record.
    """

    kind = "activity"

    parcel: ParcelKey = Field(frozen=True)
    activity_id: str = Field(min_length=1, max_length=64, frozen=True)
    operator: str = Field(min_length=1, frozen=True)
    start_time: datetime = Field(frozen=True)
    end_time: datetime | None = None

    observations: list[str] = Field(default_factory=list)
    gps_path: str | None = None
    photo_refs: list[str] = Field(default_factory=list)

    @property
    def key(self) -> ActivityKey:
        return ActivityKey(parcel=self.parcel, activity_id=self.activity_id)

    @property
    def is_in_progress(self) -> bool:
        return self.end_time is None

    def finish(self, at: datetime) -> None:
        """
        Set the end timestamp.

        Raises:
            InvalidStateError: If the activity already ended
            BusinessRuleViolation: If ``at`` precedes the start
        """
        if self.end_time is not None:
            raise InvalidStateError("activity", str(self.key), "ended", "stop")
        if at < self.start_time:
            raise BusinessRuleViolation(
                "INVALID_END_TIME", "Activity end time must not precede its start"
            )
        self.end_time = at
        self.mark_updated(at)

    def record_info(
        self,
        observation: str | None = None,
        gps_path: str | None = None,
        photo_refs: list[str] | None = None,
    ) -> None:
        """Attach field notes to an ended activity."""
        if self.end_time is None:
            raise InvalidStateError(
                "activity", str(self.key), "in progress", "record info on"
            )
        if observation:
            self.observations = [*self.observations, observation]
        if gps_path:
            self.gps_path = append_gps_path(self.gps_path, gps_path)
        if photo_refs:
            self.photo_refs = [*self.photo_refs, *photo_refs]
        self.mark_updated()

    def is_valid(self) -> bool:
        return self.end_time is None or self.end_time >= self.start_time
