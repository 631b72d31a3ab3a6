"""
Parcel Lifecycle State Machine

Every parcel status change goes through this table. Call sites ask the
machine for the next status instead of re-deriving which moves are allowed.
"""

from ...shared.exceptions import InvalidStateError, PermissionDeniedError
from ..entities.parcel_assignment import ParcelAssignment
from ..value_objects.enums import ParcelEvent, ParcelStatus
from ..value_objects.identity import Identity

TRANSITIONS: dict[tuple[ParcelStatus, ParcelEvent], ParcelStatus] = {
    (ParcelStatus.UNASSIGNED, ParcelEvent.ASSIGN): ParcelStatus.ASSIGNED,
    (ParcelStatus.ASSIGNED, ParcelEvent.ASSIGN): ParcelStatus.ASSIGNED,
    (ParcelStatus.IN_PROGRESS, ParcelEvent.ASSIGN): ParcelStatus.IN_PROGRESS,
    (ParcelStatus.COMPLETED, ParcelEvent.ASSIGN): ParcelStatus.COMPLETED,
    (ParcelStatus.ASSIGNED, ParcelEvent.START): ParcelStatus.IN_PROGRESS,
    (ParcelStatus.IN_PROGRESS, ParcelEvent.START): ParcelStatus.IN_PROGRESS,
    (ParcelStatus.COMPLETED, ParcelEvent.START): ParcelStatus.COMPLETED,
    (ParcelStatus.IN_PROGRESS, ParcelEvent.STOP): ParcelStatus.IN_PROGRESS,
    (ParcelStatus.IN_PROGRESS, ParcelEvent.FINISH): ParcelStatus.COMPLETED,
}


def next_status(
    current: ParcelStatus, event: ParcelEvent, identifier: str = ""
) -> ParcelStatus:
    """
    Look up the status reached by ``event`` from ``current``.

    Raises:
        InvalidStateError: If the table has no such transition
    """
    target = TRANSITIONS.get((current, event))
    if target is None:
        raise InvalidStateError("parcel", identifier, current.value, event.value)
    return target


class ParcelLifecycle:
    """Guards and applies parcel lifecycle events."""

    def assign(
        self, parcel: ParcelAssignment, assigner: Identity, operator: Identity
    ) -> bool:
        """
        Add ``operator`` to the parcel's operator set.

        Returns:
            True if the operator was not assigned before

        Raises:
            PermissionDeniedError: If the target is not a field operator of the
                assigner's organization
        """
        if not operator.is_field_operator:
            raise PermissionDeniedError(
                assigner.username,
                f"{operator.username} does not hold the partner operator role",
            )
        if not operator.shares_organization_with(assigner):
            raise PermissionDeniedError(
                assigner.username,
                f"{operator.username} belongs to another organization",
            )

        target = next_status(parcel.status, ParcelEvent.ASSIGN, str(parcel.key))
        added = parcel.add_operator(operator.username)
        parcel.change_status(target)
        return added

    def start(self, parcel: ParcelAssignment, caller: Identity) -> ParcelStatus:
        """Validate and apply a new work session on the parcel."""
        # Status first: an unassigned parcel reports InvalidState to everyone
        target = next_status(parcel.status, ParcelEvent.START, str(parcel.key))
        self._require_member(parcel, caller)
        parcel.change_status(target)
        return target

    def stop(
        self, parcel: ParcelAssignment, caller: Identity, finished: bool
    ) -> ParcelStatus:
        """
        Validate a stop and return the status it leads to.

        The terminal move itself is applied by ``ParcelAssignment.complete`` so
        that the end timestamp and the status change land together.
        """
        event = ParcelEvent.FINISH if finished else ParcelEvent.STOP
        target = next_status(parcel.status, event, str(parcel.key))
        self._require_member(parcel, caller)
        return target

    def _require_member(self, parcel: ParcelAssignment, caller: Identity) -> None:
        if not parcel.has_operator(caller.username):
            raise PermissionDeniedError(
                caller.username, f"not assigned to parcel {parcel.key}"
            )
