"""Domain enums for field execution."""

from enum import Enum


class ParcelStatus(str, Enum):
    """Parcel assignment status enumeration."""

    UNASSIGNED = "unassigned"  # Created with the sheet, nobody assigned yet
    ASSIGNED = "assigned"  # At least one operator assigned, no work started
    IN_PROGRESS = "in_progress"  # At least one activity started
    COMPLETED = "completed"  # An operator stopped with finished=true

    @property
    def is_terminal(self) -> bool:
        """Check if parcel status is terminal."""
        return self == ParcelStatus.COMPLETED

    @property
    def accepts_work(self) -> bool:
        """Check if new activities may be started on the parcel."""
        return self in {ParcelStatus.ASSIGNED, ParcelStatus.IN_PROGRESS}

    def can_transition_to(self, target_status: "ParcelStatus") -> bool:
        """Check if parcel can move from current status to target status."""
        valid_transitions = {
            ParcelStatus.UNASSIGNED: {ParcelStatus.ASSIGNED},
            ParcelStatus.ASSIGNED: {ParcelStatus.IN_PROGRESS},
            ParcelStatus.IN_PROGRESS: {ParcelStatus.COMPLETED},
            ParcelStatus.COMPLETED: set(),  # Terminal state
        }
        return target_status in valid_transitions.get(self, set())


class ParcelEvent(str, Enum):
    """Events that drive the parcel lifecycle."""

    ASSIGN = "assign"
    START = "start"
    STOP = "stop"
    FINISH = "finish"


class UserRole(str, Enum):
    """Account roles known to the workflow guards."""

    SYSTEM_ADMIN = "SYSADMIN"
    SYSTEM_BACKOFFICE = "SYSBO"
    SHEET_MANAGER_BACKOFFICE = "SMBO"
    SHEET_GENERAL_VIEWER_BACKOFFICE = "SGVBO"
    SHEET_DETAILED_VIEWER_BACKOFFICE = "SDVBO"
    PARTNER_REPRESENTATIVE_BACKOFFICE = "PRBO"
    PARTNER_OPERATOR = "PO"
    ADHERENT_LANDOWNER = "ADLU"
    REGISTERED_USER = "RU"
    VIEWER_USER = "VU"

    @property
    def is_field_operator(self) -> bool:
        return self == UserRole.PARTNER_OPERATOR
