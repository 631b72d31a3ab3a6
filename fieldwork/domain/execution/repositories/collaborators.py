"""
External Collaborator Interfaces

Contracts of the services the workflow engine consumes but does not own:
identity, worksheet ingestion, parcel geometry and notification delivery.
"""

from abc import ABC, abstractmethod

from ...shared.base import DomainEvent
from ..value_objects.geometry import Geometry
from ..value_objects.identity import Identity
from ..value_objects.worksheet import WorksheetPlan


class IdentityProvider(ABC):
    """Resolves credentials and accounts."""

    @abstractmethod
    def authenticate(self, credential: str) -> Identity:
        """
        Resolve the caller behind a credential.

        Raises:
            UnauthenticatedError: If the credential is not accepted
        """

    @abstractmethod
    def get_user(self, username: str) -> Identity:
        """
        Look up an account by username.

        Raises:
            NotFoundError: If no such account exists
        """


class WorksheetProvider(ABC):
    """Read-only access to ingested worksheets."""

    @abstractmethod
    def get_worksheet(self, worksheet_id: int) -> WorksheetPlan:
        """
        Raises:
            NotFoundError: If the worksheet was never ingested
        """


class GeometryProvider(ABC):
    """Read-only access to parcel polygons."""

    @abstractmethod
    def get_polygon(self, polygon_id: int) -> Geometry:
        """
        Raises:
            NotFoundError: If the polygon is unknown
        """


class NotificationSink(ABC):
    """Best-effort announcement of committed state changes."""

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Deliver one event. Implementations may raise; callers log and move on."""
