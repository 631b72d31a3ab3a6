"""
In-memory collaborator providers.

Stand-ins for the identity, worksheet ingestion and geometry services,
used to wire the engine for local runs and tests.
"""

from ...domain.execution.repositories.collaborators import (
    GeometryProvider,
    IdentityProvider,
    WorksheetProvider,
)
from ...domain.execution.value_objects.geometry import Geometry
from ...domain.execution.value_objects.identity import Identity
from ...domain.execution.value_objects.worksheet import WorksheetPlan
from ...domain.shared.exceptions import NotFoundError, UnauthenticatedError


class InMemoryIdentityProvider(IdentityProvider):
    """Accounts keyed by username, with opaque credentials mapped to them."""

    def __init__(self) -> None:
        self._users: dict[str, Identity] = {}
        self._credentials: dict[str, str] = {}

    def register(self, identity: Identity, credential: str | None = None) -> str:
        """
        Register an account.

        Returns:
            The credential that authenticates it (defaults to ``token-<username>``)
        """
        credential = credential or f"token-{identity.username}"
        self._users[identity.username] = identity
        self._credentials[credential] = identity.username
        return credential

    def revoke(self, credential: str) -> None:
        self._credentials.pop(credential, None)

    def authenticate(self, credential: str) -> Identity:
        username = self._credentials.get(credential)
        if username is None:
            raise UnauthenticatedError()
        return self._users[username]

    def get_user(self, username: str) -> Identity:
        try:
            return self._users[username]
        except KeyError:
            raise NotFoundError("User", username) from None


class InMemoryWorksheetProvider(WorksheetProvider):
    def __init__(self, worksheets: list[WorksheetPlan] | None = None):
        self._worksheets = {ws.worksheet_id: ws for ws in worksheets or []}

    def add(self, worksheet: WorksheetPlan) -> None:
        self._worksheets[worksheet.worksheet_id] = worksheet

    def get_worksheet(self, worksheet_id: int) -> WorksheetPlan:
        try:
            return self._worksheets[worksheet_id]
        except KeyError:
            raise NotFoundError("Worksheet", str(worksheet_id)) from None


class InMemoryGeometryProvider(GeometryProvider):
    def __init__(self, polygons: dict[int, Geometry] | None = None):
        self._polygons = dict(polygons or {})

    def add(self, polygon_id: int, geometry: Geometry) -> None:
        self._polygons[polygon_id] = geometry

    def get_polygon(self, polygon_id: int) -> Geometry:
        try:
            return self._polygons[polygon_id]
        except KeyError:
            raise NotFoundError("Polygon", str(polygon_id)) from None
