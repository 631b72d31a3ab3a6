"""Collaborator providers."""

from .in_memory import (
    InMemoryGeometryProvider,
    InMemoryIdentityProvider,
    InMemoryWorksheetProvider,
)

__all__ = [
    "InMemoryGeometryProvider",
    "InMemoryIdentityProvider",
    "InMemoryWorksheetProvider",
]
