"""Polygon geometry as supplied by worksheet ingestion."""

from typing import Any

from pydantic import Field, field_validator

from ...shared.base import ValueObject
from ...shared.exceptions import GeometryError

Coordinate = tuple[float, float]


class Geometry(ValueObject):
    """
    A polygon in the local projected coordinate system.

    ``rings[0]`` is the exterior ring; further rings are holes. Coordinates are
    (easting, northing) pairs in metres.
    """

    polygon_id: int | None = None
    rings: tuple[tuple[Coordinate, ...], ...] = Field(default_factory=tuple)

    @field_validator("rings", mode="before")
    @classmethod
    def coerce_rings(cls, v: Any) -> Any:
        if v is None:
            return ()
        return v

    @property
    def exterior(self) -> tuple[Coordinate, ...]:
        return self.rings[0] if self.rings else ()

    @property
    def holes(self) -> tuple[tuple[Coordinate, ...], ...]:
        return self.rings[1:]

    @classmethod
    def from_geojson(
        cls, document: dict[str, Any], polygon_id: int | None = None
    ) -> "Geometry":
        """
        Build a geometry from a GeoJSON ``Polygon`` object.

        Raises:
            GeometryError: If the coordinates are not numeric pairs
        """
        if document.get("type", "Polygon") != "Polygon":
            raise GeometryError(
                f"Unsupported geometry type: {document.get('type')}", polygon_id
            )
        try:
            rings = tuple(
                tuple((float(point[0]), float(point[1])) for point in ring)
                for ring in document.get("coordinates") or []
            )
            return cls(polygon_id=polygon_id, rings=rings)
        except (TypeError, ValueError, IndexError) as e:
            raise GeometryError(f"Malformed polygon coordinates: {e}", polygon_id) from e

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "Polygon",
            "coordinates": [[list(point) for point in ring] for ring in self.rings],
        }
