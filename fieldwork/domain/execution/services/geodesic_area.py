"""
Geodesic Area Calculator

Measures parcel polygons supplied in the PT-TM06 local projection. Vertices
are reprojected to geographic coordinates and the polygon area is solved on
the GRS80 ellipsoid, the datum of the projection itself.
"""

import math
import threading

from pyproj import Geod, Transformer
from shapely.geometry import Polygon
from shapely.validation import explain_validity

from ....core.observability import get_logger
from ...shared.exceptions import GeometryError
from ..value_objects.geometry import Coordinate, Geometry

logger = get_logger(__name__)

# PT-TM06 / ETRS89 transverse Mercator
ORIGIN_LATITUDE = 39.66825833333333
ORIGIN_LONGITUDE = -8.13190611111111
SCALE_FACTOR = 1.0
FALSE_EASTING = 200000.0
FALSE_NORTHING = 300000.0
ELLIPSOID = "GRS80"

LOCAL_PROJECTION = (
    f"+proj=tmerc +lat_0={ORIGIN_LATITUDE} +lon_0={ORIGIN_LONGITUDE} "
    f"+k={SCALE_FACTOR} +x_0={FALSE_EASTING:.0f} +y_0={FALSE_NORTHING:.0f} "
    f"+ellps={ELLIPSOID} +units=m +no_defs"
)
GEOGRAPHIC_CRS = "EPSG:4326"

SQUARE_METERS_PER_HECTARE = 10_000.0
MIN_DISTINCT_VERTICES = 3

_geod = Geod(ellps=ELLIPSOID)
_local = threading.local()


def _transformer() -> Transformer:
    # Transformer instances must not be shared between threads
    transformer = getattr(_local, "transformer", None)
    if transformer is None:
        transformer = Transformer.from_crs(
            LOCAL_PROJECTION, GEOGRAPHIC_CRS, always_xy=True
        )
        _local.transformer = transformer
    return transformer


class GeodesicAreaCalculator:
    """
    Computes the ellipsoidal surface area of a parcel polygon in hectares.

    Only the exterior ring is measured; holes are ignored. Ring validity
    (self-intersection, winding) is not checked unless ``strict`` is set, in
    which case shapely's validity rules reject the ring.
    """

    def __init__(self, strict: bool = False):
        self.strict = strict

    def to_geographic(self, x: float, y: float) -> tuple[float, float]:
        """Transform one local (easting, northing) pair to (longitude, latitude)."""
        lon, lat = _transformer().transform(x, y)
        return lon, lat

    def area(self, geometry: Geometry) -> float:
        """
        Measure a polygon.

        Args:
            geometry: Polygon in the local projection

        Returns:
            Area in hectares

        Raises:
            GeometryError: If the exterior ring is empty, degenerate or not finite
        """
        ring = self._checked_exterior(geometry)

        if self.strict:
            self._check_valid(ring, geometry.polygon_id)

        xs = [point[0] for point in ring]
        ys = [point[1] for point in ring]
        lons, lats = _transformer().transform(xs, ys)
        lons, lats = list(lons), list(lats)

        if not all(math.isfinite(v) for v in (*lons, *lats)):
            raise GeometryError(
                "Polygon vertices fall outside the projection domain",
                geometry.polygon_id,
            )

        signed_area, _ = _geod.polygon_area_perimeter(lons, lats)
        hectares = abs(signed_area) / SQUARE_METERS_PER_HECTARE

        logger.debug(
            "Computed parcel area",
            polygon_id=geometry.polygon_id,
            vertices=len(ring),
            area_ha=hectares,
        )
        return hectares

    def _checked_exterior(self, geometry: Geometry) -> tuple[Coordinate, ...]:
        ring = geometry.exterior
        if not ring:
            raise GeometryError("Polygon has no coordinate ring", geometry.polygon_id)

        for point in ring:
            if len(point) != 2 or not all(math.isfinite(v) for v in point):
                raise GeometryError(
                    f"Polygon has a non-finite vertex: {point}", geometry.polygon_id
                )

        if len(set(ring)) < MIN_DISTINCT_VERTICES:
            raise GeometryError(
                f"Polygon ring needs at least {MIN_DISTINCT_VERTICES} distinct vertices",
                geometry.polygon_id,
            )

        # The closing vertex repeats the first one; the area solver closes rings itself
        if len(ring) > 1 and ring[0] == ring[-1]:
            ring = ring[:-1]
        return ring

    def _check_valid(self, ring: tuple[Coordinate, ...], polygon_id: int | None) -> None:
        polygon = Polygon(ring)
        if not polygon.is_valid:
            raise GeometryError(
                f"Polygon ring is not valid: {explain_validity(polygon)}", polygon_id
            )
