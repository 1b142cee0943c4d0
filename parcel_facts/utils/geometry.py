"""Geometry helpers shared by the feature client and the report assembler.

- ``arcgis_to_geojson`` converts ArcGIS JSON geometry (rings, paths,
  x/y) into GeoJSON.
- ``compute_centroid`` and ``compute_buffer`` produce the parcel
  centroid and the fixed-radius buffer shown around it.
- ``bbox_around`` produces the fixed degree-offset map envelope.

The buffer is computed by projecting the centroid to its local UTM zone,
buffering in metres, and projecting back to WGS 84, never by adding
degrees.
"""

from __future__ import annotations

import logging
from typing import Any

from parcel_facts.core.constants import METRES_PER_FOOT, WGS84
from parcel_facts.core.exceptions import PipelineError

logger = logging.getLogger("parcel_facts.utils.geometry")

#: Segments per quarter circle for buffer polygons.
BUFFER_QUAD_SEGS = 16


class GeometryError(PipelineError):
    """Raised when geometry is degenerate or cannot be transformed."""

    default_stage = "geometry"
    default_code = "GEOMETRY_DEGENERATE"


# ---------------------------------------------------------------------------
# ArcGIS → GeoJSON
# ---------------------------------------------------------------------------


def rings_to_geojson(rings: list[list[list[float]]]) -> dict[str, Any]:
    """Convert an ArcGIS ring array to a GeoJSON polygon.

    A single ring becomes a ``Polygon``; several rings become a
    ``MultiPolygon`` with one polygon per ring.

    Args:
        rings: ArcGIS ``geometry.rings`` (list of ``[x, y]`` rings).

    Returns:
        GeoJSON geometry dict.
    """
    if len(rings) == 1:
        return {"type": "Polygon", "coordinates": [rings[0]]}
    return {"type": "MultiPolygon", "coordinates": [[ring] for ring in rings]}


def arcgis_to_geojson(geometry: object) -> dict[str, Any] | None:
    """Convert any ArcGIS JSON geometry to GeoJSON.

    Returns ``None`` for missing or unrecognised geometry rather than
    raising; the caller treats that as "no geometry".
    """
    if not isinstance(geometry, dict):
        return None

    rings = geometry.get("rings")
    if isinstance(rings, list) and rings:
        return rings_to_geojson(rings)

    paths = geometry.get("paths")
    if isinstance(paths, list) and paths:
        if len(paths) == 1:
            return {"type": "LineString", "coordinates": paths[0]}
        return {"type": "MultiLineString", "coordinates": paths}

    x, y = geometry.get("x"), geometry.get("y")
    if isinstance(x, int | float) and isinstance(y, int | float):
        return {"type": "Point", "coordinates": [x, y]}

    return None


def is_point(geometry: dict[str, Any] | None) -> bool:
    return bool(geometry) and geometry.get("type") == "Point"  # type: ignore[union-attr]


# ---------------------------------------------------------------------------
# Centroid and buffer
# ---------------------------------------------------------------------------


def compute_centroid(geometry: dict[str, Any]) -> tuple[float, float]:
    """Compute the centroid of a GeoJSON geometry using Shapely.

    Returns:
        Centroid as ``(lon, lat)``.

    Raises:
        GeometryError: If the geometry has no coordinates or is empty.
    """
    if not geometry.get("coordinates"):
        msg = f"Cannot compute centroid of an empty {geometry.get('type', 'geometry')}"
        raise GeometryError(msg)

    from shapely.errors import ShapelyError
    from shapely.geometry import shape

    try:
        geom = shape(geometry)
    except (ShapelyError, ValueError, TypeError, IndexError) as exc:
        msg = f"Invalid {geometry.get('type', 'geometry')} geometry: {exc}"
        raise GeometryError(msg) from exc

    if geom.is_empty:
        msg = f"Cannot compute centroid of an empty {geom.geom_type}"
        raise GeometryError(msg)

    centroid = geom.centroid
    if centroid.is_empty:
        msg = f"Degenerate {geom.geom_type} has no centroid"
        raise GeometryError(msg)
    return (centroid.x, centroid.y)


def compute_buffer(lon: float, lat: float, *, radius_ft: float) -> dict[str, Any]:
    """Buffer a WGS 84 point by *radius_ft* feet.

    Projects to the local UTM zone, buffers in metres, and projects the
    resulting polygon back to WGS 84.

    Returns:
        GeoJSON ``Polygon`` dict.

    Raises:
        GeometryError: If the radius is not positive or projection fails.
    """
    if radius_ft <= 0:
        msg = f"Buffer radius must be > 0 ft, got {radius_ft}"
        raise GeometryError(msg)

    from pyproj import Transformer
    from pyproj.exceptions import ProjError
    from shapely.geometry import Point, mapping
    from shapely.ops import transform

    utm_crs = get_utm_crs(lon, lat)
    to_utm = Transformer.from_crs(WGS84, utm_crs, always_xy=True)
    to_wgs = Transformer.from_crs(utm_crs, WGS84, always_xy=True)

    try:
        x, y = to_utm.transform(lon, lat)
        circle = Point(x, y).buffer(radius_ft * METRES_PER_FOOT, quad_segs=BUFFER_QUAD_SEGS)
        buffered = transform(to_wgs.transform, circle)
    except ProjError as exc:
        msg = f"Projection to {utm_crs} failed: {exc}"
        raise GeometryError(msg) from exc

    geojson = mapping(buffered)
    return {
        "type": geojson["type"],
        "coordinates": [[list(pt) for pt in ring] for ring in geojson["coordinates"]],
    }


def bbox_around(lon: float, lat: float, offset_deg: float) -> tuple[float, float, float, float]:
    """Return ``(min_lon, min_lat, max_lon, max_lat)`` offset by *offset_deg*."""
    return (lon - offset_deg, lat - offset_deg, lon + offset_deg, lat + offset_deg)


def get_utm_crs(lon: float, lat: float) -> str:
    """Determine the UTM CRS for a given WGS 84 coordinate.

    Returns an EPSG code like ``"EPSG:32610"`` (UTM zone 10N) or
    ``"EPSG:32710"`` (UTM zone 10S).
    """
    # UTM zone number: 1-based, 6° wide, starting at -180°
    zone_number = int((lon + 180) / 6) + 1
    zone_number = max(1, min(60, zone_number))

    if lat >= 0:
        return f"EPSG:{32600 + zone_number}"
    return f"EPSG:{32700 + zone_number}"
