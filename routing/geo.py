#Purpose: Geometry primitives shared by trip matching and live corridor monitoring.
#Everything here works on (lon, lat) pairs in degrees, the same order OSRM and GeoJSON use.
#Typical responsibilities:
#great-circle distance between two points
#closest point on a segment (planar projection in lon/lat space, clamped to the segment)
#length of a polyline or of a slice of it
#No matching rules, no thresholds.

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

#internal coordinate type : (lon, lat)
LonLat = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: LonLat, b: LonLat) -> float:
    """
    Great-circle distance in kilometres between two (lon, lat) points.
    """
    lon1, lat1 = a
    lon2, lat2 = b

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def closest_point_on_segment(point: LonLat, start: LonLat, end: LonLat) -> Tuple[LonLat, float]:
    """
    Project `point` onto the segment start->end.

    Returns the closest point and its parametric position t in [0, 1]
    (0 = start, 1 = end). A zero-length segment returns its start with t=0.
    """
    px, py = point
    x1, y1 = start
    x2, y2 = end

    dx = x2 - x1
    dy = y2 - y1

    if dx == 0 and dy == 0:
        return start, 0.0

    t = ((px - x1) * dx + (py - y1) * dy) / (dx * dx + dy * dy)
    t = max(0.0, min(1.0, t))

    return (x1 + t * dx, y1 + t * dy), t


def polyline_length_km(
    polyline: Sequence[LonLat],
    start_index: int = 0,
    end_index: Optional[int] = None,
) -> float:
    """
    Sum of segment lengths between two vertex indices (end exclusive of further segments).
    With no indices, the full length of the polyline.
    """
    if end_index is None:
        end_index = len(polyline) - 1

    total = 0.0
    for i in range(start_index, end_index):
        total += haversine_km(polyline[i], polyline[i + 1])
    return total


def interpolate(start: LonLat, end: LonLat, fraction: float) -> LonLat:
    """
    Point at `fraction` of the way from start to end (planar, lon/lat space).
    """
    return (
        start[0] + (end[0] - start[0]) * fraction,
        start[1] + (end[1] - start[1]) * fraction,
    )
