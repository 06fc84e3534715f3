# matching/projection.py

from __future__ import annotations

from typing import Optional, Sequence

from routing.geo import closest_point_on_segment, haversine_km, polyline_length_km
from rides.models import Point

from .results import Projection, ProjectionSource


def project_point_to_polyline(
    point: Point,
    polyline: Sequence[Point],
    exact_match_epsilon_km: float = 0.5,
) -> Projection:
    """
    Nearest point on `polyline` to `point`.

    Pass 1: vertex scan. The first vertex closer than exact_match_epsilon_km is
    returned immediately (treated as authoritative).
    Pass 2: every segment, perpendicular projection clamped to the segment,
    keeping the global minimum.

    Notes:
    - polyline must have >= 2 points (callers validate).
    - the projection is planar in lon/lat space, the distance is great-circle.
    """
    for i, vertex in enumerate(polyline):
        dist = haversine_km(point, vertex)
        if dist < exact_match_epsilon_km:
            return Projection(
                point=vertex,
                polyline_index=i,
                distance_off_route_km=dist,
                is_exact_vertex_match=True,
                via=ProjectionSource.VERTEX,
            )

    best: Optional[Projection] = None
    for i in range(len(polyline) - 1):
        closest, t = closest_point_on_segment(point, polyline[i], polyline[i + 1])
        dist = haversine_km(point, closest)
        if best is None or dist < best.distance_off_route_km:
            best = Projection(
                point=closest,
                polyline_index=i,
                distance_off_route_km=dist,
                segment_fraction=t,
                via=ProjectionSource.SEGMENT,
            )

    return best


def endpoint_projection(point: Point, polyline: Sequence[Point], tolerance_km: float) -> Optional[Projection]:
    """
    Fallback when the interior projection is too far: compare the raw point
    with the route's first and last vertex and take the closer one, if it is
    within tolerance_km. Returns None when neither endpoint is close enough.
    """
    last = len(polyline) - 1
    to_start = haversine_km(point, polyline[0])
    to_end = haversine_km(point, polyline[last])

    if to_start <= to_end:
        index, dist = 0, to_start
    else:
        index, dist = last, to_end

    if dist > tolerance_km:
        return None

    return Projection(
        point=polyline[index],
        polyline_index=index,
        distance_off_route_km=dist,
        via=ProjectionSource.ENDPOINT,
    )


def distance_along_polyline_km(polyline: Sequence[Point], start: Projection, end: Projection) -> float:
    """
    Route-following distance from one projection to a later one:
    the partial segment after `start`, whole segments in between, and the
    partial segment up to `end`.
    """
    if end.route_position <= start.route_position:
        return 0.0

    if start.polyline_index == end.polyline_index:
        return haversine_km(start.point, end.point)

    first_full = start.polyline_index + 1
    head = haversine_km(start.point, polyline[first_full])
    middle = polyline_length_km(polyline, first_full, end.polyline_index)
    tail = haversine_km(polyline[end.polyline_index], end.point)
    return head + middle + tail
