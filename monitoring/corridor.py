#Purpose: Route-corridor geofencing for rides in progress.
#Same point-to-polyline projection as trip matching, on a much tighter scale:
#~0.5 km corridor for live safety vs ~10 km tolerance for trip matching.
#Typical responsibilities:
#distance of the current position from the planned polyline
#severity bucket by multiples of the corridor width
#absolute overrides (too far / off-route too long -> CRITICAL)
#Output: CorridorCheck consumed by the tracking session.

from __future__ import annotations

from typing import Optional, Sequence

from matching.projection import project_point_to_polyline
from rides.models import Point, validate_point, validate_polyline

from .models import CorridorCheck, RouteDeviationCheck, Severity
from .policy import MonitoringPolicy, default_monitoring_policy


def severity_for_distance(distance_km: float, width_km: float) -> Severity:
    """
    <= 1x width NONE, <= 2x LOW, <= 4x MEDIUM, beyond that HIGH.
    """
    if distance_km <= width_km:
        return Severity.NONE
    if distance_km <= width_km * 2:
        return Severity.LOW
    if distance_km <= width_km * 4:
        return Severity.MEDIUM
    return Severity.HIGH


def check_corridor(
        point: Point,
        polyline: Sequence[Point],
        corridor_width_km: Optional[float] = None,
        duration_sec: float = 0.0,
        policy: Optional[MonitoringPolicy] = None,
) -> CorridorCheck:
    """
    Where is `point` relative to the corridor around `polyline`?

    duration_sec is how long the vehicle has already been outside the corridor;
    past critical_duration_sec (or critical_distance_km away) the severity is
    CRITICAL whatever the distance bucket says. A point inside the corridor is
    never escalated, however long the vehicle was away before it.

    Raises InputError for malformed input.
    """
    policy = policy or default_monitoring_policy()
    width = corridor_width_km if corridor_width_km is not None else policy.corridor_width_km

    point = validate_point(point)
    polyline = validate_polyline(polyline)

    # epsilon 0: always take the true nearest point, no vertex snapping
    projection = project_point_to_polyline(point, polyline, exact_match_epsilon_km=0.0)
    distance = projection.distance_off_route_km

    within = distance <= width
    severity = severity_for_distance(distance, width)
    # overrides only apply outside the corridor
    if not within and (distance > policy.critical_distance_km or duration_sec > policy.critical_duration_sec):
        severity = Severity.CRITICAL

    return CorridorCheck(
        within_corridor=within,
        distance_km=distance,
        severity=severity,
        duration_sec=duration_sec,
        projection=projection,
    )


def check_route_deviation(point: Point, polyline: Sequence[Point], threshold_km: float = 10.0) -> RouteDeviationCheck:
    """
    Trip-scale deviation check: same buckets as the corridor, with the
    matching deviation threshold as the width.
    """
    point = validate_point(point)
    polyline = validate_polyline(polyline)

    projection = project_point_to_polyline(point, polyline)
    distance = projection.distance_off_route_km

    return RouteDeviationCheck(
        is_deviated=distance > threshold_km,
        distance_km=distance,
        threshold_km=threshold_km,
        severity=severity_for_distance(distance, threshold_km),
    )
