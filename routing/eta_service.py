#Purpose: ETA estimation policy.
#Converts route geometry into ETA predictions used by:
#estimated pickup/dropoff times on a (re)assigned booking
#"arrives in X" during live tracking
#Keeps ETA logic separate from route computation.

from __future__ import annotations

from typing import Optional, Sequence

from .geo import LonLat, haversine_km, polyline_length_km


def estimate_eta_minutes(
        polyline: Sequence[LonLat],
        point_index: int,
        total_duration_min: float,
) -> float:
    """
    Minutes from route start to the vertex at `point_index`, assuming the
    route's total duration is spread evenly over its length.
    """
    total_distance = polyline_length_km(polyline)
    if total_distance <= 0:
        return 0.0

    point_index = max(0, min(point_index, len(polyline) - 1))
    distance_to_point = polyline_length_km(polyline, 0, point_index)
    return distance_to_point / total_distance * total_duration_min


def remaining_eta_minutes(
        polyline: Sequence[LonLat],
        current_point: LonLat,
        segment_index: int,
        speed_kmh: Optional[float],
        *,
        default_speed_kmh: float = 40.0,
) -> float:
    """
    Minutes left to the end of the route from a position on segment `segment_index`.

    Uses the reported speed, or `default_speed_kmh` when the vehicle is
    stationary or the speed is unknown.
    """
    speed = speed_kmh if speed_kmh and speed_kmh > 0 else default_speed_kmh

    last = len(polyline) - 1
    segment_index = max(0, min(segment_index, last))
    if segment_index >= last:
        remaining_km = haversine_km(current_point, polyline[last])
    else:
        remaining_km = (
            haversine_km(current_point, polyline[segment_index + 1])
            + polyline_length_km(polyline, segment_index + 1)
        )
    return remaining_km / speed * 60
