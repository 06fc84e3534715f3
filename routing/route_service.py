#Purpose: Route computation for downstream use.
#Returns the route geometry a posted ride is matched against.
#Uses the OSRM /route adapter primarily; when OSRM is unreachable or answers
#with an error we substitute a straight line between the waypoints so a ride
#can still be posted and matched (coarser, but never a hard failure).

from __future__ import annotations

import logging
from typing import List, Optional

import requests

from .geo import LonLat, polyline_length_km
from .osrm_client import RouteGeometry, UpstreamRoutingFailure

logger = logging.getLogger(__name__)

# assumed average speed used to estimate duration of a straight-line fallback
FALLBACK_AVERAGE_SPEED_KMH = 40.0


def straight_line_route(
        waypoints: List[LonLat],
        *,
        average_speed_kmh: float = FALLBACK_AVERAGE_SPEED_KMH,
) -> RouteGeometry:
    """
    Waypoints joined directly, duration estimated at `average_speed_kmh`.
    """
    if len(waypoints) < 2:
        raise ValueError("At least two coordinates are required to compute a route.")
    if average_speed_kmh <= 0:
        raise ValueError("average_speed_kmh must be > 0")

    polyline = tuple((float(lon), float(lat)) for lon, lat in waypoints)
    distance_km = polyline_length_km(polyline)

    return RouteGeometry(
        polyline=polyline,
        distance_km=distance_km,
        duration_min=distance_km / average_speed_kmh * 60,
        is_fallback=True,
    )


def compute_route_geometry(
        provider,
        waypoints: List[LonLat],
        *,
        average_speed_kmh: float = FALLBACK_AVERAGE_SPEED_KMH,
) -> RouteGeometry:
    """
    Ask the routing provider (OSRMClient or anything with compute_route) for a
    road route; fall back to a straight line when it fails.

    Args:
        provider: routing adapter, or None to go straight to the fallback
        waypoints: ordered (lon, lat) points, origin first
        average_speed_kmh: speed assumed for the fallback duration

    Returns:
        RouteGeometry, with is_fallback=True when the straight line was used
    """
    if provider is None:
        return straight_line_route(waypoints, average_speed_kmh=average_speed_kmh)

    try:
        return provider.compute_route(waypoints)
    except (UpstreamRoutingFailure, requests.RequestException) as error:
        logger.warning(f"Routing provider failed, using straight-line fallback: {error}")
        return straight_line_route(waypoints, average_speed_kmh=average_speed_kmh)
