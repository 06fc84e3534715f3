#Marks routing as a package.
#Re-exports the public APIs (OSRMClient, compute_route_geometry, haversine_km,
#estimate_eta_minutes) so other modules import from routing without knowing internal file names.
#No business logic.

from .geo import LonLat, haversine_km, closest_point_on_segment, polyline_length_km
from .osrm_client import OSRMClient, RouteGeometry, UpstreamRoutingFailure
from .route_service import compute_route_geometry, straight_line_route
from .eta_service import estimate_eta_minutes, remaining_eta_minutes

__all__ = [
           "LonLat",
           "haversine_km",
           "closest_point_on_segment",
           "polyline_length_km",
           "OSRMClient",
             "RouteGeometry",
             "UpstreamRoutingFailure",
             "compute_route_geometry",
             "straight_line_route",
             "estimate_eta_minutes",
             "remaining_eta_minutes",
             ]
