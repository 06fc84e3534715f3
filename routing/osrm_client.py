#Purpose: The OSRM "adapter/client" (our RouteGeometryProvider).
#Sole responsibility: talk to OSRM via HTTP and return normalized outputs.
#Encapsulates OSRM-specific details:
#coordinate formatting (lon,lat)
#URL construction (/route)
#timeouts/error handling
#parsing response JSON into a RouteGeometry (polyline + km + minutes)
#It should not contain matching rules or fallback policy (see route_service.py).


from dotenv import load_dotenv
import os
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple
import requests

from .geo import LonLat

# Read OSRM base URL from environment
# Example in .env:
# BASE_URL=http://router.project-osrm.org
load_dotenv()
BASE_URL = os.getenv("BASE_URL")

logger = logging.getLogger(__name__)


class UpstreamRoutingFailure(Exception):
    """Raised when OSRM is unreachable or answers with a non-Ok code."""
    pass


@dataclass(frozen=True)
class RouteGeometry:
    """
    Normalized routing output consumed by the rest of the system.
    """
    polyline: Tuple[LonLat, ...]
    distance_km: float
    duration_min: float

    # True when the geometry is a straight-line substitute, not a road route
    is_fallback: bool = False


class OSRMClient:
    """
    OSRM Adapter / Client

    Sole responsibility:
    - Talk to OSRM via HTTP
    - Format (lon, lat) waypoints the way OSRM expects them
    - Return a RouteGeometry with km / minutes

    """
    def __init__(self, profile: str = "driving", timeout: int = 5, base_url: Optional[str] = None):
        self.base_url = base_url or BASE_URL
        self.timeout = timeout #the time to wait for a response from OSRM before giving up
        self.profile = profile #the mode of transportation (driving, walking, cycling)

        if not self.base_url:
            raise ValueError("OSRM base URL not set. Please set it in the .env file.")

    #----------------
    # Internal helpers
    #----------------
    def format_coordinates(self, coords: List[LonLat]) -> str:
        """Convert list of (lon, lat) to OSRM format 'lon,lat;lon,lat;...'"""
        return ';'.join([f"{lon},{lat}" for lon, lat in coords])

    #----------------
    # Public methods
    #----------------
    def compute_route(self, waypoints: List[LonLat]) -> RouteGeometry:
        """
        Calls the OSRM /route endpoint with the ordered waypoints and returns
        the full route geometry.

        Raises:
            ValueError: fewer than two waypoints
            UpstreamRoutingFailure: network error or OSRM code != "Ok"
        """
        if len(waypoints) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        coordinates = self.format_coordinates(waypoints)
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinates}"

        try:
            response = requests.get(
                url,
                params={
                    "overview": "full", # we need the whole polyline for matching
                    "geometries": "geojson",
                    "steps": "false",
                },
                timeout=self.timeout,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as error:
            raise UpstreamRoutingFailure(f"OSRM request failed: {error}") from error

        #validating OSRM response
        if data.get("code") != "Ok" or not data.get("routes"):
            raise UpstreamRoutingFailure(f"OSRM error: {data.get('message', 'Unknown error')}")

        route = data["routes"][0] #take the first route (OSRM may return alternatives)
        polyline = tuple((float(lon), float(lat)) for lon, lat in route["geometry"]["coordinates"])

        logger.debug(f"OSRM route with {len(polyline)} vertices, {route['distance']:.0f}m")

        #Normalize output to internal units
        return RouteGeometry(
            polyline=polyline,
            distance_km=route["distance"] / 1000,
            duration_min=route["duration"] / 60,
        )
