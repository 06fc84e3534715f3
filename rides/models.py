"""
Purpose: Domain models for posted rides (driver routes) and trip requests.
What it does:
- Defines core data structures:
- TripRequest (pickup, dropoff)
- CandidateRoute (id, polyline, distance/duration, capacity, departure, owner, constraints)
- RouteConstraints (gender policy, verified-only, smoking/pets)

Defines enums/constants:
- RideStatus = ACTIVE | IN_PROGRESS | COMPLETED | CANCELLED
- GenderPolicy = ANY | FEMALE_ONLY | MALE_ONLY

Defines the input validation rules for points and polylines (InputError).

Rule: No matching logic, no persistence. Models only.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence, Tuple

from routing.geo import LonLat

Point = LonLat
Polyline = Tuple[Point, ...]


class InputError(ValueError):
    """Raised for malformed points or polylines (NaN, out of range, < 2 vertices)."""
    pass


class RideStatus(str, Enum):
    ACTIVE = "ACTIVE"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class GenderPolicy(str, Enum):
    ANY = "ANY"
    FEMALE_ONLY = "FEMALE_ONLY"
    MALE_ONLY = "MALE_ONLY"


def validate_point(point) -> Point:
    """
    Coerce a (lon, lat) pair to floats and check it is a real coordinate.
    """
    try:
        lon, lat = point
        lon, lat = float(lon), float(lat)
    except (TypeError, ValueError) as error:
        raise InputError(f"Invalid point {point!r}: expected (lon, lat)") from error

    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise InputError(f"Invalid point {point!r}: coordinates must be finite")
    if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
        raise InputError(f"Invalid point {point!r}: coordinates out of range")

    return (lon, lat)


def validate_polyline(points: Optional[Sequence]) -> Polyline:
    if not points or len(points) < 2:
        raise InputError("A polyline needs at least two points")
    return tuple(validate_point(p) for p in points)


def is_degenerate(polyline: Sequence[Point]) -> bool:
    """True when every vertex is the same point (no direction to match against)."""
    first = polyline[0]
    return all(p == first for p in polyline[1:])


@dataclass(frozen=True)
class TripRequest:
    """
    A passenger's pickup -> dropoff request. Transient, built per search.
    """
    pickup: Point
    dropoff: Point

    @classmethod
    def new(cls, pickup, dropoff) -> TripRequest:
        return cls(pickup=validate_point(pickup), dropoff=validate_point(dropoff))


@dataclass(frozen=True)
class RouteConstraints:
    """
    Rules the driver attached to the ride. Checked when placing a passenger.
    """
    gender_policy: GenderPolicy = GenderPolicy.ANY
    verified_only: bool = False
    smoking_allowed: bool = False
    pets_allowed: bool = False


@dataclass(frozen=True)
class CandidateRoute:
    """
    A driver-posted route at a specific point in time.

    The authoritative available_capacity lives in the ride store; instances
    handed to matching are snapshots.
    """
    id: str
    owner_id: str
    polyline: Polyline
    total_distance_km: float
    total_duration_min: float
    available_capacity: int
    scheduled_departure: datetime

    status: RideStatus = RideStatus.ACTIVE
    constraints: RouteConstraints = field(default_factory=RouteConstraints)
    price_per_seat: float = 0.0

    def has_valid_geometry(self) -> bool:
        """
        Candidates with missing/degenerate geometry are skipped by matching.
        """
        if not self.polyline or len(self.polyline) < 2:
            return False
        try:
            polyline = validate_polyline(self.polyline)
        except InputError:
            return False
        return not is_degenerate(polyline)

    @property
    def start(self) -> Point:
        return self.polyline[0]

    @property
    def end(self) -> Point:
        return self.polyline[-1]
