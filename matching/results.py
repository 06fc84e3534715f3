"""
Purpose: Output types of the route matcher.

A "no match" is never an exception: it is a MatchResult with is_match=False
and a machine-readable NoMatchReason.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from rides.models import CandidateRoute, Point


class MatchQuality(str, Enum):
    PERFECT = "PERFECT"
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"


class NoMatchReason(str, Enum):
    ENDPOINTS_TOO_FAR = "endpoints-too-far"
    DIRECTION_VIOLATED = "direction-violated"
    DISTANCE_DISSIMILAR = "distance-dissimilar"
    INVALID_GEOMETRY = "invalid-geometry"


class ProjectionSource(str, Enum):
    VERTEX = "vertex"      # within the exact-match epsilon of a vertex
    SEGMENT = "segment"    # perpendicular projection onto a segment
    ENDPOINT = "endpoint"  # endpoint fallback / short-route endpoint matching


def quality_for_score(score: float) -> MatchQuality:
    if score >= 90:
        return MatchQuality.PERFECT
    if score >= 75:
        return MatchQuality.EXCELLENT
    if score >= 60:
        return MatchQuality.GOOD
    if score >= 40:
        return MatchQuality.FAIR
    return MatchQuality.POOR


@dataclass(frozen=True)
class Projection:
    """
    Closest point on a polyline to an arbitrary point.

    polyline_index is the vertex index for vertex/endpoint matches and the
    segment start index for segment projections; segment_fraction is the
    position along that segment (0 for vertices).

    Pickup and dropoff are ordered by route_position, not polyline_index:
    both can sit on the same segment (a two-point route has only segment 0),
    in which case the indices are equal and only the fraction tells them apart.
    """
    point: Point
    polyline_index: int
    distance_off_route_km: float
    is_exact_vertex_match: bool = False
    segment_fraction: float = 0.0
    via: ProjectionSource = ProjectionSource.SEGMENT

    @property
    def route_position(self) -> float:
        """Position along the polyline used for direction checks."""
        return self.polyline_index + self.segment_fraction


@dataclass(frozen=True)
class MatchResult:
    """
    Outcome of matching one trip against one route. On a match, pickup comes
    strictly before dropoff by route_position; their polyline_index values may
    be equal.
    """
    is_match: bool
    match_score: int = 0
    match_quality: MatchQuality = MatchQuality.POOR

    pickup_projection: Optional[Projection] = None
    dropoff_projection: Optional[Projection] = None

    segment_distance_km: float = 0.0
    direct_distance_km: float = 0.0
    detour_percent: float = 0.0

    failure_reason: Optional[NoMatchReason] = None
    # diagnostics for rejections
    failure_detail: Optional[str] = None
    failure_distance_km: Optional[float] = None
    similarity: Optional[float] = None

    @classmethod
    def no_match(
        cls,
        reason: NoMatchReason,
        detail: Optional[str] = None,
        *,
        distance_km: Optional[float] = None,
        similarity: Optional[float] = None,
        pickup_projection: Optional[Projection] = None,
        dropoff_projection: Optional[Projection] = None,
    ) -> MatchResult:
        return cls(
            is_match=False,
            failure_reason=reason,
            failure_detail=detail,
            failure_distance_km=distance_km,
            similarity=similarity,
            pickup_projection=pickup_projection,
            dropoff_projection=dropoff_projection,
        )


@dataclass(frozen=True)
class RankedMatch:
    """
    A candidate route together with how well the trip fits it.
    """
    route: CandidateRoute
    result: MatchResult

    @property
    def score(self) -> int:
        return self.result.match_score
