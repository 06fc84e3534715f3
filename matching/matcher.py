#Purpose: Trip-to-route matching (the "does this ride fit this passenger" layer).
#Takes a TripRequest (pickup, dropoff) + a CandidateRoute polyline
#Produces a MatchResult with score, quality bucket and projections
#Typical responsibilities:
#short straight routes: endpoint proximity + trip/route length similarity
#everything else: project pickup/dropoff onto the polyline, endpoint fallback
#direction rule (dropoff strictly after pickup along the route)
#detour-aware scoring (v1 weights 20/20/40)
#Output: ranked matches for a trip search. "No match" is a result, never an exception.

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from routing.geo import closest_point_on_segment, haversine_km
from rides.models import CandidateRoute, InputError, TripRequest, is_degenerate, validate_point, validate_polyline

from .policy import MatchingPolicy, default_matching_policy
from .projection import distance_along_polyline_km, endpoint_projection, project_point_to_polyline
from .results import (
    MatchResult,
    NoMatchReason,
    Projection,
    ProjectionSource,
    RankedMatch,
    quality_for_score,
)

logger = logging.getLogger(__name__)


def calculate_match_score(
    pickup_off_route_km: float,
    dropoff_off_route_km: float,
    detour_percent: float,
    policy: Optional[MatchingPolicy] = None,
) -> int:
    """
    score = 100
            - 20 * pickup_off_route / threshold
            - 20 * dropoff_off_route / threshold
            - 40 * detour_percent / max_detour_percent
    clamped to [0, 100] and rounded.

    Off-route distances are capped at the deviation threshold (an endpoint
    fallback can legitimately exceed it). A negative detour (projection noise)
    counts as zero.
    """
    policy = policy or default_matching_policy()
    threshold = policy.deviation_threshold_km

    pickup_km = min(pickup_off_route_km, threshold)
    dropoff_km = min(dropoff_off_route_km, threshold)
    detour = max(0.0, detour_percent)

    score = 100.0
    score -= (pickup_km / threshold) * 20
    score -= (dropoff_km / threshold) * 20
    score -= (detour / policy.max_detour_percent) * 40

    return int(round(max(0.0, min(100.0, score))))


def is_short_route(route: CandidateRoute, policy: MatchingPolicy) -> bool:
    if len(route.polyline) != 2:
        return False
    return haversine_km(route.start, route.end) < policy.short_route_cutoff_km


def _match_short_route(trip: TripRequest, route: CandidateRoute, policy: MatchingPolicy) -> MatchResult:
    """
    Endpoint-proximity matching for straight 2-point routes.

    Rules (in order):
      1) dropoff must fall after pickup along the single segment
      2) pickup within tolerance of the route start, dropoff within tolerance of the route end
      3) trip length / route length similarity >= min_distance_similarity
    score = 100 - 30 * pickup_to_start / tol - 30 * dropoff_to_end / tol + 40 * similarity
    """
    start, end = route.start, route.end
    tolerance = policy.short_route_tolerance_km

    _, pickup_t = closest_point_on_segment(trip.pickup, start, end)
    _, dropoff_t = closest_point_on_segment(trip.dropoff, start, end)
    if dropoff_t <= pickup_t:
        return MatchResult.no_match(
            NoMatchReason.DIRECTION_VIOLATED,
            "Dropoff comes before pickup on route",
        )

    pickup_to_start = haversine_km(trip.pickup, start)
    dropoff_to_end = haversine_km(trip.dropoff, end)

    if pickup_to_start > tolerance or dropoff_to_end > tolerance:
        return MatchResult.no_match(
            NoMatchReason.ENDPOINTS_TOO_FAR,
            "Route endpoints too far apart",
            distance_km=max(pickup_to_start, dropoff_to_end),
        )

    trip_km = haversine_km(trip.pickup, trip.dropoff)
    route_km = haversine_km(start, end)
    similarity = 1 - abs(trip_km - route_km) / max(trip_km, route_km)

    if similarity < policy.min_distance_similarity:
        return MatchResult.no_match(
            NoMatchReason.DISTANCE_DISSIMILAR,
            "Routes too dissimilar",
            similarity=similarity,
        )

    raw = 100 - (pickup_to_start / tolerance) * 30 - (dropoff_to_end / tolerance) * 30 + similarity * 40
    score = int(round(max(0.0, min(100.0, raw))))

    return MatchResult(
        is_match=True,
        match_score=score,
        match_quality=quality_for_score(score),
        pickup_projection=Projection(
            point=start,
            polyline_index=0,
            distance_off_route_km=pickup_to_start,
            via=ProjectionSource.ENDPOINT,
        ),
        dropoff_projection=Projection(
            point=end,
            polyline_index=1,
            distance_off_route_km=dropoff_to_end,
            via=ProjectionSource.ENDPOINT,
        ),
        segment_distance_km=route_km,
        direct_distance_km=trip_km,
        detour_percent=0.0,
        similarity=similarity,
    )


def _resolve(point, polyline, policy: MatchingPolicy) -> Tuple[Optional[Projection], float]:
    """
    Projection within the deviation threshold, else the endpoint fallback.
    Returns (projection or None, smallest distance observed).
    """
    projection = project_point_to_polyline(point, polyline, policy.exact_match_epsilon_km)
    if projection.distance_off_route_km <= policy.deviation_threshold_km:
        return projection, projection.distance_off_route_km

    fallback = endpoint_projection(point, polyline, policy.endpoint_threshold_km)
    if fallback is not None:
        return fallback, fallback.distance_off_route_km

    closest = min(
        projection.distance_off_route_km,
        haversine_km(point, polyline[0]),
        haversine_km(point, polyline[-1]),
    )
    return None, closest


def match_trip(
    trip: TripRequest,
    route: CandidateRoute,
    policy: Optional[MatchingPolicy] = None,
) -> MatchResult:
    """
    Score how well `trip` fits `route`.

    Raises InputError only for a malformed trip request. A route with
    missing/degenerate geometry is an invalid-geometry result.
    """
    policy = policy or default_matching_policy()

    trip = TripRequest(pickup=validate_point(trip.pickup), dropoff=validate_point(trip.dropoff))

    try:
        polyline = validate_polyline(route.polyline)
    except InputError as error:
        return MatchResult.no_match(NoMatchReason.INVALID_GEOMETRY, str(error))
    if is_degenerate(polyline):
        return MatchResult.no_match(NoMatchReason.INVALID_GEOMETRY, "Route polyline has no extent")

    if is_short_route(route, policy):
        result = _match_short_route(trip, route, policy)
        logger.debug(f"Route {route.id}: short-route match={result.is_match} score={result.match_score}")
        return result

    pickup, pickup_closest = _resolve(trip.pickup, polyline, policy)
    if pickup is None:
        return MatchResult.no_match(
            NoMatchReason.ENDPOINTS_TOO_FAR,
            "Pickup location not on route",
            distance_km=pickup_closest,
        )

    dropoff, dropoff_closest = _resolve(trip.dropoff, polyline, policy)
    if dropoff is None:
        return MatchResult.no_match(
            NoMatchReason.ENDPOINTS_TOO_FAR,
            "Dropoff location not on route",
            distance_km=dropoff_closest,
            pickup_projection=pickup,
        )

    if dropoff.route_position <= pickup.route_position:
        return MatchResult.no_match(
            NoMatchReason.DIRECTION_VIOLATED,
            "Dropoff comes before pickup on route",
            pickup_projection=pickup,
            dropoff_projection=dropoff,
        )

    segment_km = distance_along_polyline_km(polyline, pickup, dropoff)
    direct_km = haversine_km(trip.pickup, trip.dropoff)
    # coincident pickup/dropoff: nothing to detour from
    detour = ((segment_km - direct_km) / direct_km) * 100 if direct_km > 0 else 0.0

    score = calculate_match_score(
        pickup.distance_off_route_km,
        dropoff.distance_off_route_km,
        detour,
        policy,
    )

    logger.debug(
        f"Route {route.id}: pickup {pickup.distance_off_route_km:.2f} km ({pickup.via.value}), "
        f"dropoff {dropoff.distance_off_route_km:.2f} km ({dropoff.via.value}), "
        f"detour {detour:.1f}%, score {score}"
    )

    return MatchResult(
        is_match=True,
        match_score=score,
        match_quality=quality_for_score(score),
        pickup_projection=pickup,
        dropoff_projection=dropoff,
        segment_distance_km=segment_km,
        direct_distance_km=direct_km,
        detour_percent=round(detour, 2),
    )


def find_matching_rides(
    trip: TripRequest,
    candidates: Iterable[CandidateRoute],
    max_results: Optional[int] = None,
    policy: Optional[MatchingPolicy] = None,
) -> List[RankedMatch]:
    """
    Match `trip` against every candidate with usable geometry and return the
    matches, best score first, truncated to max_results.
    Zero matches is an empty list.
    """
    policy = policy or default_matching_policy()
    limit = max_results if max_results is not None else policy.default_max_results

    matches: List[RankedMatch] = []
    skipped = 0
    for route in candidates:
        if not route.has_valid_geometry():
            skipped += 1
            continue

        result = match_trip(trip, route, policy)
        if result.is_match:
            matches.append(RankedMatch(route=route, result=result))

    if skipped:
        logger.debug(f"Skipped {skipped} candidate(s) without usable geometry")

    # stable sort: equal scores keep candidate order
    matches.sort(key=lambda m: m.score, reverse=True)
    return matches[:limit]
