"""
Trip matching package.

Public API:
- Policy: MatchingPolicy, default_matching_policy, matching_policy_from_env
- Projection: project_point_to_polyline
- Matching: match_trip, calculate_match_score, find_matching_rides
- Results: MatchResult, MatchQuality, NoMatchReason, Projection, RankedMatch
"""
from routing.eta_service import estimate_eta_minutes

from .matcher import calculate_match_score, find_matching_rides, match_trip
from .policy import MatchingPolicy, default_matching_policy, matching_policy_from_env
from .projection import endpoint_projection, project_point_to_polyline
from .results import (
    MatchQuality,
    MatchResult,
    NoMatchReason,
    Projection,
    ProjectionSource,
    RankedMatch,
    quality_for_score,
)

__all__ = ["MatchingPolicy",
           "default_matching_policy",
             "matching_policy_from_env",
             "project_point_to_polyline",
             "endpoint_projection",
               "match_trip",
               "calculate_match_score",
               "find_matching_rides",
               "estimate_eta_minutes",
               "MatchQuality",
               "MatchResult",
               "NoMatchReason",
               "Projection",
               "ProjectionSource",
               "RankedMatch",
               "quality_for_score",
               ]
