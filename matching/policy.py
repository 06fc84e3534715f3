"""
Purpose: Central configuration for trip matching (single source of truth).
What it does:

Stores all tunable thresholds:

DEVIATION_THRESHOLD_KM = 10  (off-route tolerance against the route's interior)

ENDPOINT_THRESHOLD_KM = 20   (looser tolerance near the route's start/end)

MAX_DETOUR_PERCENT = 20      (detour that costs the full 40 score points)

EXACT_MATCH_EPSILON_KM = 0.5 (a point this close to a vertex snaps to it)

SHORT_ROUTE_CUTOFF_KM = 50   (2-point routes shorter than this use endpoint matching)

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class MatchingPolicy:
    """
    Central configuration for passenger-to-route matching.

    Notes:
    - deviation_threshold_km and endpoint_threshold_km are two distinct budgets:
      the first applies to the route's interior shape, the second only when
      the point is compared against the first/last vertex.
    - the live safety corridor is a much tighter scale and lives in
      monitoring.policy, not here.
    """

    # --- Off-route tolerances ---
    deviation_threshold_km: float = 10.0
    endpoint_threshold_km: float = 20.0

    # a point within this distance of a vertex is treated as exactly on it
    exact_match_epsilon_km: float = 0.5

    # --- Scoring ---
    max_detour_percent: float = 20.0

    # --- Short (straight, 2-point) routes ---
    short_route_cutoff_km: float = 50.0
    short_route_tolerance_km: float = 20.0
    # trip length must be at least this similar to route length
    min_distance_similarity: float = 0.7

    # --- Search ---
    default_max_results: int = 20

    def validate(self) -> None:
        """
        Basic sanity checks. Call once at startup if you want.
        """
        if self.deviation_threshold_km <= 0:
            raise ValueError("deviation_threshold_km must be > 0")

        if self.endpoint_threshold_km <= 0:
            raise ValueError("endpoint_threshold_km must be > 0")

        if self.exact_match_epsilon_km < 0:
            raise ValueError("exact_match_epsilon_km must be >= 0")

        if self.max_detour_percent <= 0:
            raise ValueError("max_detour_percent must be > 0")

        if self.short_route_tolerance_km <= 0:
            raise ValueError("short_route_tolerance_km must be > 0")

        if not 0.0 <= self.min_distance_similarity <= 1.0:
            raise ValueError("min_distance_similarity must be within [0, 1]")

        if self.default_max_results <= 0:
            raise ValueError("default_max_results must be > 0")


def default_matching_policy() -> MatchingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = MatchingPolicy()
    p.validate()
    return p


def matching_policy_from_env() -> MatchingPolicy:
    """
    Default policy with thresholds overridden from the environment / .env:
    ROUTE_DEVIATION_THRESHOLD, ROUTE_ENDPOINT_THRESHOLD, MAX_DETOUR_PERCENT.
    """
    load_dotenv()
    defaults = MatchingPolicy()
    p = MatchingPolicy(
        deviation_threshold_km=float(os.getenv("ROUTE_DEVIATION_THRESHOLD", defaults.deviation_threshold_km)),
        endpoint_threshold_km=float(os.getenv("ROUTE_ENDPOINT_THRESHOLD", defaults.endpoint_threshold_km)),
        max_detour_percent=float(os.getenv("MAX_DETOUR_PERCENT", defaults.max_detour_percent)),
    )
    p.validate()
    return p
