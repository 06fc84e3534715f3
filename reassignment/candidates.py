#Purpose: Candidate search for a booking whose ride was cancelled.
#Takes the cancelled route + one affected booking
#Produces a ranked iterator of per-candidate verdicts
#Typical responsibilities:
#search window around the cancelled departure (-24h / +48h)
#exclusions (the cancelled route itself, optionally the same driver's other routes)
#route matching on the BOOKING's own pickup/dropoff, lower bar than a fresh search
#per-candidate constraint checks (seats, gender policy, verified-only)
#Output: CandidateVerdict per ranked candidate. Rejections are values, not exceptions.

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

from bookings.models import Booking, Gender
from matching.matcher import find_matching_rides
from matching.policy import MatchingPolicy
from matching.results import RankedMatch
from rides.models import CandidateRoute, GenderPolicy

from .policy import ReassignmentPolicy

logger = logging.getLogger(__name__)


class RejectReason(str, Enum):
    INSUFFICIENT_CAPACITY = "insufficient-capacity"
    GENDER_POLICY = "gender-policy"
    VERIFIED_ONLY = "verified-only"


@dataclass(frozen=True)
class CandidateVerdict:
    match: RankedMatch
    accepted: bool
    reason: Optional[RejectReason] = None

    @property
    def route(self) -> CandidateRoute:
        return self.match.route


def search_window(departure: datetime, now: datetime, policy: ReassignmentPolicy) -> Tuple[datetime, datetime]:
    """
    start: now, or (departure - window_before) if that is earlier and the ride has not left yet
    end:   departure + window_after
    """
    if now < departure:
        start = min(now, departure - timedelta(hours=policy.window_before_hours))
    else:
        start = now
    end = departure + timedelta(hours=policy.window_after_hours)
    return start, end


def eligible_routes(
        ride_store,
        cancelled_route: CandidateRoute,
        window: Tuple[datetime, datetime],
        policy: ReassignmentPolicy,
) -> List[CandidateRoute]:
    """
    ACTIVE routes with at least one free seat departing inside the window,
    minus the cancelled route (and the same driver's routes, if configured).
    """
    start, end = window
    routes = ride_store.find_active(departure_from=start, departure_to=end, min_capacity=1)

    eligible = []
    for route in routes:
        if route.id == cancelled_route.id:
            continue
        if policy.exclude_same_owner and route.owner_id == cancelled_route.owner_id:
            continue
        eligible.append(route)
    return eligible


def constraint_violation(route: CandidateRoute, booking: Booking) -> Optional[RejectReason]:
    if route.available_capacity < booking.seats:
        return RejectReason.INSUFFICIENT_CAPACITY

    passenger = booking.passenger
    policy = route.constraints.gender_policy
    if policy == GenderPolicy.FEMALE_ONLY and passenger.gender != Gender.FEMALE:
        return RejectReason.GENDER_POLICY
    if policy == GenderPolicy.MALE_ONLY and passenger.gender != Gender.MALE:
        return RejectReason.GENDER_POLICY

    if route.constraints.verified_only and not passenger.is_verified:
        return RejectReason.VERIFIED_ONLY

    return None


class RankedCandidates:
    """
    Ranked candidate routes for one booking, best match first.

    Iterating yields a CandidateVerdict for every ranked match; the caller
    acts on accepted ones and simply moves on from the rest.
    """

    def __init__(self, booking: Booking, matches: Sequence[RankedMatch]):
        self.booking = booking
        self.matches = list(matches)

    def __iter__(self) -> Iterator[CandidateVerdict]:
        for match in self.matches:
            reason = constraint_violation(match.route, self.booking)
            if reason is not None:
                logger.debug(f"Booking {self.booking.id}: route {match.route.id} rejected ({reason.value})")
                yield CandidateVerdict(match=match, accepted=False, reason=reason)
            else:
                yield CandidateVerdict(match=match, accepted=True)

    def __len__(self) -> int:
        return len(self.matches)

    @classmethod
    def search(
            cls,
            booking: Booking,
            routes: Sequence[CandidateRoute],
            matching_policy: MatchingPolicy,
            policy: ReassignmentPolicy,
    ) -> RankedCandidates:
        trip = booking.trip_request()
        matches = find_matching_rides(trip, routes, max_results=policy.max_candidates, policy=matching_policy)
        qualified = [m for m in matches if m.score >= policy.min_score]

        logger.info(
            f"Booking {booking.id}: {len(routes)} route(s) in window, {len(matches)} matched, "
            f"{len(qualified)} at or above score {policy.min_score}"
        )
        return cls(booking, qualified)
