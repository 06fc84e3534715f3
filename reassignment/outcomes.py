"""
Purpose: Per-booking results of a reassignment run, and the run's report.

Every affected booking ends in exactly one of:
- ReassignedOutcome    (moved to another route, new booking PENDING driver approval)
- NoAlternativeOutcome (nothing suitable: booking cancelled, refund flagged if paid)
- ErrorOutcome         (the attempt raised; recorded, the batch carried on)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Union

from .saga import ReassignmentSaga


@dataclass(frozen=True)
class ReassignedOutcome:
    booking_id: str
    passenger_id: str
    new_booking_id: str
    new_route_id: str
    seats: int
    match_score: int
    match_quality: str
    saga: ReassignmentSaga = field(compare=False, repr=False)


@dataclass(frozen=True)
class NoAlternativeOutcome:
    booking_id: str
    passenger_id: str
    reason: str
    refund_initiated: bool = False
    saga: ReassignmentSaga = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class ErrorOutcome:
    booking_id: str
    error: str
    saga: ReassignmentSaga = field(default=None, compare=False, repr=False)


Outcome = Union[ReassignedOutcome, NoAlternativeOutcome, ErrorOutcome]


@dataclass
class ReassignmentReport:
    cancelled_route_id: str
    total_bookings: int = 0
    reassigned: List[ReassignedOutcome] = field(default_factory=list)
    no_alternative: List[NoAlternativeOutcome] = field(default_factory=list)
    errors: List[ErrorOutcome] = field(default_factory=list)

    def add(self, outcome: Outcome) -> None:
        if isinstance(outcome, ReassignedOutcome):
            self.reassigned.append(outcome)
        elif isinstance(outcome, NoAlternativeOutcome):
            self.no_alternative.append(outcome)
        else:
            self.errors.append(outcome)

    @property
    def outcomes(self) -> List[Outcome]:
        return [*self.reassigned, *self.no_alternative, *self.errors]

    @property
    def is_complete(self) -> bool:
        return len(self.reassigned) + len(self.no_alternative) + len(self.errors) == self.total_bookings

    @property
    def seats_migrated(self) -> int:
        return sum(o.seats for o in self.reassigned)

    def partition(self) -> Dict[str, List[str]]:
        """Booking ids by outcome: migrated vs refunded/cancelled vs failed."""
        return {
            "reassigned": [o.booking_id for o in self.reassigned],
            "no_alternative": [o.booking_id for o in self.no_alternative],
            "errors": [o.booking_id for o in self.errors],
        }

    def summary(self) -> str:
        return (
            f"Route {self.cancelled_route_id}: {len(self.reassigned)} reassigned, "
            f"{len(self.no_alternative)} without alternative, {len(self.errors)} error(s) "
            f"out of {self.total_bookings}"
        )
