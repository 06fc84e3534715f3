"""
Purpose: Domain models for passenger bookings.
What it does:
- Booking (id, route, passenger, seats, pickup/dropoff, status, payment, reassignment history)
- Passenger (the attributes route constraints are checked against)
- ReassignmentRecord / ReassignmentHop (append-only history of route migrations)

Defines enums/constants:
- BookingStatus = PENDING | CONFIRMED | CANCELLED_PENDING_REASSIGNMENT | CANCELLED | COMPLETED
- PaymentStatus = PENDING | PAID | REFUND_PENDING

Rule: No matching, no persistence. Transitions live in state_machine.py.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from rides.models import Point, TripRequest


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED_PENDING_REASSIGNMENT = "CANCELLED_PENDING_REASSIGNMENT"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUND_PENDING = "REFUND_PENDING"


class Gender(str, Enum):
    FEMALE = "FEMALE"
    MALE = "MALE"
    UNSPECIFIED = "UNSPECIFIED"


@dataclass(frozen=True)
class Passenger:
    id: str
    name: str = ""
    gender: Gender = Gender.UNSPECIFIED
    is_verified: bool = False


@dataclass(frozen=True)
class ReassignmentHop:
    """
    One migration of a booking from one route to another.
    """
    from_route: str
    to_route: str
    timestamp: datetime
    match_score: int


@dataclass
class ReassignmentRecord:
    """
    History of a booking's migrations. Appended to, never shrunk.
    """
    booking_id: str
    original_route_id: str
    chain: List[ReassignmentHop] = field(default_factory=list)
    attempts: int = 0

    def append(self, hop: ReassignmentHop) -> None:
        self.chain.append(hop)
        self.attempts += 1

    @property
    def hops(self) -> int:
        return len(self.chain)


@dataclass
class Booking:
    """
    A passenger's seats on one route, with their own pickup/dropoff leg.
    """
    id: str
    route_id: str
    passenger: Passenger
    seats: int
    pickup: Point
    dropoff: Point

    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    total_price: float = 0.0

    #reassignment bookkeeping
    reassignment: Optional[ReassignmentRecord] = None
    reassigned_from: Optional[str] = None  # booking id this one replaced
    cancellation_reason: Optional[str] = None
    refund_initiated: bool = False

    pickup_eta: Optional[datetime] = None
    dropoff_eta: Optional[datetime] = None

    created_at: datetime = field(default_factory=datetime.now)

    @staticmethod # Factory method with a generated id
    def new(route_id: str, passenger: Passenger, seats: int, pickup: Point, dropoff: Point, **kwargs) -> Booking:
        return Booking(
            id=str(uuid.uuid4()),
            route_id=route_id,
            passenger=passenger,
            seats=seats,
            pickup=pickup,
            dropoff=dropoff,
            **kwargs,
        )

    def trip_request(self) -> TripRequest:
        """The booking's own leg, which is what a substitute ride has to cover."""
        return TripRequest.new(self.pickup, self.dropoff)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID
