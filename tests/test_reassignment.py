from datetime import datetime, timedelta

import pytest

from bookings.models import (
    Booking,
    BookingStatus,
    Gender,
    Passenger,
    PaymentStatus,
    ReassignmentHop,
    ReassignmentRecord,
)
from bookings.store import InMemoryBookingStore
from notifications.events import EventType
from notifications.sink import InMemoryNotifier
from reassignment.candidates import RejectReason, RankedCandidates, search_window
from reassignment.coordinator import CHAIN_LIMIT_REASON, NO_ALTERNATIVE_REASON, ReassignmentCoordinator
from reassignment.policy import ReassignmentPolicy
from reassignment.saga import ReassignmentSaga, SagaStep
from matching.policy import MatchingPolicy
from rides.models import CandidateRoute, GenderPolicy, RideStatus, RouteConstraints
from rides.store import InMemoryRideStore

NOW = datetime(2026, 3, 2, 6, 0)
DEPARTURE = NOW + timedelta(hours=3)
LINE = ((0.0, 0.0), (0.0, 0.5), (0.0, 1.0))
ZIGZAG = ((0.0, 0.0), (0.3, 0.5), (0.0, 1.0))


def make_route(route_id, owner_id, capacity=3, departure=DEPARTURE, polyline=LINE,
               constraints=None, price=10.0):
    return CandidateRoute(
        id=route_id,
        owner_id=owner_id,
        polyline=polyline,
        total_distance_km=111.2,
        total_duration_min=120.0,
        available_capacity=capacity,
        scheduled_departure=departure,
        constraints=constraints or RouteConstraints(),
        price_per_seat=price,
    )


def make_booking(booking_id, passenger_id, seats=1, paid=True, gender=Gender.FEMALE, verified=True,
                 pickup=(0.0, 0.1), dropoff=(0.0, 0.9), route_id="cancelled",
                 status=BookingStatus.CONFIRMED):
    return Booking(
        id=booking_id,
        route_id=route_id,
        passenger=Passenger(id=passenger_id, gender=gender, is_verified=verified),
        seats=seats,
        pickup=pickup,
        dropoff=dropoff,
        status=status,
        payment_status=PaymentStatus.PAID if paid else PaymentStatus.PENDING,
    )


class FakePayments:
    def __init__(self):
        self.refunds = []

    def initiate_refund(self, booking):
        self.refunds.append(booking.id)


class ExplodingNotifier:
    def publish(self, event):
        raise RuntimeError("push service down")


class RacingRideStore(InMemoryRideStore):
    """Another passenger grabs the seats of `lost` routes between search and decrement."""

    def __init__(self, routes, lost):
        super().__init__(routes)
        self.lost = set(lost)

    def try_decrement_capacity(self, route_id, seats):
        if route_id in self.lost:
            self.lost.discard(route_id)
            return False
        return super().try_decrement_capacity(route_id, seats)


class FlakyBookingStore(InMemoryBookingStore):
    """Fails once when closing `booking_id` (the FINALIZE_OLD write)."""

    def __init__(self, bookings, booking_id):
        super().__init__(bookings)
        self.booking_id = booking_id
        self.failed = False

    def save(self, booking):
        if booking.id == self.booking_id and booking.status == BookingStatus.CANCELLED and not self.failed:
            self.failed = True
            raise RuntimeError("database unavailable")
        super().save(booking)


class UnreachableRideStore(InMemoryRideStore):
    """The first candidate search fails, later ones go through."""

    def __init__(self, routes):
        super().__init__(routes)
        self.failed = False

    def find_active(self, *args, **kwargs):
        if not self.failed:
            self.failed = True
            raise RuntimeError("ride index unavailable")
        return super().find_active(*args, **kwargs)


def build(routes, bookings, ride_store=None, booking_store=None, **kwargs):
    ride_store = ride_store or InMemoryRideStore(routes)
    booking_store = booking_store or InMemoryBookingStore(bookings)
    notifier = kwargs.pop("notifier", InMemoryNotifier())
    payments = FakePayments()
    coordinator = ReassignmentCoordinator(
        ride_store,
        booking_store,
        notifier=notifier,
        payments=payments,
        clock=lambda: NOW,
        **kwargs,
    )
    return coordinator, ride_store, booking_store, notifier, payments


@pytest.fixture
def cancelled_route():
    return make_route("cancelled", "d0")


# --- Search window ---

def test_search_window_before_departure():
    start, end = search_window(DEPARTURE, NOW, ReassignmentPolicy())

    assert start == DEPARTURE - timedelta(hours=24)
    assert end == DEPARTURE + timedelta(hours=48)


def test_search_window_far_ahead_starts_now():
    departure = NOW + timedelta(hours=48)
    start, end = search_window(departure, NOW, ReassignmentPolicy())

    assert start == NOW
    assert end == departure + timedelta(hours=48)


def test_search_window_after_departure_starts_now():
    departure = NOW - timedelta(hours=2)
    assert search_window(departure, NOW, ReassignmentPolicy()) == (NOW, departure + timedelta(hours=48))


# --- Outcomes ---

def test_two_bookings_one_seat_left(cancelled_route):
    alternative = make_route("alt", "d1", capacity=1, departure=NOW + timedelta(hours=5), price=12.5)
    coordinator, rides, bookings, notifier, payments = build(
        [cancelled_route, alternative],
        [make_booking("b1", "p1"), make_booking("b2", "p2")],
    )

    report = coordinator.cancel_route("cancelled")

    # 1. exactly one migrated, the other refunded
    assert report.partition() == {"reassigned": ["b1"], "no_alternative": ["b2"], "errors": []}
    assert report.is_complete
    assert rides.get("alt").available_capacity == 0
    assert rides.get("cancelled").status == RideStatus.CANCELLED

    # 2. the new booking waits for the new driver
    outcome = report.reassigned[0]
    new = bookings.get(outcome.new_booking_id)
    assert new.route_id == "alt"
    assert new.status == BookingStatus.PENDING
    assert new.total_price == 12.5
    assert new.reassigned_from == "b1"
    assert new.pickup_eta == alternative.scheduled_departure
    assert (new.dropoff_eta - alternative.scheduled_departure).total_seconds() == pytest.approx(3600)
    assert outcome.match_score == 100

    # 3. the old booking is closed with its history
    old = bookings.get("b1")
    assert old.status == BookingStatus.CANCELLED
    assert "reassigned to route alt" in old.cancellation_reason
    assert [(h.from_route, h.to_route) for h in old.reassignment.chain] == [("cancelled", "alt")]
    assert new.reassignment.hops == 1
    assert new.reassignment.chain is not old.reassignment.chain

    # 4. the unlucky one gets a refund
    refunded = bookings.get("b2")
    assert refunded.status == BookingStatus.CANCELLED
    assert refunded.payment_status == PaymentStatus.REFUND_PENDING
    assert refunded.refund_initiated
    assert payments.refunds == ["b2"]
    assert report.no_alternative[0].reason == NO_ALTERNATIVE_REASON

    # 5. everyone hears about it
    assert [e.recipient_id for e in notifier.of_type(EventType.BOOKING_REASSIGNED)] == ["p1"]
    assert [e.recipient_id for e in notifier.of_type(EventType.NEW_BOOKING_REASSIGNED)] == ["d1"]
    assert [e.recipient_id for e in notifier.of_type(EventType.RIDE_CANCELLED_NO_ALTERNATIVE)] == ["p2"]


def test_every_booking_gets_exactly_one_outcome_and_seats_add_up(cancelled_route):
    alternatives = [
        make_route("alt1", "d1", capacity=2),
        make_route("alt2", "d2", capacity=3),
        make_route("alt3", "d3", capacity=1),
    ]
    seats = [1, 2, 1, 3, 1]
    coordinator, rides, _, _, _ = build(
        [cancelled_route] + alternatives,
        [make_booking(f"b{i}", f"p{i}", seats=n) for i, n in enumerate(seats)],
    )
    before = sum(rides.get(r.id).available_capacity for r in alternatives)

    report = coordinator.cancel_route("cancelled")

    after = sum(rides.get(r.id).available_capacity for r in alternatives)
    assert len(report.outcomes) == len(seats)
    assert report.is_complete
    assert before - after == report.seats_migrated
    assert all(rides.get(r.id).available_capacity >= 0 for r in alternatives)
    assert all(o.saga.is_consistent() and o.saga.is_finished for o in report.outcomes)


def test_unpaid_booking_without_alternative_is_not_refunded(cancelled_route):
    coordinator, _, bookings, _, payments = build([cancelled_route], [make_booking("b1", "p1", paid=False)])

    report = coordinator.cancel_route("cancelled")

    assert not report.no_alternative[0].refund_initiated
    assert bookings.get("b1").payment_status == PaymentStatus.PENDING
    assert payments.refunds == []
    assert report.no_alternative[0].saga.has(SagaStep.EXHAUSTED)


def test_completed_bookings_are_left_alone(cancelled_route):
    coordinator, _, bookings, _, _ = build(
        [cancelled_route, make_route("alt", "d1")],
        [make_booking("b1", "p1"), make_booking("done", "p2", status=BookingStatus.COMPLETED)],
    )

    report = coordinator.cancel_route("cancelled")

    assert report.total_bookings == 1
    assert bookings.get("done").status == BookingStatus.COMPLETED


# --- Candidate exclusions ---

def test_same_driver_routes_are_excluded_by_default(cancelled_route):
    routes = [cancelled_route, make_route("own", "d0")]

    coordinator, _, _, _, _ = build(routes, [make_booking("b1", "p1")])
    assert coordinator.cancel_route("cancelled").partition()["no_alternative"] == ["b1"]

    coordinator, _, _, _, _ = build(routes, [make_booking("b1", "p1")],
                                    policy=ReassignmentPolicy(exclude_same_owner=False))
    report = coordinator.cancel_route("cancelled")
    assert report.reassigned[0].new_route_id == "own"


def test_routes_outside_the_window_are_ignored(cancelled_route):
    too_late = make_route("late", "d1", departure=DEPARTURE + timedelta(hours=49))
    coordinator, _, _, _, _ = build([cancelled_route, too_late], [make_booking("b1", "p1")])

    assert coordinator.cancel_route("cancelled").partition()["no_alternative"] == ["b1"]


@pytest.mark.parametrize("constraints, passenger", [
    (RouteConstraints(gender_policy=GenderPolicy.FEMALE_ONLY), dict(gender=Gender.MALE)),
    (RouteConstraints(verified_only=True), dict(verified=False)),
])
def test_route_constraints_reject_the_passenger(cancelled_route, constraints, passenger):
    restricted = make_route("restricted", "d1", constraints=constraints)
    coordinator, rides, _, _, _ = build([cancelled_route, restricted], [make_booking("b1", "p1", **passenger)])

    report = coordinator.cancel_route("cancelled")

    outcome = report.no_alternative[0]
    assert outcome.saga.abandoned_routes == ["restricted"]
    assert rides.get("restricted").available_capacity == 3


def test_candidate_verdicts_explain_rejections():
    booking = make_booking("b1", "p1", seats=2, gender=Gender.MALE)
    routes = [
        make_route("small", "d1", capacity=1),
        make_route("ladies", "d2", constraints=RouteConstraints(gender_policy=GenderPolicy.FEMALE_ONLY)),
        make_route("open", "d3"),
    ]

    verdicts = list(RankedCandidates.search(booking, routes, MatchingPolicy(), ReassignmentPolicy()))

    assert [(v.route.id, v.accepted, v.reason) for v in verdicts] == [
        ("small", False, RejectReason.INSUFFICIENT_CAPACITY),
        ("ladies", False, RejectReason.GENDER_POLICY),
        ("open", True, None),
    ]


def test_low_scoring_candidates_are_dropped(cancelled_route):
    detour = make_route("detour", "d1", polyline=ZIGZAG)

    coordinator, _, _, _, _ = build([cancelled_route, detour], [make_booking("b1", "p1")])
    assert coordinator.cancel_route("cancelled").partition()["no_alternative"] == ["b1"]

    coordinator, _, _, _, _ = build([cancelled_route, detour], [make_booking("b1", "p1")],
                                    policy=ReassignmentPolicy(min_score=20))
    assert coordinator.cancel_route("cancelled").reassigned[0].new_route_id == "detour"


def test_matching_uses_the_booking_leg_not_the_route(cancelled_route):
    # only covers the northern half of the cancelled route
    northern = make_route("northern", "d1", polyline=((0.0, 0.55), (0.0, 0.75), (0.0, 1.0)))
    coordinator, _, _, _, _ = build(
        [cancelled_route, northern],
        [make_booking("b1", "p1", pickup=(0.0, 0.6), dropoff=(0.0, 0.95))],
    )

    report = coordinator.cancel_route("cancelled")

    assert report.reassigned[0].new_route_id == "northern"


# --- Guards and failures ---

def test_chain_limit_stops_further_moves(cancelled_route):
    hop = ReassignmentHop(from_route="older", to_route="cancelled", timestamp=NOW, match_score=80)
    booking = make_booking("b1", "p1")
    booking.reassignment = ReassignmentRecord(booking_id="b1", original_route_id="first", chain=[hop] * 3)

    coordinator, rides, _, _, payments = build([cancelled_route, make_route("alt", "d1")], [booking])
    report = coordinator.cancel_route("cancelled")

    assert report.no_alternative[0].reason == CHAIN_LIMIT_REASON
    assert rides.get("alt").available_capacity == 3
    assert payments.refunds == ["b1"]


def test_one_bad_booking_does_not_stop_the_batch(cancelled_route):
    coordinator, _, _, _, _ = build([cancelled_route, make_route("alt", "d1")], [])
    broken = make_booking("broken", "p1", status=BookingStatus.CANCELLED)
    fine = make_booking("fine", "p2")

    report = coordinator.find_alternative_rides(cancelled_route, [broken, fine])

    assert report.partition() == {"reassigned": ["fine"], "no_alternative": [], "errors": ["broken"]}
    assert "CANCELLED" in report.errors[0].error
    assert report.is_complete


def test_lost_capacity_race_moves_on_to_next_candidate(cancelled_route):
    routes = [cancelled_route, make_route("alt_a", "d1"), make_route("alt_b", "d2")]
    rides = RacingRideStore(routes, lost=["alt_a"])
    coordinator, _, bookings, _, _ = build(routes, [make_booking("b1", "p1")], ride_store=rides)

    report = coordinator.cancel_route("cancelled")

    outcome = report.reassigned[0]
    assert outcome.new_route_id == "alt_b"
    assert outcome.saga.abandoned_routes == ["alt_a"]
    assert outcome.saga.is_consistent()
    assert rides.get("alt_a").available_capacity == 3
    assert rides.get("alt_b").available_capacity == 2

    withdrawn = [b for b in bookings.all() if b.route_id == "alt_a"]
    assert len(withdrawn) == 1
    assert withdrawn[0].status == BookingStatus.CANCELLED


def test_failed_finalize_is_rolled_back(cancelled_route):
    routes = [cancelled_route, make_route("alt_a", "d1"), make_route("alt_b", "d2")]
    booking = make_booking("b1", "p1")
    store = FlakyBookingStore([booking], booking_id="b1")
    coordinator, rides, bookings, _, _ = build(routes, [], booking_store=store)

    report = coordinator.cancel_route("cancelled")

    # 1. seats on the first candidate were handed back
    assert rides.get("alt_a").available_capacity == 3
    assert report.reassigned[0].new_route_id == "alt_b"
    # 2. only the successful move is in the history
    assert [h.to_route for h in bookings.get("b1").reassignment.chain] == ["alt_b"]
    assert report.reassigned[0].saga.is_consistent()


def test_interrupted_search_can_be_retried(cancelled_route):
    routes = [cancelled_route, make_route("alt", "d1")]
    rides = UnreachableRideStore(routes)
    coordinator, _, bookings, _, payments = build(routes, [make_booking("b1", "p1")], ride_store=rides)

    # 1. search fails: the booking stays parked, nothing refunded
    first = coordinator.cancel_route("cancelled")
    assert first.partition() == {"reassigned": [], "no_alternative": [], "errors": ["b1"]}
    assert bookings.get("b1").status == BookingStatus.CANCELLED_PENDING_REASSIGNMENT
    assert payments.refunds == []

    # 2. running it again picks the parked booking up
    second = coordinator.cancel_route("cancelled")
    assert second.partition() == {"reassigned": ["b1"], "no_alternative": [], "errors": []}
    assert second.reassigned[0].new_route_id == "alt"
    assert bookings.get("b1").status == BookingStatus.CANCELLED
    assert rides.get("alt").available_capacity == 2


def test_notification_failure_does_not_undo_migration(cancelled_route):
    coordinator, rides, bookings, _, _ = build(
        [cancelled_route, make_route("alt", "d1")],
        [make_booking("b1", "p1")],
        notifier=ExplodingNotifier(),
    )

    report = coordinator.cancel_route("cancelled")

    assert report.partition()["reassigned"] == ["b1"]
    assert rides.get("alt").available_capacity == 2
    assert bookings.get("b1").status == BookingStatus.CANCELLED


# --- Saga and stats ---

def test_saga_consistency_markers():
    saga = ReassignmentSaga(booking_id="b1")
    saga.mark(SagaStep.CANCEL_OLD, NOW)
    saga.mark(SagaStep.SEARCH, NOW)
    assert saga.is_consistent()

    saga.mark(SagaStep.CREATE_NEW, NOW)
    assert not saga.is_consistent()
    saga.mark(SagaStep.DECREMENT_CAPACITY, NOW)
    assert not saga.is_consistent()
    saga.mark(SagaStep.FINALIZE_OLD, NOW)
    assert saga.is_consistent()
    assert not saga.is_finished

    saga.mark(SagaStep.NOTIFY, NOW)
    assert saga.is_finished
    assert saga.steps[0] == SagaStep.CANCEL_OLD


def test_reassignment_stats_per_driver(cancelled_route):
    coordinator, _, _, _, _ = build(
        [cancelled_route, make_route("alt", "d1", capacity=1)],
        [make_booking("b1", "p1"), make_booking("b2", "p2")],
    )
    coordinator.cancel_route("cancelled")

    assert coordinator.reassignment_stats("d0") == {"total_reassignments": 1, "successful_reassignments": 1}
    assert coordinator.reassignment_stats("d1") == {"total_reassignments": 0, "successful_reassignments": 0}
