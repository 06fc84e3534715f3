import pytest

from bookings.models import Booking, BookingStatus, Passenger, PaymentStatus
from bookings.state_machine import (
    BookingStateException,
    transition_to_cancelled_final,
    transition_to_pending_reassignment,
    transition_to_reassigned,
    withdraw_unconfirmed,
)
from bookings.store import InMemoryBookingStore


@pytest.fixture
def booking():
    return Booking.new(
        route_id="r1",
        passenger=Passenger(id="p1"),
        seats=1,
        pickup=(31.05, -17.82),
        dropoff=(31.08, -18.01),
        status=BookingStatus.CONFIRMED,
        payment_status=PaymentStatus.PAID,
    )


def test_reassigned_booking_is_cancelled_with_reason(booking):
    transition_to_pending_reassignment(booking)
    assert booking.status == BookingStatus.CANCELLED_PENDING_REASSIGNMENT

    transition_to_reassigned(booking, "r2")

    assert booking.status == BookingStatus.CANCELLED
    assert booking.cancellation_reason.endswith("reassigned to route r2")
    # money moves with the passenger, no refund
    assert booking.payment_status == PaymentStatus.PAID
    assert not booking.refund_initiated


def test_final_cancellation_flags_refund_for_paid_bookings(booking):
    transition_to_pending_reassignment(booking)
    transition_to_cancelled_final(booking)

    assert booking.status == BookingStatus.CANCELLED
    assert booking.payment_status == PaymentStatus.REFUND_PENDING
    assert booking.refund_initiated


@pytest.mark.parametrize("status", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
def test_closed_bookings_cannot_be_reassigned(booking, status):
    booking.status = status

    with pytest.raises(BookingStateException):
        transition_to_pending_reassignment(booking)


def test_parked_booking_stays_parked(booking):
    transition_to_pending_reassignment(booking)
    transition_to_pending_reassignment(booking)

    assert booking.status == BookingStatus.CANCELLED_PENDING_REASSIGNMENT


def test_transitions_require_pending_reassignment(booking):
    with pytest.raises(BookingStateException):
        transition_to_reassigned(booking, "r2")
    with pytest.raises(BookingStateException):
        transition_to_cancelled_final(booking)


def test_only_pending_bookings_can_be_withdrawn(booking):
    with pytest.raises(BookingStateException):
        withdraw_unconfirmed(booking, "filled up")

    booking.status = BookingStatus.PENDING
    withdraw_unconfirmed(booking, "filled up")
    assert booking.status == BookingStatus.CANCELLED
    assert booking.cancellation_reason == "filled up"


def test_store_add_is_idempotent(booking):
    store = InMemoryBookingStore([booking])
    duplicate = Booking(**{**booking.__dict__, "seats": 4})

    store.add(duplicate)

    assert store.get(booking.id).seats == 1
    assert store.for_route("r1", statuses=[BookingStatus.CONFIRMED]) == [booking]
    assert store.for_route("r1", statuses=[BookingStatus.PENDING]) == []
