from typing import Optional

from .models import Booking, BookingStatus, PaymentStatus

# statuses a booking can be in when its route gets cancelled
REASSIGNABLE_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    # left parked by an interrupted run, picked up again on retry
    BookingStatus.CANCELLED_PENDING_REASSIGNMENT,
)


class BookingStateException(Exception):
    """Raised when an invalid booking transition is attempted."""
    pass


def transition_to_pending_reassignment(booking: Booking) -> Booking:
    """
    Called when the driver cancels the route this booking sits on.
    The booking is parked until the coordinator either migrates it or gives up.
    A booking that is already parked stays as it is.
    """
    if booking.status == BookingStatus.CANCELLED_PENDING_REASSIGNMENT:
        return booking

    if booking.status not in REASSIGNABLE_STATUSES:
        raise BookingStateException(
            f"Cannot start reassignment of booking {booking.id} from {booking.status.value}"
        )

    booking.status = BookingStatus.CANCELLED_PENDING_REASSIGNMENT
    return booking


def transition_to_reassigned(booking: Booking, new_route_id: str) -> Booking:
    """
    Migration succeeded: the old booking is closed with a reassignment reason.
    """
    if booking.status != BookingStatus.CANCELLED_PENDING_REASSIGNMENT:
        raise BookingStateException(f"Booking {booking.id} is not pending reassignment. Current: {booking.status.value}")

    booking.status = BookingStatus.CANCELLED
    booking.cancellation_reason = f"Ride cancelled by driver - reassigned to route {new_route_id}"
    return booking


def transition_to_cancelled_final(booking: Booking, reason: Optional[str] = None) -> Booking:
    """
    No alternative found: close the booking and flag a refund if money was captured.
    """
    if booking.status != BookingStatus.CANCELLED_PENDING_REASSIGNMENT:
        raise BookingStateException(f"Booking {booking.id} is not pending reassignment. Current: {booking.status.value}")

    booking.status = BookingStatus.CANCELLED
    booking.cancellation_reason = reason or "Ride cancelled by driver - no alternative rides available"

    if booking.payment_status == PaymentStatus.PAID:
        booking.payment_status = PaymentStatus.REFUND_PENDING
        booking.refund_initiated = True

    return booking


def withdraw_unconfirmed(booking: Booking, reason: str) -> Booking:
    """
    Compensation: a freshly created reassignment booking that never got its seats.
    """
    if booking.status != BookingStatus.PENDING:
        raise BookingStateException(f"Only PENDING bookings can be withdrawn. Booking {booking.id} is {booking.status.value}")

    booking.status = BookingStatus.CANCELLED
    booking.cancellation_reason = reason
    return booking
