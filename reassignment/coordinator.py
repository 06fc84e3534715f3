"""
Purpose: Orchestrator for driver cancellations (the "glue").
What it does:
Takes a cancelled route and its affected bookings and, booking by booking,
searches the other active routes for the booking's own leg, migrates it to the
first candidate that passes every check, or gives up with a refund signal.

Each booking runs as its own saga (see saga.py). A failure in one booking is
recorded as an ErrorOutcome and never stops the others.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from bookings.models import Booking, BookingStatus, PaymentStatus, ReassignmentHop, ReassignmentRecord
from bookings.state_machine import (
    REASSIGNABLE_STATUSES,
    transition_to_cancelled_final,
    transition_to_pending_reassignment,
    transition_to_reassigned,
    withdraw_unconfirmed,
)
from matching.policy import MatchingPolicy, default_matching_policy
from matching.results import RankedMatch
from notifications.events import NewReassignedBookingEvent, NoAlternativeEvent, ReassignmentSuccessEvent
from rides.models import CandidateRoute, RideStatus
from routing.eta_service import estimate_eta_minutes

from .candidates import RankedCandidates, eligible_routes, search_window
from .outcomes import ErrorOutcome, NoAlternativeOutcome, Outcome, ReassignedOutcome, ReassignmentReport
from .policy import ReassignmentPolicy, default_reassignment_policy
from .saga import ReassignmentSaga, SagaStep

logger = logging.getLogger(__name__)

NO_ALTERNATIVE_REASON = "No suitable alternative rides found"
CHAIN_LIMIT_REASON = "Reassignment chain limit reached"


class ReassignmentCoordinator:
    """
    Collaborators are duck-typed:
      ride_store    : find_active, get, set_status, try_decrement_capacity, increment_capacity
      booking_store : add, save, for_route, all
      notifier      : publish(event)
      payments      : initiate_refund(booking)   (optional)
    """

    def __init__(
            self,
            ride_store,
            booking_store,
            notifier=None,
            payments=None,
            matching_policy: Optional[MatchingPolicy] = None,
            policy: Optional[ReassignmentPolicy] = None,
            clock: Optional[Callable[[], datetime]] = None,
    ):
        self.ride_store = ride_store
        self.booking_store = booking_store
        self.notifier = notifier
        self.payments = payments
        self.matching_policy = matching_policy or default_matching_policy()
        self.policy = policy or default_reassignment_policy()
        self.clock = clock or datetime.now

    # --- Entry points ---

    def cancel_route(self, route_id: str) -> ReassignmentReport:
        """
        Driver cancelled: close the route and reassign every live booking on it.
        """
        route = self.ride_store.set_status(route_id, RideStatus.CANCELLED)
        affected = self.booking_store.for_route(route_id, statuses=REASSIGNABLE_STATUSES)
        logger.info(f"Route {route_id} cancelled by {route.owner_id}, {len(affected)} booking(s) affected")
        return self.find_alternative_rides(route, affected)

    def find_alternative_rides(self, cancelled_route: CandidateRoute,
                               affected_bookings: Sequence[Booking]) -> ReassignmentReport:
        report = ReassignmentReport(cancelled_route_id=cancelled_route.id, total_bookings=len(affected_bookings))

        window = search_window(cancelled_route.scheduled_departure, self.clock(), self.policy)
        logger.info(
            f"Reassigning {len(affected_bookings)} booking(s) from route {cancelled_route.id}, "
            f"window {window[0].isoformat()} -> {window[1].isoformat()}"
        )

        for booking in affected_bookings:
            saga = ReassignmentSaga(booking_id=booking.id)
            try:
                outcome = self._reassign_booking(booking, cancelled_route, window, saga)
            except Exception as error:
                logger.error(f"Error reassigning booking {booking.id}: {error}")
                outcome = ErrorOutcome(booking_id=booking.id, error=str(error), saga=saga)
            report.add(outcome)

        logger.info(report.summary())
        return report

    # --- One booking ---

    def _reassign_booking(self, booking: Booking, cancelled_route: CandidateRoute, window,
                          saga: ReassignmentSaga) -> Outcome:
        transition_to_pending_reassignment(booking)
        self.booking_store.save(booking)
        saga.mark(SagaStep.CANCEL_OLD, self.clock())

        if booking.reassignment is not None and booking.reassignment.hops >= self.policy.max_chain_length:
            logger.info(f"Booking {booking.id}: already moved {booking.reassignment.hops} time(s), not moving again")
            return self._exhaust(booking, cancelled_route, saga, CHAIN_LIMIT_REASON)

        # candidates are re-read for every booking: earlier bookings may have taken seats
        routes = eligible_routes(self.ride_store, cancelled_route, window, self.policy)
        candidates = RankedCandidates.search(booking, routes, self.matching_policy, self.policy)
        saga.mark(SagaStep.SEARCH, self.clock())

        history = booking.reassignment
        for verdict in candidates:
            if not verdict.accepted:
                saga.abandoned_routes.append(verdict.route.id)
                continue

            try:
                new_booking = self._migrate(booking, cancelled_route, verdict.match, saga)
            except Exception as error:
                logger.warning(f"Booking {booking.id}: failed to move to route {verdict.route.id}: {error}")
                booking.reassignment = history
                self._compensate(booking, verdict.route, saga)
                saga.abandoned_routes.append(verdict.route.id)
                continue

            if new_booking is None:
                saga.abandoned_routes.append(verdict.route.id)
                continue

            self._notify_success(booking, new_booking, cancelled_route, verdict)
            saga.mark(SagaStep.NOTIFY, self.clock())
            return ReassignedOutcome(
                booking_id=booking.id,
                passenger_id=booking.passenger.id,
                new_booking_id=new_booking.id,
                new_route_id=new_booking.route_id,
                seats=booking.seats,
                match_score=verdict.match.score,
                match_quality=verdict.match.result.match_quality.value,
                saga=saga,
            )

        return self._exhaust(booking, cancelled_route, saga, NO_ALTERNATIVE_REASON)

    def _migrate(self, booking: Booking, cancelled_route: CandidateRoute, match: RankedMatch,
                 saga: ReassignmentSaga) -> Optional[Booking]:
        """
        CREATE_NEW -> DECREMENT_CAPACITY -> FINALIZE_OLD for one candidate.
        Returns None when the route lost its seats in the meantime (the new
        booking is withdrawn again).
        """
        route = match.route
        now = self.clock()

        record = booking.reassignment or ReassignmentRecord(
            booking_id=booking.id,
            original_route_id=cancelled_route.id,
        )

        new_booking = Booking.new(
            route_id=route.id,
            passenger=booking.passenger,
            seats=booking.seats,
            pickup=booking.pickup,
            dropoff=booking.dropoff,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            total_price=route.price_per_seat * booking.seats,
            reassigned_from=booking.id,
            pickup_eta=self._eta(route, match.result.pickup_projection.polyline_index),
            dropoff_eta=self._eta(route, match.result.dropoff_projection.polyline_index),
            created_at=now,
        )
        self.booking_store.add(new_booking)
        saga.new_booking_id = new_booking.id
        saga.new_route_id = route.id
        saga.mark(SagaStep.CREATE_NEW, now)

        if not self.ride_store.try_decrement_capacity(route.id, booking.seats):
            logger.info(f"Booking {booking.id}: route {route.id} no longer has {booking.seats} seat(s)")
            withdraw_unconfirmed(new_booking, f"Route {route.id} filled up during reassignment")
            self.booking_store.save(new_booking)
            saga.undo(SagaStep.CREATE_NEW)
            saga.new_booking_id = None
            saga.new_route_id = None
            return None
        saga.mark(SagaStep.DECREMENT_CAPACITY, self.clock())

        transition_to_reassigned(booking, route.id)
        history = replace(record, chain=list(record.chain))
        history.append(ReassignmentHop(
            from_route=booking.route_id,
            to_route=route.id,
            timestamp=now,
            match_score=match.score,
        ))
        booking.reassignment = history
        self.booking_store.save(booking)

        # the new booking carries the history forward for the chain guard
        new_booking.reassignment = replace(history, chain=list(history.chain))
        self.booking_store.save(new_booking)
        saga.mark(SagaStep.FINALIZE_OLD, self.clock())

        logger.info(
            f"Booking {booking.id} moved {booking.route_id} -> {route.id} "
            f"as {new_booking.id} (score {match.score})"
        )
        return new_booking

    def _compensate(self, booking: Booking, route: CandidateRoute, saga: ReassignmentSaga) -> None:
        """
        Undo whatever part of a failed migration already happened.
        """
        if saga.has(SagaStep.FINALIZE_OLD):
            return

        if saga.has(SagaStep.DECREMENT_CAPACITY):
            self.ride_store.increment_capacity(route.id, booking.seats)
            saga.undo(SagaStep.DECREMENT_CAPACITY)

        if saga.has(SagaStep.CREATE_NEW) and saga.new_booking_id is not None:
            new_booking = self.booking_store.get(saga.new_booking_id)
            if new_booking is not None and new_booking.status == BookingStatus.PENDING:
                withdraw_unconfirmed(new_booking, "Reassignment rolled back")
                self.booking_store.save(new_booking)
            saga.undo(SagaStep.CREATE_NEW)
            saga.new_booking_id = None
            saga.new_route_id = None

        # the old booking must still be waiting for a decision
        if booking.status != BookingStatus.CANCELLED_PENDING_REASSIGNMENT:
            booking.status = BookingStatus.CANCELLED_PENDING_REASSIGNMENT
            booking.cancellation_reason = None
            self.booking_store.save(booking)

    def _exhaust(self, booking: Booking, cancelled_route: CandidateRoute, saga: ReassignmentSaga,
                 reason: str) -> NoAlternativeOutcome:
        transition_to_cancelled_final(booking, f"Ride cancelled by driver - {reason.lower()}")
        self.booking_store.save(booking)
        saga.mark(SagaStep.EXHAUSTED, self.clock())
        saga.mark(SagaStep.FINALIZE_OLD, self.clock())

        if booking.refund_initiated and self.payments is not None:
            try:
                self.payments.initiate_refund(booking)
            except Exception as error:
                # stays REFUND_PENDING for the payment side to retry
                logger.error(f"Refund request for booking {booking.id} failed: {error}")

        logger.info(f"Booking {booking.id}: no alternative ({reason}), refund={booking.refund_initiated}")

        self._publish(NoAlternativeEvent(
            recipient_id=booking.passenger.id,
            booking_id=booking.id,
            route_id=cancelled_route.id,
            refund_initiated=booking.refund_initiated,
            reason=reason,
        ))
        saga.mark(SagaStep.NOTIFY, self.clock())

        return NoAlternativeOutcome(
            booking_id=booking.id,
            passenger_id=booking.passenger.id,
            reason=reason,
            refund_initiated=booking.refund_initiated,
            saga=saga,
        )

    # --- Helpers ---

    def _eta(self, route: CandidateRoute, index: int) -> datetime:
        minutes = estimate_eta_minutes(route.polyline, index, route.total_duration_min)
        return route.scheduled_departure + timedelta(minutes=minutes)

    def _notify_success(self, old: Booking, new: Booking, cancelled_route: CandidateRoute, verdict) -> None:
        route = verdict.route
        result = verdict.match.result

        self._publish(ReassignmentSuccessEvent(
            recipient_id=old.passenger.id,
            old_booking_id=old.id,
            new_booking_id=new.id,
            old_route_id=cancelled_route.id,
            new_route_id=route.id,
            match_score=result.match_score,
            match_quality=result.match_quality.value,
            new_departure=route.scheduled_departure,
        ))
        self._publish(NewReassignedBookingEvent(
            recipient_id=route.owner_id,
            booking_id=new.id,
            route_id=route.id,
            passenger_id=old.passenger.id,
            seats=new.seats,
            match_score=result.match_score,
        ))

    def _publish(self, event) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.publish(event)
        except Exception as error:
            # delivery problems never undo a migration
            logger.error(f"Failed to publish {event.type.value} to {event.recipient_id}: {error}")

    # --- Reporting ---

    def reassignment_stats(self, owner_id: str, bookings: Optional[Sequence[Booking]] = None) -> dict:
        """
        Passengers moved off this driver's cancelled routes: how many
        replacement bookings were created, and how many are still alive
        (not cancelled again by the new driver or a later cancellation).
        """
        bookings = list(bookings) if bookings is not None else self.booking_store.all()

        created: List[Booking] = []
        for b in bookings:
            if b.reassigned_from is None or b.reassignment is None or not b.reassignment.chain:
                continue
            from_route = b.reassignment.chain[-1].from_route
            try:
                if self.ride_store.get(from_route).owner_id == owner_id:
                    created.append(b)
            except KeyError:
                continue

        successful = [b for b in created if b.status != BookingStatus.CANCELLED]

        return {
            "total_reassignments": len(created),
            "successful_reassignments": len(successful),
        }
