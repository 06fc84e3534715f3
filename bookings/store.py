"""
Purpose: In-memory booking store (the booking-persistence collaborator).
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional

from .models import Booking, BookingStatus


class InMemoryBookingStore:

    def __init__(self, bookings: Optional[Iterable[Booking]] = None):
        self._bookings: Dict[str, Booking] = {}
        self._lock = threading.Lock()
        for booking in bookings or []:
            self.add(booking)

    def add(self, booking: Booking) -> None:
        with self._lock:
            if booking.id in self._bookings:
                #idempotency : dont double insert
                return
            self._bookings[booking.id] = booking

    def save(self, booking: Booking) -> None:
        with self._lock:
            self._bookings[booking.id] = booking

    def get(self, booking_id: str) -> Optional[Booking]:
        with self._lock:
            return self._bookings.get(booking_id)

    def all(self) -> List[Booking]:
        with self._lock:
            return list(self._bookings.values())

    def for_route(self, route_id: str, statuses: Optional[Iterable[BookingStatus]] = None) -> List[Booking]:
        wanted = set(statuses) if statuses is not None else None
        return [
            booking for booking in self.all()
            if booking.route_id == route_id and (wanted is None or booking.status in wanted)
        ]
