"""
Bookings domain package.

Public API:
- Domain models: Booking, Passenger, Gender, BookingStatus, PaymentStatus,
  ReassignmentRecord, ReassignmentHop
- Store: InMemoryBookingStore
"""
from .models import (
    Booking,
    BookingStatus,
    Gender,
    Passenger,
    PaymentStatus,
    ReassignmentHop,
    ReassignmentRecord,
)
from .state_machine import BookingStateException
from .store import InMemoryBookingStore

__all__ = ["Booking",
           "BookingStatus",
             "Gender",
             "Passenger",
               "PaymentStatus",
               "ReassignmentHop",
               "ReassignmentRecord",
               "BookingStateException",
               "InMemoryBookingStore",
               ]
