"""
Notifications package: structured output events + an in-memory sink.
"""
from .events import (
    DriverDeviationWarning,
    EventType,
    NewReassignedBookingEvent,
    NoAlternativeEvent,
    NotificationEvent,
    ReassignmentSuccessEvent,
    RouteDeviationAlert,
    SpeedAlertEvent,
    StaffEscalationEvent,
    StopAlertEvent,
)
from .sink import InMemoryNotifier

__all__ = ["EventType",
           "NotificationEvent",
             "ReassignmentSuccessEvent",
             "NewReassignedBookingEvent",
             "NoAlternativeEvent",
               "RouteDeviationAlert",
               "DriverDeviationWarning",
               "StaffEscalationEvent",
               "SpeedAlertEvent",
               "StopAlertEvent",
               "InMemoryNotifier",
               ]
