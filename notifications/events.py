"""
Purpose: Structured output events.

The core never delivers anything itself (no push/email/SMS). It hands these
events to an injected notifier, which decides how to deliver them.
Every event has a stable `type` and a plain-dict `to_payload()`.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class EventType(str, Enum):
    BOOKING_REASSIGNED = "BOOKING_REASSIGNED"
    NEW_BOOKING_REASSIGNED = "NEW_BOOKING_REASSIGNED"
    RIDE_CANCELLED_NO_ALTERNATIVE = "RIDE_CANCELLED_NO_ALTERNATIVE"
    ROUTE_DEVIATION_ALERT = "ROUTE_DEVIATION_ALERT"
    DRIVER_DEVIATION_WARNING = "DRIVER_DEVIATION_WARNING"
    STAFF_ESCALATION = "STAFF_ESCALATION"
    SPEED_ALERT = "SPEED_ALERT"
    UNUSUAL_STOP = "UNUSUAL_STOP"


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, tuple):
        return [_plain(v) for v in value]
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


@dataclass(frozen=True)
class NotificationEvent:
    recipient_id: str
    created_at: datetime = field(default_factory=datetime.now, compare=False)

    type = None  # overridden per event class

    def to_payload(self) -> Dict[str, Any]:
        payload = {k: _plain(v) for k, v in asdict(self).items()}
        payload["type"] = self.type.value
        return payload


# --- Reassignment ---

@dataclass(frozen=True)
class ReassignmentSuccessEvent(NotificationEvent):
    """To the passenger: your booking moved to another ride."""
    type = EventType.BOOKING_REASSIGNED

    old_booking_id: str = ""
    new_booking_id: str = ""
    old_route_id: str = ""
    new_route_id: str = ""
    match_score: int = 0
    match_quality: str = ""
    new_departure: Optional[datetime] = None


@dataclass(frozen=True)
class NewReassignedBookingEvent(NotificationEvent):
    """To the new driver: a reassigned passenger awaits your approval."""
    type = EventType.NEW_BOOKING_REASSIGNED

    booking_id: str = ""
    route_id: str = ""
    passenger_id: str = ""
    seats: int = 0
    match_score: int = 0


@dataclass(frozen=True)
class NoAlternativeEvent(NotificationEvent):
    """To the passenger: ride cancelled and nothing suitable was found."""
    type = EventType.RIDE_CANCELLED_NO_ALTERNATIVE

    booking_id: str = ""
    route_id: str = ""
    refund_initiated: bool = False
    reason: str = ""


# --- Live monitoring ---

@dataclass(frozen=True)
class RouteDeviationAlert(NotificationEvent):
    """To a passenger on the ride."""
    type = EventType.ROUTE_DEVIATION_ALERT

    ride_id: str = ""
    deviation_id: str = ""
    severity: str = ""
    distance_km: float = 0.0
    location: Tuple[float, float] = (0.0, 0.0)
    message: str = ""


@dataclass(frozen=True)
class DriverDeviationWarning(NotificationEvent):
    type = EventType.DRIVER_DEVIATION_WARNING

    ride_id: str = ""
    deviation_id: str = ""
    severity: str = ""
    distance_km: float = 0.0
    message: str = ""


@dataclass(frozen=True)
class StaffEscalationEvent(NotificationEvent):
    """To operational staff, HIGH/CRITICAL only."""
    type = EventType.STAFF_ESCALATION

    ride_id: str = ""
    deviation_id: str = ""
    severity: str = ""
    distance_km: float = 0.0
    location: Tuple[float, float] = (0.0, 0.0)
    requires_action: bool = False


@dataclass(frozen=True)
class SpeedAlertEvent(NotificationEvent):
    type = EventType.SPEED_ALERT

    ride_id: str = ""
    severity: str = ""
    kind: str = ""
    speed_kmh: float = 0.0
    message: str = ""


@dataclass(frozen=True)
class StopAlertEvent(NotificationEvent):
    type = EventType.UNUSUAL_STOP

    ride_id: str = ""
    duration_sec: float = 0.0
    location: Tuple[float, float] = (0.0, 0.0)
    critical: bool = False
    message: str = ""
