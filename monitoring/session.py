"""
Purpose: Live tracking state of ONE ride (the per-ride session).
What it does:
- keeps the bounded breadcrumb history used by speed/stop analysis
- keeps the per-alert-type last-alert timestamps (alert cooldown)
- remembers since when the vehicle has been outside the corridor
- runs corridor, speed and stop checks on every accepted sample and emits events

Rule: samples must arrive in time order. A sample whose timestamp is not
strictly after the previous one is rejected and changes nothing.
The session is dropped by the supervisor when tracking stops, alert state included.
"""
from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from notifications.events import (
    DriverDeviationWarning,
    NotificationEvent,
    RouteDeviationAlert,
    SpeedAlertEvent,
    StaffEscalationEvent,
    StopAlertEvent,
)
from rides.models import Point, validate_polyline
from routing.eta_service import remaining_eta_minutes

from .corridor import check_corridor
from .deviation import DeviationLog, DeviationRecord
from .models import AlertType, CorridorCheck, DeviationSample, DeviationStatus, Severity, SpeedKind
from .policy import MonitoringPolicy
from .speed import analyze_speed_patterns
from .stops import detect_unusual_stops

logger = logging.getLogger(__name__)

# recipient id used for operational staff events
STAFF_RECIPIENT = "operations"


@dataclass(frozen=True)
class TrackingUpdate:
    """
    What happened to one location sample.
    """
    ride_id: str
    accepted: bool
    deviation: Optional[DeviationStatus] = None
    within_corridor: bool = True
    speed_kind: SpeedKind = SpeedKind.NORMAL
    unusual_stop: bool = False
    eta_minutes: Optional[float] = None
    events: List[NotificationEvent] = field(default_factory=list)
    reason: Optional[str] = None


class RideTrackingSession:

    def __init__(
            self,
            ride_id: str,
            driver_id: str,
            polyline: Sequence[Point],
            passenger_ids: Sequence[str],
            policy: MonitoringPolicy,
            deviation_log: DeviationLog,
            notifier=None,
    ):
        self.ride_id = ride_id
        self.driver_id = driver_id
        self.polyline = validate_polyline(polyline)
        self.passenger_ids = list(passenger_ids)
        self.policy = policy
        self.deviation_log = deviation_log
        self.notifier = notifier

        self.breadcrumbs = deque(maxlen=policy.max_breadcrumbs)
        self.last_alerts: Dict[AlertType, datetime] = {}
        self.off_route_since: Optional[datetime] = None
        self.last_timestamp: Optional[datetime] = None
        self.last_status: Optional[DeviationStatus] = None

        self._lock = threading.Lock()

    # --- Alert gating ---

    def should_send_alert(self, alert_type: AlertType, now: datetime) -> bool:
        last = self.last_alerts.get(alert_type)
        if last is None:
            return True
        return (now - last).total_seconds() >= self.policy.alert_cooldown_sec

    def _mark_alert(self, alert_type: AlertType, now: datetime) -> None:
        self.last_alerts[alert_type] = now

    # --- Sample processing ---

    def record(self, sample: DeviationSample) -> TrackingUpdate:
        with self._lock:
            if self.last_timestamp is not None and sample.timestamp <= self.last_timestamp:
                logger.warning(
                    f"Ride {self.ride_id}: stale sample at {sample.timestamp.isoformat()} "
                    f"(last {self.last_timestamp.isoformat()}), ignored"
                )
                return TrackingUpdate(ride_id=self.ride_id, accepted=False, reason="stale-sample")

            self.last_timestamp = sample.timestamp
            now = sample.timestamp
            events: List[NotificationEvent] = []

            # 1. corridor
            check = self._check_corridor(sample)
            if not check.within_corridor and check.severity.at_least(Severity.HIGH):
                events.extend(self._handle_deviation(sample, check))

            # 2. speed
            self.breadcrumbs.append(sample)
            history = list(self.breadcrumbs)

            speed = analyze_speed_patterns(history, self.policy)
            if speed.abnormal_speed and speed.severity == Severity.CRITICAL:
                if self.should_send_alert(AlertType.SPEED_ALERT, now):
                    logger.warning(f"Ride {self.ride_id}: speed alert, {speed.message}")
                    events.extend(
                        SpeedAlertEvent(
                            recipient_id=recipient,
                            ride_id=self.ride_id,
                            severity=speed.severity.value,
                            kind=speed.kind.value,
                            speed_kmh=speed.value_kmh,
                            message=speed.message,
                        )
                        for recipient in self.passenger_ids + [STAFF_RECIPIENT]
                    )
                    self._mark_alert(AlertType.SPEED_ALERT, now)

            # 3. stops
            stop = detect_unusual_stops(history, self.policy)
            if stop.suspicious_stop and self.should_send_alert(AlertType.UNUSUAL_STOP, now):
                logger.warning(f"Ride {self.ride_id}: unusual stop, {stop.duration_sec:.0f}s")
                minutes = round(stop.duration_sec / 60)
                recipients = list(self.passenger_ids)
                if stop.critical_stop:
                    recipients.append(STAFF_RECIPIENT)
                events.extend(
                    StopAlertEvent(
                        recipient_id=recipient,
                        ride_id=self.ride_id,
                        duration_sec=stop.duration_sec,
                        location=stop.location,
                        critical=stop.critical_stop,
                        message=f"Vehicle has been stationary for {minutes} minutes",
                    )
                    for recipient in recipients
                )
                self._mark_alert(AlertType.UNUSUAL_STOP, now)

            # 4. eta
            eta = remaining_eta_minutes(
                self.polyline,
                sample.point,
                check.projection.polyline_index,
                sample.speed_kmh,
                default_speed_kmh=self.policy.default_speed_kmh,
            )

            self.last_status = check.status

        self._publish(events)

        return TrackingUpdate(
            ride_id=self.ride_id,
            accepted=True,
            deviation=check.status,
            within_corridor=check.within_corridor,
            speed_kind=speed.kind,
            unusual_stop=stop.suspicious_stop,
            eta_minutes=eta,
            events=events,
        )

    def _check_corridor(self, sample: DeviationSample) -> CorridorCheck:
        off_route_for = 0.0
        if self.off_route_since is not None:
            off_route_for = (sample.timestamp - self.off_route_since).total_seconds()

        check = check_corridor(
            sample.point,
            self.polyline,
            self.policy.corridor_width_km,
            duration_sec=off_route_for,
            policy=self.policy,
        )

        if not check.within_corridor:
            if self.off_route_since is None:
                self.off_route_since = sample.timestamp
        elif self.off_route_since is not None:
            self.off_route_since = None
            self.deviation_log.mark_returned(self.ride_id, sample.timestamp)

        return check

    def _handle_deviation(self, sample: DeviationSample, check: CorridorCheck) -> List[NotificationEvent]:
        record = self.deviation_log.record_detection(
            self.ride_id,
            self.driver_id,
            sample.point,
            check.distance_km,
            check.severity,
            sample.timestamp,
            passenger_ids=self.passenger_ids,
            expected_location=check.projection.point,
        )

        if not self.should_send_alert(AlertType.ROUTE_DEVIATION, sample.timestamp):
            return []

        logger.warning(
            f"Ride {self.ride_id}: route deviation {record.severity.value}, {check.distance_km:.2f} km off route"
        )
        events = self._deviation_events(record, sample.point)
        self._mark_alert(AlertType.ROUTE_DEVIATION, sample.timestamp)
        return events

    def _deviation_events(self, record: DeviationRecord, location: Point) -> List[NotificationEvent]:
        distance = round(record.distance_km, 2)
        severity = record.severity.value
        events: List[NotificationEvent] = []

        for passenger_id in self.passenger_ids:
            events.append(RouteDeviationAlert(
                recipient_id=passenger_id,
                ride_id=self.ride_id,
                deviation_id=record.id,
                severity=severity,
                distance_km=distance,
                location=location,
                message=f"Driver is {distance}km off the planned route. Stay alert!",
            ))
        if self.passenger_ids:
            record.passenger_notified = True

        events.append(DriverDeviationWarning(
            recipient_id=self.driver_id,
            ride_id=self.ride_id,
            deviation_id=record.id,
            severity=severity,
            distance_km=distance,
            message=f"You are {distance}km off route. Please return to the planned path immediately.",
        ))
        record.driver_warned = True

        if record.severity.at_least(Severity.HIGH):
            events.append(StaffEscalationEvent(
                recipient_id=STAFF_RECIPIENT,
                ride_id=self.ride_id,
                deviation_id=record.id,
                severity=severity,
                distance_km=distance,
                location=location,
                requires_action=record.severity == Severity.CRITICAL,
            ))
            record.admin_alerted = True

        return events

    def _publish(self, events: List[NotificationEvent]) -> None:
        if self.notifier is None:
            return
        for event in events:
            try:
                self.notifier.publish(event)
            except Exception as error:
                logger.error(f"Ride {self.ride_id}: failed to publish {event.type.value}: {error}")
