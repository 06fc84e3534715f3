"""
Purpose: Route deviation records (one incident of a ride leaving its corridor).

Lifecycle:
    ACTIVE -> RETURNED_TO_ROUTE   (vehicle back inside the corridor)
    ACTIVE -> ESCALATED           (too far / too long, or staff escalation)
    ACTIVE | ESCALATED | RETURNED_TO_ROUTE -> RESOLVED   (staff review)

At most one ACTIVE record per ride. A new HIGH/CRITICAL detection refreshes
the active record instead of opening another one.
"""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from rides.models import Point

from .models import Severity

logger = logging.getLogger(__name__)

AUTO_ESCALATE_DISTANCE_KM = 20.0
AUTO_ESCALATE_DURATION_SEC = 900.0


class DeviationRecordStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RETURNED_TO_ROUTE = "RETURNED_TO_ROUTE"
    RESOLVED = "RESOLVED"
    ESCALATED = "ESCALATED"


class ReviewAction(str, Enum):
    NO_ACTION = "NO_ACTION"
    WARNING_ISSUED = "WARNING_ISSUED"
    DRIVER_SUSPENDED = "DRIVER_SUSPENDED"
    ACCOUNT_FLAGGED = "ACCOUNT_FLAGGED"


class DeviationStateException(Exception):
    """Raised when an invalid deviation record transition is attempted."""
    pass


@dataclass
class DeviationRecord:
    id: str
    ride_id: str
    driver_id: str
    location: Point
    distance_km: float
    severity: Severity
    deviated_at: datetime

    passenger_ids: List[str] = field(default_factory=list)
    status: DeviationRecordStatus = DeviationRecordStatus.ACTIVE
    duration_sec: float = 0.0
    expected_location: Optional[Point] = None

    #notifications sent
    passenger_notified: bool = False
    driver_warned: bool = False
    admin_alerted: bool = False

    returned_at: Optional[datetime] = None

    #staff review
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    review_action: Optional[ReviewAction] = None

    @staticmethod
    def open(ride_id: str, driver_id: str, location: Point, distance_km: float, severity: Severity,
             at: datetime, passenger_ids: Optional[List[str]] = None,
             expected_location: Optional[Point] = None) -> DeviationRecord:
        record = DeviationRecord(
            id=str(uuid.uuid4()),
            ride_id=ride_id,
            driver_id=driver_id,
            location=location,
            distance_km=distance_km,
            severity=severity,
            deviated_at=at,
            passenger_ids=list(passenger_ids or []),
            expected_location=expected_location,
        )
        record._auto_escalate()
        return record

    @property
    def is_open(self) -> bool:
        return self.status in (DeviationRecordStatus.ACTIVE, DeviationRecordStatus.ESCALATED)

    def refresh(self, location: Point, distance_km: float, severity: Severity, at: datetime) -> None:
        """Newer detection for the same incident."""
        if not self.is_open:
            raise DeviationStateException(f"Deviation {self.id} is {self.status.value}, cannot refresh")

        self.location = location
        self.distance_km = distance_km
        # severity never drops while the incident is open
        if severity.rank > self.severity.rank:
            self.severity = severity
        self.duration_sec = max(0.0, (at - self.deviated_at).total_seconds())
        self._auto_escalate()

    def mark_returned(self, at: datetime) -> None:
        if not self.is_open:
            raise DeviationStateException(f"Deviation {self.id} is {self.status.value}, cannot mark returned")

        self.status = DeviationRecordStatus.RETURNED_TO_ROUTE
        self.returned_at = at
        self.duration_sec = max(0.0, (at - self.deviated_at).total_seconds())

    def escalate(self) -> None:
        if self.status == DeviationRecordStatus.RESOLVED:
            raise DeviationStateException(f"Deviation {self.id} is already resolved")

        self.severity = Severity.CRITICAL
        self.status = DeviationRecordStatus.ESCALATED
        self.admin_alerted = True

    def resolve(self, admin_id: str, notes: str = "", action: ReviewAction = ReviewAction.NO_ACTION,
                at: Optional[datetime] = None) -> None:
        if self.status == DeviationRecordStatus.RESOLVED:
            raise DeviationStateException(f"Deviation {self.id} is already resolved")

        self.status = DeviationRecordStatus.RESOLVED
        self.reviewed_by = admin_id
        self.reviewed_at = at or datetime.now()
        self.review_notes = notes
        self.review_action = action

    def _auto_escalate(self) -> None:
        if self.status != DeviationRecordStatus.ACTIVE:
            return
        if self.distance_km > AUTO_ESCALATE_DISTANCE_KM or self.duration_sec > AUTO_ESCALATE_DURATION_SEC:
            self.severity = Severity.CRITICAL
            self.status = DeviationRecordStatus.ESCALATED


class DeviationLog:
    """
    In-memory store of deviation records (stands in for the persistence collaborator).
    """

    def __init__(self):
        self._records: Dict[str, DeviationRecord] = {}
        self._lock = threading.Lock()

    def open_for_ride(self, ride_id: str) -> Optional[DeviationRecord]:
        """The ride's current incident (ACTIVE, or escalated but not yet over)."""
        with self._lock:
            for record in self._records.values():
                if record.ride_id == ride_id and record.is_open:
                    return record
        return None

    def record_detection(self, ride_id: str, driver_id: str, location: Point, distance_km: float,
                         severity: Severity, at: datetime,
                         passenger_ids: Optional[List[str]] = None,
                         expected_location: Optional[Point] = None) -> DeviationRecord:
        """
        Open a record for the ride, or refresh the one already open.
        """
        with self._lock:
            current = next(
                (r for r in self._records.values() if r.ride_id == ride_id and r.is_open),
                None,
            )
            if current is not None:
                current.refresh(location, distance_km, severity, at)
                return current

            record = DeviationRecord.open(
                ride_id, driver_id, location, distance_km, severity, at,
                passenger_ids=passenger_ids, expected_location=expected_location,
            )
            self._records[record.id] = record

        logger.info(f"Opened deviation record {record.id} for ride {ride_id}: {distance_km:.2f} km, {record.severity.value}")
        return record

    def mark_returned(self, ride_id: str, at: datetime) -> Optional[DeviationRecord]:
        record = self.open_for_ride(ride_id)
        if record is None:
            return None
        with self._lock:
            record.mark_returned(at)
        logger.info(f"Ride {ride_id} returned to route after {record.duration_sec:.0f}s")
        return record

    def get(self, record_id: str) -> Optional[DeviationRecord]:
        with self._lock:
            return self._records.get(record_id)

    def for_ride(self, ride_id: str) -> List[DeviationRecord]:
        with self._lock:
            return [r for r in self._records.values() if r.ride_id == ride_id]

    def unresolved(self) -> List[DeviationRecord]:
        with self._lock:
            found = [r for r in self._records.values() if r.is_open]
        return sorted(found, key=lambda r: r.deviated_at, reverse=True)
