"""
Purpose: Data types produced and consumed by live ride monitoring.
What it does:
- DeviationSample (one location report from the driver's device)
- CorridorCheck / DeviationStatus (where the vehicle is relative to the planned route)
- SpeedAnalysis / StopAnalysis (abnormal behaviour over the recent history)

Defines enums/constants:
- Severity = NONE < LOW < MEDIUM < HIGH < CRITICAL (ordered)
- SpeedKind, AlertType

Rule: No detection logic here.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from matching.results import Projection
from rides.models import Point


class Severity(str, Enum):
    NONE = "NONE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, other: Severity) -> bool:
        return self.rank >= other.rank


_SEVERITY_RANK = {
    Severity.NONE: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class SpeedKind(str, Enum):
    NORMAL = "NORMAL"
    SPEEDING = "SPEEDING"
    DANGEROUS_SPEED = "DANGEROUS_SPEED"
    SUSTAINED_SPEEDING = "SUSTAINED_SPEEDING"
    SPEED_SPIKE = "SPEED_SPIKE"


class AlertType(str, Enum):
    ROUTE_DEVIATION = "ROUTE_DEVIATION"
    SPEED_ALERT = "SPEED_ALERT"
    UNUSUAL_STOP = "UNUSUAL_STOP"


@dataclass(frozen=True)
class DeviationSample:
    point: Point
    timestamp: datetime
    speed_kmh: Optional[float] = None  # None = not reported by the device
    accuracy_m: Optional[float] = None


@dataclass(frozen=True)
class DeviationStatus:
    severity: Severity
    distance_km: float
    duration_sec: float = 0.0


@dataclass(frozen=True)
class CorridorCheck:
    """
    Output of check_corridor for one sample.
    """
    within_corridor: bool
    distance_km: float
    severity: Severity
    duration_sec: float = 0.0
    projection: Optional[Projection] = None

    @property
    def status(self) -> DeviationStatus:
        return DeviationStatus(self.severity, self.distance_km, self.duration_sec)


@dataclass(frozen=True)
class RouteDeviationCheck:
    """
    Coarse trip-scale deviation check (threshold in km, not the live corridor).
    """
    is_deviated: bool
    distance_km: float
    threshold_km: float
    severity: Severity


@dataclass(frozen=True)
class SpeedAnalysis:
    abnormal_speed: bool
    kind: SpeedKind = SpeedKind.NORMAL
    severity: Severity = Severity.NONE
    message: str = ""
    value_kmh: float = 0.0


@dataclass(frozen=True)
class StopAnalysis:
    suspicious_stop: bool
    critical_stop: bool = False
    duration_sec: float = 0.0
    location: Optional[Point] = None
