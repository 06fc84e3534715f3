"""
Live ride monitoring (geo-fencing) package.

Public API:
- Corridor: check_corridor, check_route_deviation, severity_for_distance
- Behaviour: analyze_speed_patterns, detect_unusual_stops
- Deviation records: DeviationRecord, DeviationLog, DeviationRecordStatus
- Lifecycle: TrackingSupervisor, RideTrackingSession, TrackingUpdate
- Policy: MonitoringPolicy, default_monitoring_policy, monitoring_policy_from_env
"""
from .corridor import check_corridor, check_route_deviation, severity_for_distance
from .deviation import (
    DeviationLog,
    DeviationRecord,
    DeviationRecordStatus,
    DeviationStateException,
    ReviewAction,
)
from .models import (
    AlertType,
    CorridorCheck,
    DeviationSample,
    DeviationStatus,
    RouteDeviationCheck,
    Severity,
    SpeedAnalysis,
    SpeedKind,
    StopAnalysis,
)
from .policy import MonitoringPolicy, default_monitoring_policy, monitoring_policy_from_env
from .session import RideTrackingSession, TrackingUpdate
from .speed import analyze_speed_patterns
from .stops import detect_unusual_stops
from .supervisor import TrackingNotStarted, TrackingSupervisor

__all__ = ["check_corridor",
           "check_route_deviation",
           "severity_for_distance",
             "analyze_speed_patterns",
             "detect_unusual_stops",
             "DeviationLog",
             "DeviationRecord",
               "DeviationRecordStatus",
               "DeviationStateException",
               "ReviewAction",
               "AlertType",
               "CorridorCheck",
               "DeviationSample",
               "DeviationStatus",
               "RouteDeviationCheck",
               "Severity",
               "SpeedAnalysis",
               "SpeedKind",
               "StopAnalysis",
               "MonitoringPolicy",
               "default_monitoring_policy",
               "monitoring_policy_from_env",
               "RideTrackingSession",
               "TrackingUpdate",
               "TrackingNotStarted",
               "TrackingSupervisor",
               ]
