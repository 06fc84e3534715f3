"""
Purpose: Owns the live-tracking lifecycle of every ride in progress.

start_tracking -> record_sample* -> stop_tracking

Each ride gets its own RideTrackingSession (breadcrumbs, alert cooldowns,
off-route timer). stop_tracking drops the session, so alert state never
outlives the ride.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Sequence

from rides.models import CandidateRoute

from .deviation import DeviationLog
from .models import DeviationSample
from .policy import MonitoringPolicy, default_monitoring_policy
from .session import RideTrackingSession, TrackingUpdate

logger = logging.getLogger(__name__)


class TrackingNotStarted(KeyError):
    """Raised when a sample arrives for a ride that is not being tracked."""
    pass


class TrackingSupervisor:

    def __init__(self, notifier=None, deviation_log: Optional[DeviationLog] = None,
                 policy: Optional[MonitoringPolicy] = None):
        self.notifier = notifier
        self.deviation_log = deviation_log or DeviationLog()
        self.policy = policy or default_monitoring_policy()

        self._sessions: Dict[str, RideTrackingSession] = {}
        self._lock = threading.Lock()

    def start_tracking(self, route: CandidateRoute, passenger_ids: Sequence[str] = ()) -> RideTrackingSession:
        """
        Open the ride's session. Starting a ride that is already tracked
        returns the existing session untouched.
        """
        with self._lock:
            session = self._sessions.get(route.id)
            if session is not None:
                return session

            session = RideTrackingSession(
                ride_id=route.id,
                driver_id=route.owner_id,
                polyline=route.polyline,
                passenger_ids=passenger_ids,
                policy=self.policy,
                deviation_log=self.deviation_log,
                notifier=self.notifier,
            )
            self._sessions[route.id] = session

        logger.info(f"Tracking started for ride {route.id} ({len(session.passenger_ids)} passenger(s))")
        return session

    def record_sample(self, ride_id: str, sample: DeviationSample) -> TrackingUpdate:
        with self._lock:
            session = self._sessions.get(ride_id)
        if session is None:
            raise TrackingNotStarted(ride_id)

        return session.record(sample)

    def stop_tracking(self, ride_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(ride_id, None)

        if session is None:
            return False

        logger.info(f"Tracking stopped for ride {ride_id} ({len(session.breadcrumbs)} breadcrumbs)")
        return True

    def session(self, ride_id: str) -> Optional[RideTrackingSession]:
        with self._lock:
            return self._sessions.get(ride_id)

    def active_rides(self) -> List[str]:
        with self._lock:
            return list(self._sessions)
