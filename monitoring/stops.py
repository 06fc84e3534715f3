#Purpose: Unusual stop detection.
#A stop is the trailing run of samples that stay within stop_radius_m of where
#the vehicle halted and report (or imply) a crawl speed.
#suspicious after suspicious_stop_sec, critical after critical_stop_sec.

from __future__ import annotations

from typing import Optional, Sequence

from routing.geo import haversine_km

from .models import DeviationSample, StopAnalysis
from .policy import MonitoringPolicy, default_monitoring_policy
from .speed import sample_speeds


def detect_unusual_stops(
        history: Sequence[DeviationSample],
        policy: Optional[MonitoringPolicy] = None,
) -> StopAnalysis:
    policy = policy or default_monitoring_policy()
    if len(history) < 2:
        return StopAnalysis(suspicious_stop=False)

    speeds = sample_speeds(history)
    radius_km = policy.stop_radius_m / 1000

    latest = history[-1]
    if speeds[-1] >= policy.stop_speed_kmh:
        return StopAnalysis(suspicious_stop=False)

    # walk back while the vehicle stays put
    stop_start = latest
    for sample, speed in zip(reversed(history[:-1]), reversed(speeds[:-1])):
        if speed >= policy.stop_speed_kmh:
            break
        if haversine_km(sample.point, latest.point) > radius_km:
            break
        stop_start = sample

    duration = (latest.timestamp - stop_start.timestamp).total_seconds()
    suspicious = duration >= policy.suspicious_stop_sec

    return StopAnalysis(
        suspicious_stop=suspicious,
        critical_stop=duration >= policy.critical_stop_sec,
        duration_sec=duration,
        location=stop_start.point,
    )
