#Purpose: Speed pattern analysis over a ride's recent location history.
#Flags (worst first):
#SUSTAINED_SPEEDING : last N samples all at/over the limit -> CRITICAL
#DANGEROUS_SPEED    : latest sample at/over the dangerous threshold -> HIGH
#SPEED_SPIKE        : big jump between two close samples -> HIGH
#SPEEDING           : latest sample at/over the limit -> MEDIUM

from __future__ import annotations

from typing import List, Optional, Sequence

from routing.geo import haversine_km

from .models import DeviationSample, Severity, SpeedAnalysis, SpeedKind
from .policy import MonitoringPolicy, default_monitoring_policy


def sample_speeds(history: Sequence[DeviationSample]) -> List[float]:
    """
    Speed (km/h) of each sample: the reported value, or the one implied by the
    distance/time from the previous sample. First unreported sample counts as 0.
    """
    speeds: List[float] = []
    for i, sample in enumerate(history):
        if sample.speed_kmh is not None:
            speeds.append(max(0.0, float(sample.speed_kmh)))
            continue

        if i == 0:
            speeds.append(0.0)
            continue

        previous = history[i - 1]
        elapsed_h = (sample.timestamp - previous.timestamp).total_seconds() / 3600
        if elapsed_h <= 0:
            speeds.append(speeds[-1])
        else:
            speeds.append(haversine_km(previous.point, sample.point) / elapsed_h)
    return speeds


def analyze_speed_patterns(
        history: Sequence[DeviationSample],
        policy: Optional[MonitoringPolicy] = None,
) -> SpeedAnalysis:
    policy = policy or default_monitoring_policy()
    if not history:
        return SpeedAnalysis(abnormal_speed=False)

    speeds = sample_speeds(history)
    latest = speeds[-1]

    recent = speeds[-policy.sustained_samples:]
    if len(recent) == policy.sustained_samples and all(s >= policy.speed_limit_kmh for s in recent):
        return SpeedAnalysis(
            abnormal_speed=True,
            kind=SpeedKind.SUSTAINED_SPEEDING,
            severity=Severity.CRITICAL,
            message=f"Sustained speeding: {len(recent)} consecutive readings over {policy.speed_limit_kmh:.0f} km/h",
            value_kmh=latest,
        )

    if latest >= policy.dangerous_speed_kmh:
        return SpeedAnalysis(
            abnormal_speed=True,
            kind=SpeedKind.DANGEROUS_SPEED,
            severity=Severity.HIGH,
            message=f"Dangerous speed: {latest:.0f} km/h",
            value_kmh=latest,
        )

    if len(history) >= 2:
        elapsed = (history[-1].timestamp - history[-2].timestamp).total_seconds()
        delta = latest - speeds[-2]
        if 0 < elapsed <= policy.spike_window_sec and delta >= policy.spike_delta_kmh:
            return SpeedAnalysis(
                abnormal_speed=True,
                kind=SpeedKind.SPEED_SPIKE,
                severity=Severity.HIGH,
                message=f"Sudden acceleration: +{delta:.0f} km/h in {elapsed:.0f}s",
                value_kmh=latest,
            )

    if latest >= policy.speed_limit_kmh:
        return SpeedAnalysis(
            abnormal_speed=True,
            kind=SpeedKind.SPEEDING,
            severity=Severity.MEDIUM,
            message=f"Speeding: {latest:.0f} km/h",
            value_kmh=latest,
        )

    return SpeedAnalysis(abnormal_speed=False, value_kmh=latest)
