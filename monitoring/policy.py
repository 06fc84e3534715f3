"""
Purpose: Central configuration for live ride monitoring (geo-fencing, speed, stops, alert gating).
What it does:

Stores all tunable thresholds:

CORRIDOR_WIDTH_M = 500          (live safety corridor, much tighter than trip matching)

CRITICAL_DISTANCE_KM = 20       (off-route distance that forces CRITICAL)

CRITICAL_DURATION_SEC = 900     (time off-route that forces CRITICAL)

ALERT_COOLDOWN_SEC = 300        (one alert per ride per alert type per window)

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class MonitoringPolicy:

    # --- Corridor ---
    corridor_width_km: float = 0.5
    critical_distance_km: float = 20.0
    critical_duration_sec: float = 900.0

    # --- Speed ---
    speed_limit_kmh: float = 100.0
    dangerous_speed_kmh: float = 130.0
    sustained_samples: int = 3
    spike_delta_kmh: float = 40.0
    spike_window_sec: float = 10.0

    # --- Stops ---
    stop_radius_m: float = 50.0
    stop_speed_kmh: float = 3.0
    suspicious_stop_sec: float = 600.0
    critical_stop_sec: float = 1800.0

    # --- Alerting ---
    alert_cooldown_sec: float = 300.0

    # --- Session ---
    max_breadcrumbs: int = 1000
    default_speed_kmh: float = 40.0

    def validate(self) -> None:
        if self.corridor_width_km <= 0:
            raise ValueError("corridor_width_km must be > 0")

        if self.critical_distance_km <= 0 or self.critical_duration_sec <= 0:
            raise ValueError("critical thresholds must be > 0")

        if self.dangerous_speed_kmh < self.speed_limit_kmh:
            raise ValueError("dangerous_speed_kmh must be >= speed_limit_kmh")

        if self.sustained_samples < 2:
            raise ValueError("sustained_samples must be >= 2")

        if self.critical_stop_sec < self.suspicious_stop_sec:
            raise ValueError("critical_stop_sec must be >= suspicious_stop_sec")

        if self.alert_cooldown_sec < 0:
            raise ValueError("alert_cooldown_sec must be >= 0")

        if self.max_breadcrumbs <= 0:
            raise ValueError("max_breadcrumbs must be > 0")


def default_monitoring_policy() -> MonitoringPolicy:
    p = MonitoringPolicy()
    p.validate()
    return p


def monitoring_policy_from_env() -> MonitoringPolicy:
    """
    Default policy with CORRIDOR_WIDTH_M and ALERT_COOLDOWN_SEC read from the environment / .env.
    """
    load_dotenv()
    defaults = MonitoringPolicy()
    width_m = float(os.getenv("CORRIDOR_WIDTH_M", defaults.corridor_width_km * 1000))
    p = MonitoringPolicy(
        corridor_width_km=width_m / 1000,
        alert_cooldown_sec=float(os.getenv("ALERT_COOLDOWN_SEC", defaults.alert_cooldown_sec)),
    )
    p.validate()
    return p
