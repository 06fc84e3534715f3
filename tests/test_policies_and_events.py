from datetime import datetime

import pytest

from matching.policy import MatchingPolicy, matching_policy_from_env
from monitoring.policy import MonitoringPolicy, monitoring_policy_from_env
from notifications.events import EventType, RouteDeviationAlert
from notifications.sink import InMemoryNotifier
from reassignment.policy import ReassignmentPolicy, reassignment_policy_from_env


def test_policies_read_overrides_from_environment(monkeypatch):
    monkeypatch.setenv("ROUTE_DEVIATION_THRESHOLD", "7.5")
    monkeypatch.setenv("MAX_DETOUR_PERCENT", "30")
    monkeypatch.setenv("CORRIDOR_WIDTH_M", "250")
    monkeypatch.setenv("ALERT_COOLDOWN_SEC", "120")
    monkeypatch.setenv("MIN_REASSIGNMENT_SCORE", "55")

    matching = matching_policy_from_env()
    monitoring = monitoring_policy_from_env()
    reassignment = reassignment_policy_from_env()

    assert matching.deviation_threshold_km == 7.5
    assert matching.max_detour_percent == 30
    assert matching.endpoint_threshold_km == 20.0
    assert monitoring.corridor_width_km == pytest.approx(0.25)
    assert monitoring.alert_cooldown_sec == 120
    assert reassignment.min_score == 55


@pytest.mark.parametrize("policy", [
    MatchingPolicy(deviation_threshold_km=0),
    MatchingPolicy(min_distance_similarity=1.5),
    MonitoringPolicy(corridor_width_km=0),
    MonitoringPolicy(dangerous_speed_kmh=90),
    ReassignmentPolicy(min_score=120),
    ReassignmentPolicy(max_chain_length=0),
])
def test_invalid_policies_are_rejected(policy):
    with pytest.raises(ValueError):
        policy.validate()


def test_event_payload_is_plain_data():
    event = RouteDeviationAlert(
        recipient_id="p1",
        created_at=datetime(2026, 3, 2, 9, 30),
        ride_id="ride_1",
        deviation_id="dev_1",
        severity="HIGH",
        distance_km=3.0,
        location=(31.05, -17.82),
        message="Driver is 3.0km off the planned route. Stay alert!",
    )

    payload = event.to_payload()

    assert payload["type"] == "ROUTE_DEVIATION_ALERT"
    assert payload["created_at"] == "2026-03-02T09:30:00"
    assert payload["location"] == [31.05, -17.82]
    assert payload["recipient_id"] == "p1"


def test_notifier_filters():
    notifier = InMemoryNotifier()
    notifier.publish(RouteDeviationAlert(recipient_id="p1", ride_id="ride_1"))
    notifier.publish(RouteDeviationAlert(recipient_id="p2", ride_id="ride_1"))

    assert len(notifier.of_type(EventType.ROUTE_DEVIATION_ALERT)) == 2
    assert len(notifier.for_recipient("p2")) == 1

    notifier.clear()
    assert notifier.events == []
