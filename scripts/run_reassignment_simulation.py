import logging
import os
import sys
from datetime import datetime, timedelta
from typing import List, Optional

import pandas as pd

from bookings.models import Booking, BookingStatus, Gender, Passenger, PaymentStatus
from bookings.store import InMemoryBookingStore
from monitoring.models import DeviationSample
from monitoring.supervisor import TrackingSupervisor
from notifications.sink import InMemoryNotifier
from reassignment.coordinator import ReassignmentCoordinator
from rides.models import CandidateRoute, GenderPolicy, RouteConstraints
from rides.store import InMemoryRideStore
from routing.geo import interpolate
from routing.osrm_client import OSRMClient
from routing.route_service import compute_route_geometry

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def routing_provider() -> Optional[OSRMClient]:
    """OSRM when BASE_URL is configured, otherwise straight-line routes."""
    try:
        return OSRMClient()
    except ValueError:
        logger.info("BASE_URL not set, rides use straight-line geometry")
        return None


def load_rides(filepath="mock_rides.csv", provider=None) -> List[CandidateRoute]:
    df = pd.read_csv(os.path.join(BASE_DIR, filepath))
    rides = []
    for row in df.itertuples(index=False):
        geometry = compute_route_geometry(
            provider,
            [(row.start_lon, row.start_lat), (row.end_lon, row.end_lat)],
        )
        rides.append(
            CandidateRoute(
                id=row.ride_id,
                owner_id=row.owner_id,
                polyline=geometry.polyline,
                total_distance_km=geometry.distance_km,
                total_duration_min=geometry.duration_min,
                available_capacity=int(row.available_seats),
                scheduled_departure=datetime.fromisoformat(row.departure),
                constraints=RouteConstraints(
                    gender_policy=GenderPolicy(row.gender_policy),
                    verified_only=bool(row.verified_only),
                ),
                price_per_seat=float(row.price_per_seat),
            )
        )
    return rides


def load_bookings(filepath="mock_bookings.csv") -> List[Booking]:
    df = pd.read_csv(os.path.join(BASE_DIR, filepath))
    bookings = []
    for row in df.itertuples(index=False):
        bookings.append(
            Booking(
                id=row.booking_id,
                route_id=row.ride_id,
                passenger=Passenger(
                    id=row.passenger_id,
                    gender=Gender(row.gender),
                    is_verified=bool(row.verified),
                ),
                seats=int(row.seats),
                pickup=(float(row.pickup_lon), float(row.pickup_lat)),
                dropoff=(float(row.dropoff_lon), float(row.dropoff_lat)),
                status=BookingStatus(row.status),
                payment_status=PaymentStatus(row.payment_status),
            )
        )
    return bookings


def simulate_tracking(route: CandidateRoute, passenger_ids: List[str], notifier: InMemoryNotifier) -> None:
    """
    Drive the route with one detour in the middle, one sample per minute.
    """
    supervisor = TrackingSupervisor(notifier=notifier)
    supervisor.start_tracking(route, passenger_ids)

    start, end = route.polyline[0], route.polyline[-1]
    t0 = route.scheduled_departure
    steps = 30
    for step in range(steps + 1):
        lon, lat = interpolate(start, end, step / steps)
        if 12 <= step <= 16:
            lat += 0.04  # ~4.5 km off the corridor
        sample = DeviationSample(point=(lon, lat), timestamp=t0 + timedelta(minutes=step), speed_kmh=70.0)
        update = supervisor.record_sample(route.id, sample)
        if update.events:
            print(f"  t+{step:02d}min {update.deviation.severity.value:<8} "
                  f"{update.deviation.distance_km:6.2f} km off, {len(update.events)} event(s)")

    supervisor.stop_tracking(route.id)


def run_simulation(cancel_ride_id: Optional[str] = None):
    print("=== STARTING REASSIGNMENT SIMULATION ===")

    # 1. Load Data
    provider = routing_provider()
    rides = load_rides("mock_rides.csv", provider)
    bookings = load_bookings("mock_bookings.csv")
    print(f"Loaded {len(rides)} Rides and {len(bookings)} Bookings.\n")

    ride_store = InMemoryRideStore(rides)
    booking_store = InMemoryBookingStore(bookings)
    notifier = InMemoryNotifier()

    # 2. Pick the ride to cancel: the one with the most live bookings by default
    if cancel_ride_id is None:
        per_ride = pd.Series([b.route_id for b in bookings]).value_counts()
        cancel_ride_id = per_ride.index[0]
    print(f"Driver cancels ride {cancel_ride_id}")

    # 3. Reassign
    coordinator = ReassignmentCoordinator(ride_store, booking_store, notifier=notifier)
    report = coordinator.cancel_route(cancel_ride_id)

    rows = []
    for outcome in report.reassigned:
        rows.append({"booking_id": outcome.booking_id, "outcome": "REASSIGNED",
                     "new_ride_id": outcome.new_route_id, "match_score": outcome.match_score,
                     "match_quality": outcome.match_quality, "refund": False, "detail": ""})
    for outcome in report.no_alternative:
        rows.append({"booking_id": outcome.booking_id, "outcome": "NO_ALTERNATIVE",
                     "new_ride_id": "", "match_score": None, "match_quality": "",
                     "refund": outcome.refund_initiated, "detail": outcome.reason})
    for outcome in report.errors:
        rows.append({"booking_id": outcome.booking_id, "outcome": "ERROR",
                     "new_ride_id": "", "match_score": None, "match_quality": "",
                     "refund": False, "detail": outcome.error})

    results = pd.DataFrame(rows)
    output_path = os.path.join(BASE_DIR, "reassignment_results.csv")
    results.to_csv(output_path, index=False)

    print("\n--- Outcomes ---")
    print(results.to_string(index=False) if not results.empty else "(no affected bookings)")

    # 4. Track the first rescue ride
    if report.reassigned:
        target = ride_store.get(report.reassigned[0].new_route_id)
        passengers = [o.passenger_id for o in report.reassigned if o.new_route_id == target.id]
        print(f"\nTracking rescue ride {target.id}...")
        simulate_tracking(target, passengers, notifier)

    print("\n=== SIMULATION COMPLETE ===")
    print(report.summary())
    print(f"Seats migrated: {report.seats_migrated}")
    print(f"Events emitted: {len(notifier.events)}")
    print(f"Results written to '{output_path}'.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_simulation(sys.argv[1] if len(sys.argv) > 1 else None)
