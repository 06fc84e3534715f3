import uuid
from datetime import datetime, timedelta

import numpy as np
import pandas as pd


def generate_mock_rides(num_corridors=6, rides_per_corridor=5, bookings_per_ride=3,
                        rides_file="mock_rides.csv", bookings_file="mock_bookings.csv"):
    """
    Generates posted rides and their bookings for the reassignment simulation.
    Rides are grouped in 'corridors' (same rough origin/destination) so that a
    cancelled ride usually has a few realistic alternatives, plus some noise.
    """
    # Center around Harare, Zimbabwe
    CENTER_LAT = -17.824858
    CENTER_LON = 31.053028

    now = datetime.now().replace(second=0, microsecond=0)
    rides = []
    bookings = []

    for corridor_index in range(num_corridors):
        # Destination 60-150 km out in a random direction (~0.5-1.4 degrees)
        bearing = np.random.uniform(0, 2 * np.pi)
        reach = np.random.uniform(0.55, 1.35)
        dest_lat = CENTER_LAT + reach * np.sin(bearing)
        dest_lon = CENTER_LON + reach * np.cos(bearing)

        for ride_index in range(rides_per_corridor):
            ride_id = f"r_{str(uuid.uuid4())[:8]}"
            # 20% chance the same driver posts twice in a corridor
            owner_id = f"d_{corridor_index}_{ride_index if np.random.random() > 0.2 else 0}"

            start_lat = CENTER_LAT + np.random.uniform(-0.03, 0.03)
            start_lon = CENTER_LON + np.random.uniform(-0.03, 0.03)
            end_lat = dest_lat + np.random.uniform(-0.05, 0.05)
            end_lon = dest_lon + np.random.uniform(-0.05, 0.05)

            departure = now + timedelta(hours=int(np.random.randint(1, 60)))
            seats = int(np.random.randint(1, 5))

            rides.append({
                "ride_id": ride_id,
                "owner_id": owner_id,
                "corridor": corridor_index,
                "start_lon": np.round(start_lon, 6),
                "start_lat": np.round(start_lat, 6),
                "end_lon": np.round(end_lon, 6),
                "end_lat": np.round(end_lat, 6),
                "departure": departure.isoformat(),
                "available_seats": seats,
                "price_per_seat": np.round(np.random.uniform(5.0, 25.0), 2),
                "gender_policy": np.random.choice(["ANY", "FEMALE_ONLY"], p=[0.85, 0.15]),
                "verified_only": bool(np.random.random() < 0.1),
            })

            # Bookings board somewhere along the ride and leave further along
            for _ in range(int(np.random.randint(0, bookings_per_ride + 1))):
                board = np.random.uniform(0.0, 0.4)
                leave = np.random.uniform(board + 0.3, 1.0)
                bookings.append({
                    "booking_id": f"b_{str(uuid.uuid4())[:8]}",
                    "ride_id": ride_id,
                    "passenger_id": f"p_{np.random.randint(1000, 9999)}",
                    "gender": np.random.choice(["FEMALE", "MALE"]),
                    "verified": bool(np.random.random() < 0.6),
                    "seats": int(np.random.choice([1, 1, 1, 2])),
                    "pickup_lon": np.round(start_lon + (end_lon - start_lon) * board, 6),
                    "pickup_lat": np.round(start_lat + (end_lat - start_lat) * board, 6),
                    "dropoff_lon": np.round(start_lon + (end_lon - start_lon) * leave, 6),
                    "dropoff_lat": np.round(start_lat + (end_lat - start_lat) * leave, 6),
                    "status": np.random.choice(["PENDING", "CONFIRMED"], p=[0.3, 0.7]),
                    "payment_status": np.random.choice(["PENDING", "PAID"], p=[0.4, 0.6]),
                })

    pd.DataFrame(rides).to_csv(rides_file, index=False)
    pd.DataFrame(bookings).to_csv(bookings_file, index=False)

    print(f"Successfully generated {len(rides)} rides into '{rides_file}' and {len(bookings)} bookings into '{bookings_file}'.")


if __name__ == "__main__":
    generate_mock_rides()
