"""
Purpose: In-memory ride store (the ride-persistence collaborator).

Owns the authoritative CandidateRoute records and the one contended field:
available_capacity. Capacity changes go through try_decrement_capacity /
increment_capacity, which are atomic on the store; callers never read,
modify and write capacity themselves.

A database-backed store provides the same methods (a conditional
`UPDATE ... SET capacity = capacity - n WHERE capacity >= n`).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .models import CandidateRoute, RideStatus

logger = logging.getLogger(__name__)


class RideNotFound(KeyError):
    """Raised when a route id is unknown to the store."""
    pass


class InMemoryRideStore:
    """
    Thread-safe store of CandidateRoute snapshots keyed by id.
    """

    def __init__(self, routes: Optional[Iterable[CandidateRoute]] = None):
        self._routes: Dict[str, CandidateRoute] = {}
        self._lock = threading.Lock()
        for route in routes or []:
            self.add(route)

    # --- Public API ---

    def add(self, route: CandidateRoute) -> None:
        with self._lock:
            self._routes[route.id] = route

    def get(self, route_id: str) -> CandidateRoute:
        with self._lock:
            route = self._routes.get(route_id)
        if route is None:
            raise RideNotFound(route_id)
        return route

    def all(self) -> List[CandidateRoute]:
        with self._lock:
            return list(self._routes.values())

    def find_active(
        self,
        *,
        departure_from: Optional[datetime] = None,
        departure_to: Optional[datetime] = None,
        min_capacity: int = 1,
    ) -> List[CandidateRoute]:
        """
        ACTIVE routes with at least `min_capacity` seats departing inside the window.
        """
        found = []
        for route in self.all():
            if route.status != RideStatus.ACTIVE:
                continue
            if route.available_capacity < min_capacity:
                continue
            if departure_from is not None and route.scheduled_departure < departure_from:
                continue
            if departure_to is not None and route.scheduled_departure > departure_to:
                continue
            found.append(route)
        return found

    def set_status(self, route_id: str, status: RideStatus) -> CandidateRoute:
        with self._lock:
            route = self._routes.get(route_id)
            if route is None:
                raise RideNotFound(route_id)
            route = replace(route, status=status)
            self._routes[route_id] = route
        return route

    # --- Capacity primitive ---

    def try_decrement_capacity(self, route_id: str, seats: int) -> bool:
        """
        Atomically take `seats` from the route if it still has them.
        Returns False (and changes nothing) when capacity is insufficient.
        """
        if seats <= 0:
            raise ValueError("seats must be > 0")

        with self._lock:
            route = self._routes.get(route_id)
            if route is None:
                raise RideNotFound(route_id)
            if route.available_capacity < seats:
                return False
            self._routes[route_id] = replace(route, available_capacity=route.available_capacity - seats)

        logger.debug(f"Route {route_id}: capacity -{seats}")
        return True

    def increment_capacity(self, route_id: str, seats: int) -> None:
        """
        Give seats back (compensation for a migration that did not complete).
        """
        if seats <= 0:
            raise ValueError("seats must be > 0")

        with self._lock:
            route = self._routes.get(route_id)
            if route is None:
                raise RideNotFound(route_id)
            self._routes[route_id] = replace(route, available_capacity=route.available_capacity + seats)

        logger.debug(f"Route {route_id}: capacity +{seats}")
