"""
Rides domain package.

Public API:
- Domain models: TripRequest, CandidateRoute, RouteConstraints, RideStatus, GenderPolicy
- Validation: InputError, validate_point, validate_polyline
- Store: InMemoryRideStore
"""
from .models import (
    CandidateRoute,
    GenderPolicy,
    InputError,
    Point,
    Polyline,
    RideStatus,
    RouteConstraints,
    TripRequest,
    validate_point,
    validate_polyline,
)
from .store import InMemoryRideStore, RideNotFound

__all__ = ["CandidateRoute",
           "GenderPolicy",
             "InputError",
             "Point",
             "Polyline",
               "RideStatus",
               "RouteConstraints",
               "TripRequest",
               "validate_point",
               "validate_polyline",
               "InMemoryRideStore",
               "RideNotFound",
               ]
