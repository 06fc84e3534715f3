"""
Automatic reassignment package.

Public API:
- ReassignmentCoordinator (cancel_route, find_alternative_rides, reassignment_stats)
- Policy: ReassignmentPolicy, default_reassignment_policy, reassignment_policy_from_env
- Candidates: RankedCandidates, CandidateVerdict, RejectReason, search_window
- Saga: ReassignmentSaga, SagaStep
- Outcomes: ReassignedOutcome, NoAlternativeOutcome, ErrorOutcome, ReassignmentReport
"""
from .candidates import CandidateVerdict, RankedCandidates, RejectReason, eligible_routes, search_window
from .coordinator import ReassignmentCoordinator
from .outcomes import ErrorOutcome, NoAlternativeOutcome, ReassignedOutcome, ReassignmentReport
from .policy import ReassignmentPolicy, default_reassignment_policy, reassignment_policy_from_env
from .saga import ReassignmentSaga, SagaStep

__all__ = ["ReassignmentCoordinator",
           "ReassignmentPolicy",
           "default_reassignment_policy",
             "reassignment_policy_from_env",
             "RankedCandidates",
             "CandidateVerdict",
               "RejectReason",
               "eligible_routes",
               "search_window",
               "ReassignmentSaga",
               "SagaStep",
               "ReassignedOutcome",
               "NoAlternativeOutcome",
               "ErrorOutcome",
               "ReassignmentReport",
               ]
