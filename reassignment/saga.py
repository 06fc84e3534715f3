"""
Purpose: Per-booking reassignment workflow markers.

Moving a booking is several non-atomic steps:

    CANCEL_OLD -> SEARCH -> CREATE_NEW -> DECREMENT_CAPACITY -> FINALIZE_OLD -> NOTIFY
                          \\-> EXHAUSTED (no candidate survived)

Each step is marked when it completes, so a crash mid-way leaves a saga whose
markers show exactly how far it got. is_consistent() is False for the
dangerous half-states (a new booking without its seats, seats taken without
the old booking closed).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional


class SagaStep(str, Enum):
    CANCEL_OLD = "CANCEL_OLD"
    SEARCH = "SEARCH"
    CREATE_NEW = "CREATE_NEW"
    DECREMENT_CAPACITY = "DECREMENT_CAPACITY"
    FINALIZE_OLD = "FINALIZE_OLD"
    NOTIFY = "NOTIFY"
    EXHAUSTED = "EXHAUSTED"


@dataclass
class ReassignmentSaga:
    booking_id: str
    completed: Dict[SagaStep, datetime] = field(default_factory=dict)

    new_booking_id: Optional[str] = None
    new_route_id: Optional[str] = None
    # candidates tried and given up on (capacity race, constraint, error)
    abandoned_routes: List[str] = field(default_factory=list)

    def mark(self, step: SagaStep, at: Optional[datetime] = None) -> None:
        self.completed[step] = at or datetime.now()

    def has(self, step: SagaStep) -> bool:
        return step in self.completed

    def undo(self, step: SagaStep) -> None:
        """Compensation: the step's effect was reverted."""
        self.completed.pop(step, None)

    @property
    def steps(self) -> List[SagaStep]:
        return list(self.completed)

    def is_consistent(self) -> bool:
        if self.has(SagaStep.CREATE_NEW) and not self.has(SagaStep.DECREMENT_CAPACITY):
            return False
        if self.has(SagaStep.DECREMENT_CAPACITY) and not self.has(SagaStep.FINALIZE_OLD):
            return False
        return True

    @property
    def is_finished(self) -> bool:
        return self.has(SagaStep.NOTIFY)
