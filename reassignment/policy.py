"""
Purpose: Central configuration for automatic reassignment after a driver cancels.
What it does:

Stores all tunable thresholds:

WINDOW_BEFORE_HOURS = 24   (search may start up to a day before the cancelled departure)

WINDOW_AFTER_HOURS = 48    (and runs two days past it: "some ride" beats a tight time match)

MIN_REASSIGNMENT_SCORE = 40 (looser than a fresh search: a forced migration takes "good enough")

MAX_CANDIDATES = 10        (ranked matches considered per booking)

MAX_CHAIN_LENGTH = 3       (a booking moved this many times is not moved again)

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class ReassignmentPolicy:

    # --- Search window (relative to the cancelled departure) ---
    window_before_hours: float = 24.0
    window_after_hours: float = 48.0

    # --- Ranking ---
    min_score: int = 40
    max_candidates: int = 10

    # --- Guards ---
    exclude_same_owner: bool = True
    max_chain_length: int = 3

    def validate(self) -> None:
        if self.window_before_hours < 0 or self.window_after_hours <= 0:
            raise ValueError("search window must extend after the departure")

        if not 0 <= self.min_score <= 100:
            raise ValueError("min_score must be within [0, 100]")

        if self.max_candidates <= 0:
            raise ValueError("max_candidates must be > 0")

        if self.max_chain_length <= 0:
            raise ValueError("max_chain_length must be > 0")


def default_reassignment_policy() -> ReassignmentPolicy:
    p = ReassignmentPolicy()
    p.validate()
    return p


def reassignment_policy_from_env() -> ReassignmentPolicy:
    """
    Default policy with MIN_REASSIGNMENT_SCORE read from the environment / .env.
    """
    load_dotenv()
    p = ReassignmentPolicy(
        min_score=int(os.getenv("MIN_REASSIGNMENT_SCORE", ReassignmentPolicy.min_score)),
    )
    p.validate()
    return p
