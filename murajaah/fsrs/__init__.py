"""
FSRS - Free Spaced Repetition Scheduler

Pure memory model for the review scheduler.

This module implements:
- Four-state card lifecycle (new, learning, review, relearning)
- Forgetting curve: R = exp(ln(0.9) * t / S)
- Rating-driven stability and difficulty updates
- Interval computation for a target retention

Quick start:
    from murajaah import fsrs

    card = fsrs.initialize_card()
    card = fsrs.schedule_review(card, fsrs.Rating.GOOD, now)
    previews = fsrs.calculate_optimal_intervals(card, now)
"""

# Core scheduler API (algorithm logic)
from murajaah.fsrs.scheduler import (
    schedule_review,
    calculate_optimal_intervals,
    clamp_difficulty,
)

# Constants and parameters
from murajaah.fsrs.constants import (
    Rating,
    CardState,
    FSRSParameters,
    DEFAULT_PARAMETERS,
    DEFAULT_WEIGHTS,
    DEFAULT_REQUEST_RETENTION,
    DEFAULT_EASE_FACTOR,
    STATE_PRIORITY,
    WEIGHT_COUNT,
)

# Memory state
from murajaah.fsrs.memory_state import (
    FSRSCard,
    initialize_card,
    memory_retention,
    next_interval,
    is_due,
    calculate_retention,
    elapsed_days,
)


__all__ = [
    # Core algorithm
    "schedule_review",
    "calculate_optimal_intervals",
    "clamp_difficulty",

    # Enums
    "Rating",
    "CardState",

    # Memory state
    "FSRSCard",
    "initialize_card",
    "memory_retention",
    "next_interval",
    "is_due",
    "calculate_retention",
    "elapsed_days",

    # Parameters
    "FSRSParameters",
    "DEFAULT_PARAMETERS",
    "DEFAULT_WEIGHTS",
    "DEFAULT_REQUEST_RETENTION",
    "DEFAULT_EASE_FACTOR",
    "STATE_PRIORITY",
    "WEIGHT_COUNT",
]
