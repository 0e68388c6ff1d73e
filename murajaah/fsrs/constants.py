"""
FSRS Constants and Parameters

All configurable parameters for the FSRS memory model in one place.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, IntEnum


# ---- Ratings ----

class Rating(IntEnum):
    """User rating of a recall attempt."""
    AGAIN = 1   # Recall failed
    HARD = 2    # Recalled with high effort
    GOOD = 3    # Recalled normally
    EASY = 4    # Recalled fluently


class CardState(str, Enum):
    """Scheduling branch a card is in."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


# ---- Global Constants ----

SECONDS_PER_DAY = 86400.0
BASE_RETENTION = 0.9      # Retrievability reached after `stability` days
DEFAULT_EASE_FACTOR = 2.5  # Legacy field, not used by the math

HARD_LEARNING_INTERVAL = 1  # Days, Hard while new/learning/relearning
GOOD_GRADUATING_INTERVAL = 1  # Days, first graduation on Good
EASY_GRADUATING_INTERVAL = 4  # Days, skip-ahead graduation on Easy

D_MIN = 0.0
D_MAX = 1.0


# ---- Default Weights ----
# w0:  initial stability for new cards
# w1:  initial difficulty
# w2:  retrievability exponent applied on successful review
# w3:  Again stability factor
# w4:  Hard stability factor
# w5:  Good stability factor
# w6:  Easy stability factor
# w7:  Again difficulty delta
# w8:  Hard difficulty delta
# w9:  Good difficulty delta
# w10: Easy difficulty delta
# w11: reserved (forgetting-curve scaling, unused by the current curve)

DEFAULT_WEIGHTS: tuple[float, ...] = (
    2.4,
    0.6,
    2.4,
    0.94,
    0.86,
    1.01,
    1.3,
    0.7,
    1.0,
    1.0,
    0.9,
    0.2,
)

WEIGHT_COUNT = 12
DEFAULT_REQUEST_RETENTION = 0.9


@dataclass(frozen=True)
class FSRSParameters:
    """Weights plus target retention. Read-only input to the memory model."""
    w: tuple[float, ...] = field(default=DEFAULT_WEIGHTS)
    request_retention: float = DEFAULT_REQUEST_RETENTION

    def __post_init__(self):
        weights = tuple(float(x) for x in self.w)
        if len(weights) != WEIGHT_COUNT:
            raise ValueError(f"Expected {WEIGHT_COUNT} weights, got {len(weights)}")
        if not 0.0 < self.request_retention < 1.0:
            raise ValueError(
                f"request_retention must be in (0, 1), got {self.request_retention}"
            )
        object.__setattr__(self, "w", weights)


DEFAULT_PARAMETERS = FSRSParameters()


# State priority used when ordering due work (lower comes first)
STATE_PRIORITY = {
    CardState.NEW: 1,
    CardState.LEARNING: 2,
    CardState.RELEARNING: 3,
    CardState.REVIEW: 4,
}
