"""
Memory State - FSRS Card State and Retrievability

Defines the card snapshot the memory model works on and the derived
quantities of the forgetting curve.

Key concepts:
- Stability (S): days until retrievability decays to 90%
- Difficulty (D): how hard the card is (0-1 scale)
- Retrievability (R): probability of successful recall at time t
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import math

from murajaah.fsrs.constants import (
    BASE_RETENTION,
    DEFAULT_EASE_FACTOR,
    SECONDS_PER_DAY,
    CardState,
)


@dataclass(frozen=True)
class FSRSCard:
    """
    Scheduling snapshot of a single item.

    Immutable: the scheduler returns a new card instead of mutating this one.
    """
    state: CardState = CardState.NEW
    stability: float = 0.0
    difficulty: float = 0.0
    lapses: int = 0
    last_review: Optional[datetime] = None
    due_date: Optional[datetime] = None
    interval: int = 0  # Whole days
    ease_factor: float = DEFAULT_EASE_FACTOR


def initialize_card() -> FSRSCard:
    """Card state for an item that has never been reviewed."""
    return FSRSCard()


def elapsed_days(last_review: Optional[datetime], now: datetime) -> float:
    """
    Days between the last review and now.

    Returns 0 for cards that were never reviewed.
    """
    if last_review is None:
        return 0.0
    return (now - last_review).total_seconds() / SECONDS_PER_DAY


def memory_retention(stability: float, days: float) -> float:
    """
    Calculate retrievability on the forgetting curve.

    Formula: R = exp(ln(0.9) * t / S)

    Interpretation:
    - Immediately after review: R = 1.0
    - After S days: R = 0.9
    - Non-positive stability is treated as "just reviewed" (R = 1.0)

    Args:
        stability: Current stability in days
        days: Time since last review in days

    Returns:
        Retrievability between 0 and 1
    """
    if days <= 0:
        return 1.0
    if stability <= 0:
        return 1.0
    return math.exp(math.log(BASE_RETENTION) * days / stability)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def next_interval(stability: float, request_retention: float) -> int:
    """
    Interval in whole days for a target stability.

    Formula: I = round(S * ln(r) / ln(0.9)), at least 1 day.
    A card without stability gets 0 (due immediately).
    """
    if stability <= 0:
        return 0
    interval = round_half_up(
        stability * math.log(request_retention) / math.log(BASE_RETENTION)
    )
    return max(1, interval)


def is_due(card: FSRSCard, now: datetime) -> bool:
    """New cards are always due; others once their due date has passed."""
    if card.state == CardState.NEW:
        return True
    if card.due_date is None:
        return False
    return card.due_date <= now


def calculate_retention(card: FSRSCard, now: datetime) -> float:
    """
    Current retrievability of a card.

    New or never-reviewed cards have no memory trace yet, so 0 is reported.
    """
    if card.last_review is None or card.state == CardState.NEW:
        return 0.0
    return memory_retention(card.stability, elapsed_days(card.last_review, now))
