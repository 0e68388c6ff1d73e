"""
Scheduler - FSRS Algorithm Logic

Pure FSRS scheduling and state updates (no database calls).

Main workflow:
1. Load card state (caller's responsibility)
2. Seed new cards with the initial stability and difficulty
3. Apply the branch for the rating and the card's current state
4. Return the updated card; persisting it is the caller's job

This module handles ONLY the algorithm logic.
Database I/O is handled by the store package.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timedelta

from murajaah.fsrs.constants import (
    D_MAX,
    D_MIN,
    DEFAULT_PARAMETERS,
    EASY_GRADUATING_INTERVAL,
    GOOD_GRADUATING_INTERVAL,
    HARD_LEARNING_INTERVAL,
    CardState,
    FSRSParameters,
    Rating,
)
from murajaah.fsrs.memory_state import (
    FSRSCard,
    elapsed_days,
    memory_retention,
    next_interval,
)


def clamp_difficulty(difficulty: float) -> float:
    return min(max(D_MIN, difficulty), D_MAX)


def _due_in(now: datetime, days: int) -> datetime:
    return now + timedelta(days=days)


def _review_stability(
    stability: float,
    factor: float,
    retrievability: float,
    w: tuple[float, ...],
) -> float:
    """S' = S * factor * R^(-w2)"""
    return stability * factor * retrievability ** (-w[2])


def schedule_review(
    card: FSRSCard,
    rating: Rating,
    now: datetime,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> FSRSCard:
    """
    Compute the card state after a rating.

    Branches by rating:
    - AGAIN: back to learning (from new/learning) or relearning with a lapse
      (from review/relearning); due immediately
    - HARD: 1 day while learning; decayed stability growth from review
    - GOOD: graduates new/learning cards with a 1 day interval; stability
      growth from relearning/review
    - EASY: graduates new/learning/relearning cards with a 4 day interval;
      stability growth from review

    Args:
        card: Current card state (not modified)
        rating: User rating
        now: Review timestamp, captured once by the caller
        params: FSRS weights and target retention

    Returns:
        New FSRSCard with last_review set to now
    """
    rating = Rating(rating)
    w = params.w
    days = elapsed_days(card.last_review, now)
    previous = card.state

    stability = card.stability
    difficulty = card.difficulty
    lapses = card.lapses

    if previous == CardState.NEW:
        difficulty = w[1]
        stability = w[0]

    if rating == Rating.AGAIN:
        if previous in (CardState.NEW, CardState.LEARNING):
            state = CardState.LEARNING
        else:
            state = CardState.RELEARNING
            lapses += 1

        if stability > 0:
            stability = stability * w[3]
        difficulty = clamp_difficulty(difficulty + w[7])

        interval = 0
        due_date = now

    elif rating == Rating.HARD:
        if previous == CardState.REVIEW:
            retrievability = memory_retention(card.stability, days)
            stability = _review_stability(card.stability, w[4], retrievability, w)
            difficulty = clamp_difficulty(difficulty + w[8])
            interval = next_interval(stability, params.request_retention)
            state = CardState.REVIEW
        else:
            # Hard never decays stability while learning
            interval = HARD_LEARNING_INTERVAL
            state = CardState.REVIEW if previous == CardState.RELEARNING else CardState.LEARNING
        due_date = _due_in(now, interval)

    elif rating == Rating.GOOD:
        if previous in (CardState.NEW, CardState.LEARNING):
            interval = GOOD_GRADUATING_INTERVAL
        else:
            retrievability = memory_retention(card.stability, days)
            stability = _review_stability(card.stability, w[5], retrievability, w)
            interval = next_interval(stability, params.request_retention)
        state = CardState.REVIEW
        difficulty = clamp_difficulty(difficulty + w[9])
        due_date = _due_in(now, interval)

    else:
        if previous == CardState.REVIEW:
            retrievability = memory_retention(card.stability, days)
            stability = _review_stability(card.stability, w[6], retrievability, w)
            interval = next_interval(stability, params.request_retention)
        else:
            interval = EASY_GRADUATING_INTERVAL
        state = CardState.REVIEW
        difficulty = clamp_difficulty(difficulty + w[10])
        due_date = _due_in(now, interval)

    return replace(
        card,
        state=state,
        stability=stability,
        difficulty=difficulty,
        lapses=lapses,
        interval=interval,
        due_date=due_date,
        last_review=now,
    )


def calculate_optimal_intervals(
    card: FSRSCard,
    now: datetime,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> dict[Rating, int]:
    """
    Preview the interval each rating would produce.

    Runs the full transition on the immutable card once per rating, so the
    input card is never changed.
    """
    return {
        rating: schedule_review(card, rating, now, params).interval
        for rating in Rating
    }
