"""
Domain records shared by the store, the scheduler and the session controller.

Records are plain dataclasses. The store maps them to and from database rows;
everything else works on these types only.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from murajaah.fsrs import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_PARAMETERS,
    DEFAULT_WEIGHTS,
    CardState,
    FSRSCard,
    FSRSParameters,
    Rating,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class GroupingStrategy(str, Enum):
    """How a container is split into review groups."""
    FIXED = "fixed"
    RUKU = "ruku"    # Thematic subdivision boundaries
    PAGE = "page"    # Printed page boundaries
    CUSTOM = "custom"

    @property
    def is_structural(self) -> bool:
        return self in (GroupingStrategy.RUKU, GroupingStrategy.PAGE)


class GroupState(str, Enum):
    """Coarse rollup of a group's progress. Per-item state is authoritative."""
    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    COMPLETE = "complete"


# ---- Item progress ----

@dataclass(frozen=True)
class ReviewEntry:
    """One graded recall attempt. Entries are never changed once written."""
    rating: Rating
    reviewed_at: datetime
    elapsed_ms: Optional[int] = None
    previous_interval: Optional[int] = None
    scheduled_interval: Optional[int] = None
    event_id: Optional[str] = None


@dataclass(frozen=True)
class ItemRecord:
    """
    Scheduling record for one memorizable item.

    Identified by (container_number, item_number); belongs to one group at
    group_position (1-based).
    """
    id: str
    container_number: int
    item_number: int
    group_id: str
    group_position: int = 1
    stability: float = 0.0
    difficulty: float = 0.0
    ease_factor: float = DEFAULT_EASE_FACTOR
    state: CardState = CardState.NEW
    lapses: int = 0
    interval: int = 0
    last_reviewed: Optional[datetime] = None
    next_review: Optional[datetime] = None
    history: tuple[ReviewEntry, ...] = ()
    test_with_group: bool = False
    recall_score: float = 0.0
    created_at: datetime = field(default_factory=utc_now)

    @property
    def unit_key(self) -> str:
        """Key of the review unit this item is rated in."""
        return self.group_id if self.test_with_group else self.id

    def is_due_at(self, now: datetime) -> bool:
        return self.next_review is None or self.next_review <= now

    def has_event(self, event_id: str) -> bool:
        return any(entry.event_id == event_id for entry in self.history)

    def to_card(self) -> FSRSCard:
        return FSRSCard(
            state=self.state,
            stability=self.stability,
            difficulty=self.difficulty,
            lapses=self.lapses,
            last_review=self.last_reviewed,
            due_date=self.next_review,
            interval=self.interval,
            ease_factor=self.ease_factor,
        )

    def apply_review(self, card: FSRSCard, entry: ReviewEntry) -> "ItemRecord":
        """
        Return the record after a scheduled review.

        The history grows by exactly one entry; recall score is the share of
        Good/Easy ratings across the whole history.
        """
        history = self.history + (entry,)
        good = sum(1 for e in history if e.rating >= Rating.GOOD)
        return replace(
            self,
            state=card.state,
            stability=card.stability,
            difficulty=card.difficulty,
            ease_factor=card.ease_factor,
            lapses=card.lapses,
            interval=card.interval,
            last_reviewed=card.last_review,
            next_review=card.due_date,
            history=history,
            recall_score=good / len(history) * 100,
        )


def new_item_record(
    container_number: int,
    item_number: int,
    group_id: str,
    test_with_group: bool,
    group_position: int,
    created_at: Optional[datetime] = None,
) -> ItemRecord:
    """Fresh record for an item a learner just committed to."""
    return ItemRecord(
        id=new_id(),
        container_number=container_number,
        item_number=item_number,
        group_id=group_id,
        group_position=group_position,
        test_with_group=test_with_group,
        created_at=created_at or utc_now(),
    )


# ---- Groups ----

@dataclass(frozen=True)
class ItemGroup:
    """Contiguous, inclusive range of items within a container."""
    id: str
    container_number: int
    start_index: int
    end_index: int
    strategy: GroupingStrategy
    state: GroupState = GroupState.NEW
    progress: float = 0.0
    test_as_group: bool = True
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if self.start_index < 1 or self.start_index > self.end_index:
            raise ValueError(
                f"Invalid group range {self.start_index}-{self.end_index}"
            )

    @property
    def size(self) -> int:
        return self.end_index - self.start_index + 1

    @property
    def item_numbers(self) -> range:
        return range(self.start_index, self.end_index + 1)


# ---- Session statistics ----

@dataclass(frozen=True)
class RatingTally:
    again: int = 0
    hard: int = 0
    good: int = 0
    easy: int = 0

    @property
    def total(self) -> int:
        return self.again + self.hard + self.good + self.easy

    @property
    def passed(self) -> int:
        return self.hard + self.good + self.easy

    def add(self, rating: Rating) -> "RatingTally":
        name = Rating(rating).name.lower()
        return replace(self, **{name: getattr(self, name) + 1})


@dataclass(frozen=True)
class SessionStatistics:
    id: str
    started_at: datetime
    total_reviewed: int = 0
    new_learned: int = 0
    review_time_ms: int = 0
    ratings: RatingTally = field(default_factory=RatingTally)
    retention: float = 0.0
    completed_at: Optional[datetime] = None

    @property
    def is_finalized(self) -> bool:
        return self.completed_at is not None


# ---- Profile settings ----

@dataclass(frozen=True)
class ProfileSettings:
    """Per-learner overrides of the process-wide defaults."""
    profile_id: str
    request_retention: float = DEFAULT_PARAMETERS.request_retention
    review_limit: int = 50
    grouping_method: GroupingStrategy = GroupingStrategy.RUKU
    grouping_size: int = 5
    weights: tuple[float, ...] = DEFAULT_WEIGHTS
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def fsrs_parameters(self) -> FSRSParameters:
        return FSRSParameters(w=self.weights, request_retention=self.request_retention)
