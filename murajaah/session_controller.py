"""
Review session lifecycle.

A session walks the due review units in order. Each rating is applied to
every member of the current unit with one timestamp, written in a single
transaction, and counted once in the session statistics.

States:
    IDLE -> ACTIVE <-> PAUSED -> COMPLETE

Ratings are idempotent per unit: every unit has a pending event id that is
stored in each member's review entry. If a write fails the same call can be
retried; members that already carry the event id are not scheduled again.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from murajaah.errors import (
    EmptySessionError,
    InvalidSessionStateError,
    PersistenceError,
    RecordDecodeError,
)
from murajaah.fsrs import (
    DEFAULT_PARAMETERS,
    CardState,
    FSRSParameters,
    Rating,
    calculate_optimal_intervals,
    schedule_review,
)
from murajaah.records import (
    ItemRecord,
    RatingTally,
    ReviewEntry,
    SessionStatistics,
    new_id,
    utc_now,
)
from murajaah.scheduler import DueSetSelector, ReviewUnit
from murajaah.store.progress_repo import ProgressRepository
from murajaah.store.stats_repo import SessionStatisticsRepository

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETE = "complete"


def calculate_retention(tally: RatingTally) -> float:
    """Share of passing ratings (Hard, Good, Easy) as a percentage; 0 when empty."""
    if tally.total == 0:
        return 0.0
    return tally.passed / tally.total * 100


def _elapsed_ms(start: Optional[datetime], end: datetime) -> int:
    if start is None:
        return 0
    return max(0, int((end - start).total_seconds() * 1000))


class ReviewSession:
    """
    Drives one review session.

    Usage:
        session = ReviewSession(selector, progress_repo, stats_repo, limit=50)
        session.start()
        while session.status != SessionStatus.COMPLETE:
            show(session.current_items)
            session.rate_current_unit(Rating.GOOD)
    """

    def __init__(
        self,
        selector: DueSetSelector,
        progress_repo: ProgressRepository,
        stats_repo: SessionStatisticsRepository,
        params: FSRSParameters = DEFAULT_PARAMETERS,
        limit: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.selector = selector
        self.progress_repo = progress_repo
        self.stats_repo = stats_repo
        self.params = params
        self.limit = limit
        self.clock = clock

        self._status = SessionStatus.IDLE
        self._units: list[ReviewUnit] = []
        self._index = 0
        self._stats: Optional[SessionStatistics] = None
        self._pending_event_id: Optional[str] = None

        # Wall-clock accounting; paused time is excluded
        self._active_ms = 0
        self._active_since: Optional[datetime] = None
        self._paused_at: Optional[datetime] = None
        self._unit_shown_at: Optional[datetime] = None

    # ---- Properties ----

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def statistics(self) -> Optional[SessionStatistics]:
        return self._stats

    @property
    def unit_index(self) -> int:
        return self._index

    @property
    def total_units(self) -> int:
        return len(self._units)

    @property
    def current_unit(self) -> Optional[ReviewUnit]:
        if self._status not in (SessionStatus.ACTIVE, SessionStatus.PAUSED):
            return None
        if self._index >= len(self._units):
            return None
        return self._units[self._index]

    @property
    def current_items(self) -> list[ItemRecord]:
        unit = self.current_unit
        return list(unit.items) if unit is not None else []

    # ---- Lifecycle ----

    def start(self) -> SessionStatistics:
        """
        Load the due units and open the session.

        Raises:
            InvalidSessionStateError: If the session was already started
            EmptySessionError: If nothing is due; the session stays idle
        """
        if self._status != SessionStatus.IDLE:
            raise InvalidSessionStateError(f"Cannot start a session that is {self._status.value}")

        now = self.clock()
        items = self.selector.get_session_items(now, self.limit)
        units = self.selector.build_review_units(items)
        if not units:
            raise EmptySessionError("No items are due for review")

        stats = SessionStatistics(id=new_id(), started_at=now)
        self.stats_repo.save(stats)

        self._units = units
        self._index = 0
        self._stats = stats
        self._pending_event_id = new_id()
        self._active_ms = 0
        self._active_since = now
        self._unit_shown_at = now
        self._status = SessionStatus.ACTIVE
        logger.info("Session %s started with %d unit(s), %d item(s)", stats.id, len(units), len(items))
        return stats

    def rate_current_unit(self, rating: Rating, elapsed_ms: Optional[int] = None) -> list[ItemRecord]:
        """
        Apply a rating to every member of the current unit and advance.

        Args:
            rating: Recall rating for the whole unit
            elapsed_ms: Time spent on the unit; measured from when it was shown if omitted

        Returns:
            The unit's records after scheduling

        Raises:
            InvalidSessionStateError: If the session is not active
            PersistenceError: If a write failed; the session did not advance
            RecordDecodeError: If a member record is corrupted; the session is ended
        """
        if self._status != SessionStatus.ACTIVE:
            raise InvalidSessionStateError(f"Cannot rate while session is {self._status.value}")

        rating = Rating(rating)
        unit = self._units[self._index]
        event_id = self._pending_event_id
        now = self.clock()
        if elapsed_ms is None:
            elapsed_ms = _elapsed_ms(self._unit_shown_at, now)

        try:
            members = [self.progress_repo.get(item.id) for item in unit.items]
        except RecordDecodeError:
            logger.error("Corrupted record in unit %s, ending session", unit.key)
            self._abandon()
            raise

        scheduled = []
        results = []
        for member in members:
            if member.has_event(event_id):
                results.append(member)
                continue
            card = schedule_review(member.to_card(), rating, now, self.params)
            entry = ReviewEntry(
                rating=rating,
                reviewed_at=now,
                elapsed_ms=elapsed_ms,
                previous_interval=member.interval,
                scheduled_interval=card.interval,
                event_id=event_id,
            )
            updated = member.apply_review(card, entry)
            scheduled.append(updated)
            results.append(updated)

        if scheduled:
            self.progress_repo.upsert_many(scheduled)

        is_last = self._index + 1 >= len(self._units)
        stats = self._count_rating(unit, rating, now, completed=is_last)
        self.stats_repo.save(stats)

        # Writes succeeded; advance
        self._stats = stats
        self._index += 1
        self._pending_event_id = new_id()
        self._unit_shown_at = now
        logger.debug("Rated unit %s (%d item(s)) %s", unit.key, len(unit.items), rating.name)

        if is_last:
            self._close(now)
            logger.info("Session %s complete: %d unit(s) reviewed", stats.id, stats.total_reviewed)
        return results

    def pause(self) -> None:
        if self._status != SessionStatus.ACTIVE:
            raise InvalidSessionStateError(f"Cannot pause while session is {self._status.value}")
        now = self.clock()
        self._active_ms += _elapsed_ms(self._active_since, now)
        self._active_since = None
        self._paused_at = now
        self._status = SessionStatus.PAUSED

    def resume(self) -> None:
        if self._status != SessionStatus.PAUSED:
            raise InvalidSessionStateError(f"Cannot resume while session is {self._status.value}")
        now = self.clock()
        if self._unit_shown_at is not None and self._paused_at is not None:
            self._unit_shown_at += now - self._paused_at
        self._active_since = now
        self._paused_at = None
        self._status = SessionStatus.ACTIVE

    def end(self) -> Optional[SessionStatistics]:
        """
        End the session early and finalize the statistics gathered so far.

        Returns:
            Final statistics, or None if the session was never started

        Raises:
            InvalidSessionStateError: If the session is already complete
            PersistenceError: If the final write failed; the session stays open
        """
        if self._status == SessionStatus.COMPLETE:
            raise InvalidSessionStateError("Session is already complete")

        if self._status == SessionStatus.IDLE:
            self._status = SessionStatus.COMPLETE
            return None

        now = self.clock()
        stats = replace(
            self._stats,
            review_time_ms=self._review_time_ms(now),
            completed_at=now,
        )
        self.stats_repo.save(stats)
        total_units = len(self._units)
        self._stats = stats
        self._close(now)
        logger.info("Session %s ended after %d of %d unit(s)", stats.id, stats.total_reviewed, total_units)
        return stats

    def preview_intervals(self) -> dict[Rating, int]:
        """Days until the next review for each rating of the current unit."""
        unit = self.current_unit
        if unit is None:
            raise InvalidSessionStateError("No unit to preview")
        return calculate_optimal_intervals(unit.representative.to_card(), self.clock(), self.params)

    # ---- Internals ----

    def _review_time_ms(self, now: datetime) -> int:
        return self._active_ms + _elapsed_ms(self._active_since, now)

    def _count_rating(
        self,
        unit: ReviewUnit,
        rating: Rating,
        now: datetime,
        completed: bool,
    ) -> SessionStatistics:
        ratings = self._stats.ratings.add(rating)
        new_learned = 1 if unit.state == CardState.NEW else 0
        return replace(
            self._stats,
            total_reviewed=self._stats.total_reviewed + 1,
            new_learned=self._stats.new_learned + new_learned,
            ratings=ratings,
            retention=calculate_retention(ratings),
            review_time_ms=self._review_time_ms(now),
            completed_at=now if completed else None,
        )

    def _close(self, now: datetime) -> None:
        self._active_ms = self._review_time_ms(now)
        self._active_since = None
        self._paused_at = None
        self._unit_shown_at = None
        self._pending_event_id = None
        self._units = []
        self._index = 0
        self._status = SessionStatus.COMPLETE

    def _abandon(self) -> None:
        try:
            self.end()
        except PersistenceError:
            logger.exception("Could not finalize abandoned session")
