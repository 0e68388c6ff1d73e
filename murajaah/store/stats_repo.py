"""
Session statistics repository.

A statistics record is written zeroed when a session starts, updated as
units are rated and frozen once completed_at is set.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from murajaah.errors import InvalidSessionStateError, NotFoundError
from murajaah.records import SessionStatistics
from murajaah.store.database import Database
from murajaah.store.models import SessionStatisticsRow
from murajaah.store.schemas import as_utc, decode_session_statistics

logger = logging.getLogger(__name__)


class SessionStatisticsRepository:

    def __init__(self, db: Database):
        self.db = db

    def get(self, session_id: str) -> SessionStatistics:
        with self.db.session_scope() as session:
            row = session.get(SessionStatisticsRow, session_id)
            if row is None:
                raise NotFoundError("session statistics", session_id)
            return decode_session_statistics(row)

    def save(self, stats: SessionStatistics) -> None:
        """
        Insert or update a statistics record.

        Raises:
            InvalidSessionStateError: If the stored record is already finalized
        """
        with self.db.session_scope() as session:
            row = session.get(SessionStatisticsRow, stats.id)
            if row is None:
                row = SessionStatisticsRow(id=stats.id)
                session.add(row)
            elif row.completed_at is not None:
                raise InvalidSessionStateError(f"Session {stats.id} is already finalized")

            row.started_at = as_utc(stats.started_at)
            row.completed_at = as_utc(stats.completed_at)
            row.total_reviewed = stats.total_reviewed
            row.new_learned = stats.new_learned
            row.review_time_ms = stats.review_time_ms
            row.rating_again = stats.ratings.again
            row.rating_hard = stats.ratings.hard
            row.rating_good = stats.ratings.good
            row.rating_easy = stats.ratings.easy
            row.retention = stats.retention

    def list_recent(self, days: int, now: datetime) -> list[SessionStatistics]:
        """Sessions started within the last `days` days, oldest first."""
        since = as_utc(now) - timedelta(days=days)
        with self.db.session_scope() as session:
            rows = session.query(SessionStatisticsRow).filter(
                SessionStatisticsRow.started_at >= since
            ).order_by(SessionStatisticsRow.started_at).all()
            return [decode_session_statistics(row) for row in rows]

    def delete_all(self) -> int:
        with self.db.session_scope() as session:
            count = session.query(SessionStatisticsRow).delete(synchronize_session=False)
        logger.warning("Deleted %d session statistics record(s)", count)
        return count
