"""
Item progress repository.

Reads and writes ItemRecords. Writes of several records go through one
transaction so a group is either fully rated or not at all.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_

from murajaah.errors import NotFoundError, PersistenceError
from murajaah.records import ItemGroup, ItemRecord, new_item_record, utc_now
from murajaah.store.database import Database
from murajaah.store.models import ItemProgress, ReviewEntry as ReviewEntryModel
from murajaah.store.schemas import as_utc, decode_item_record

logger = logging.getLogger(__name__)


def _entry_key(rating, reviewed_at, event_id) -> tuple:
    return int(rating), as_utc(reviewed_at), event_id


class ProgressRepository:
    """Store of item scheduling records."""

    def __init__(self, db: Database):
        self.db = db

    # ---- Reads ----

    def get(self, record_id: str) -> ItemRecord:
        with self.db.session_scope() as session:
            row = session.get(ItemProgress, record_id)
            if row is None:
                raise NotFoundError("item record", record_id)
            return decode_item_record(row)

    def get_by_item(self, container_number: int, item_number: int) -> Optional[ItemRecord]:
        with self.db.session_scope() as session:
            row = session.query(ItemProgress).filter(
                ItemProgress.container_number == container_number,
                ItemProgress.item_number == item_number,
            ).first()
            return decode_item_record(row) if row is not None else None

    def list_due(self, now: datetime) -> list[ItemRecord]:
        """
        All records due at `now` (next_review unset or not after now).

        Unordered; ranking is the selector's job.
        """
        with self.db.session_scope() as session:
            rows = session.query(ItemProgress).filter(
                or_(
                    ItemProgress.next_review.is_(None),
                    ItemProgress.next_review <= as_utc(now),
                )
            ).all()
            return [decode_item_record(row) for row in rows]

    def list_group(self, group_id: str) -> list[ItemRecord]:
        """Members of a group ordered by group position."""
        with self.db.session_scope() as session:
            rows = session.query(ItemProgress).filter(
                ItemProgress.group_id == group_id
            ).order_by(ItemProgress.group_position).all()
            return [decode_item_record(row) for row in rows]

    def list_all(self) -> list[ItemRecord]:
        with self.db.session_scope() as session:
            rows = session.query(ItemProgress).order_by(
                ItemProgress.container_number, ItemProgress.item_number
            ).all()
            return [decode_item_record(row) for row in rows]

    # ---- Writes ----

    def upsert(self, record: ItemRecord) -> None:
        self.upsert_many([record])

    def upsert_many(self, records: Iterable[ItemRecord]) -> None:
        """
        Insert or update records in a single transaction.

        Review history is append-only: the stored history must be a prefix of
        the record's history, otherwise the whole write is rejected.
        """
        records = list(records)
        with self.db.session_scope() as session:
            for record in records:
                row = session.get(ItemProgress, record.id)
                if row is None:
                    row = ItemProgress(id=record.id)
                    session.add(row)
                _check_history_prefix(row, record)
                _copy_record(row, record)
        logger.debug("Saved %d item record(s)", len(records))

    def add_group_to_learning(
        self,
        group: ItemGroup,
        now: Optional[datetime] = None,
    ) -> list[ItemRecord]:
        """
        Create new records for every item in the group.

        Items that already have a record keep it. Returns the created records.
        """
        created_at = now or utc_now()
        with self.db.session_scope() as session:
            existing = {
                item_number
                for (item_number,) in session.query(ItemProgress.item_number).filter(
                    ItemProgress.container_number == group.container_number,
                    ItemProgress.item_number.between(group.start_index, group.end_index),
                )
            }
            created = []
            for position, item_number in enumerate(group.item_numbers, start=1):
                if item_number in existing:
                    continue
                record = new_item_record(
                    container_number=group.container_number,
                    item_number=item_number,
                    group_id=group.id,
                    test_with_group=group.test_as_group,
                    group_position=position,
                    created_at=created_at,
                )
                row = ItemProgress(id=record.id)
                _copy_record(row, record)
                session.add(row)
                created.append(record)

        logger.info(
            "Added %d item(s) of container %d (%d-%d) to learning",
            len(created), group.container_number, group.start_index, group.end_index,
        )
        return created

    def delete_all(self) -> int:
        """
        DANGEROUS: Delete every record and its review history.

        Returns:
            Number of records deleted
        """
        with self.db.session_scope() as session:
            session.query(ReviewEntryModel).delete(synchronize_session=False)
            count = session.query(ItemProgress).delete(synchronize_session=False)
        logger.warning("Deleted %d item record(s)", count)
        return count


def _check_history_prefix(row: ItemProgress, record: ItemRecord) -> None:
    stored = [_entry_key(e.rating, e.reviewed_at, e.event_id) for e in row.history]
    incoming = [_entry_key(e.rating, e.reviewed_at, e.event_id) for e in record.history]
    if incoming[:len(stored)] != stored:
        raise PersistenceError(
            f"Review history of {record.id} would rewrite {len(stored)} stored entries"
        )


def _copy_record(row: ItemProgress, record: ItemRecord) -> None:
    row.container_number = record.container_number
    row.item_number = record.item_number
    row.group_id = record.group_id
    row.group_position = record.group_position
    row.test_with_group = record.test_with_group
    row.stability = record.stability
    row.difficulty = record.difficulty
    row.ease_factor = record.ease_factor
    row.state = record.state.value
    row.lapses = record.lapses
    row.interval = record.interval
    row.last_reviewed = as_utc(record.last_reviewed)
    row.next_review = as_utc(record.next_review)
    row.recall_score = record.recall_score
    row.created_at = as_utc(record.created_at)

    for position in range(len(row.history), len(record.history)):
        entry = record.history[position]
        row.history.append(ReviewEntryModel(
            position=position,
            rating=int(entry.rating),
            reviewed_at=as_utc(entry.reviewed_at),
            elapsed_ms=entry.elapsed_ms,
            previous_interval=entry.previous_interval,
            scheduled_interval=entry.scheduled_interval,
            event_id=entry.event_id,
        ))
