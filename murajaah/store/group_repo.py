"""
Group repository.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from murajaah.errors import NotFoundError
from murajaah.records import GroupingStrategy, GroupState, ItemGroup
from murajaah.store.database import Database
from murajaah.store.models import ItemGroupRow
from murajaah.store.schemas import as_utc, decode_group

logger = logging.getLogger(__name__)


class GroupRepository:
    """Store of item groups, keyed by id and by (container, strategy)."""

    def __init__(self, db: Database):
        self.db = db

    def list_for_container(
        self,
        container_number: int,
        strategy: Optional[GroupingStrategy] = None,
    ) -> list[ItemGroup]:
        """Groups of a container ordered by start index, optionally for one strategy."""
        with self.db.session_scope() as session:
            query = session.query(ItemGroupRow).filter(
                ItemGroupRow.container_number == container_number
            )
            if strategy is not None:
                query = query.filter(ItemGroupRow.strategy == GroupingStrategy(strategy).value)
            rows = query.order_by(ItemGroupRow.start_index).all()
            return [decode_group(row) for row in rows]

    def get(self, group_id: str) -> ItemGroup:
        with self.db.session_scope() as session:
            row = session.get(ItemGroupRow, group_id)
            if row is None:
                raise NotFoundError("group", group_id)
            return decode_group(row)

    def save_many(self, groups: Iterable[ItemGroup]) -> None:
        groups = list(groups)
        with self.db.session_scope() as session:
            for group in groups:
                row = session.get(ItemGroupRow, group.id)
                if row is None:
                    row = ItemGroupRow(id=group.id)
                    session.add(row)
                row.container_number = group.container_number
                row.start_index = group.start_index
                row.end_index = group.end_index
                row.strategy = group.strategy.value
                row.state = group.state.value
                row.progress = group.progress
                row.test_as_group = group.test_as_group
                row.created_at = as_utc(group.created_at)
        logger.debug("Saved %d group(s)", len(groups))

    def delete_for_container(self, container_number: int, strategy: GroupingStrategy) -> int:
        with self.db.session_scope() as session:
            count = session.query(ItemGroupRow).filter(
                ItemGroupRow.container_number == container_number,
                ItemGroupRow.strategy == GroupingStrategy(strategy).value,
            ).delete(synchronize_session=False)
        logger.info(
            "Deleted %d %s group(s) of container %d",
            count, GroupingStrategy(strategy).value, container_number,
        )
        return count

    def update_progress(self, group_id: str, progress: float, state: GroupState) -> ItemGroup:
        """
        Set a group's progress percentage (clamped to 0-100) and rollup state.

        Raises:
            NotFoundError: If the group does not exist
        """
        with self.db.session_scope() as session:
            row = session.get(ItemGroupRow, group_id)
            if row is None:
                raise NotFoundError("group", group_id)
            row.progress = max(0.0, min(100.0, float(progress)))
            row.state = GroupState(state).value
            session.flush()
            return decode_group(row)

    def delete_all(self) -> int:
        with self.db.session_scope() as session:
            count = session.query(ItemGroupRow).delete(synchronize_session=False)
        logger.warning("Deleted %d group(s)", count)
        return count
