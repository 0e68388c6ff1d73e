"""
Due-set selector for review sessions.

Selects the records due for review, expands grouped items to their whole
group and collapses them into review units:
- A grouped unit is every member of one group, rated together
- An ungrouped unit is a single item

Units are ordered by state priority (new, learning, relearning, review),
then by earliest next review with never-scheduled records first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from murajaah.fsrs import STATE_PRIORITY, CardState
from murajaah.records import ItemRecord
from murajaah.store.progress_repo import ProgressRepository

logger = logging.getLogger(__name__)

OTHER_STATE_PRIORITY = 4


def state_priority(state: CardState) -> int:
    return STATE_PRIORITY.get(state, OTHER_STATE_PRIORITY)


def _due_order(record: ItemRecord) -> tuple:
    # Unset next_review sorts before any date
    next_review = record.next_review
    return (
        state_priority(record.state),
        next_review is not None,
        next_review.timestamp() if next_review is not None else 0.0,
    )


@dataclass(frozen=True)
class ReviewUnit:
    """One or more items rated together with a single rating."""
    key: str
    items: tuple[ItemRecord, ...]
    is_group: bool

    @property
    def representative(self) -> ItemRecord:
        """First member by group position; its state stands for the unit."""
        return self.items[0]

    @property
    def state(self) -> CardState:
        return self.representative.state

    @property
    def next_review(self) -> Optional[datetime]:
        return self.representative.next_review

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.items]


@dataclass(frozen=True)
class DueSummary:
    """Due counts for the dashboard, counted per review unit."""
    due: int = 0
    new: int = 0
    learning: int = 0  # learning + relearning
    review: int = 0


class DueSetSelector:
    """
    Usage:
        selector = DueSetSelector(ProgressRepository(db))
        items = selector.get_session_items(now, limit=50)
        units = selector.build_review_units(items)
    """

    def __init__(self, progress_repo: ProgressRepository):
        self.progress_repo = progress_repo

    def get_due_items(self, now: datetime, limit: Optional[int] = None) -> list[ItemRecord]:
        """
        Due records in priority order.

        The limit applies to records, not units; grouped units are completed
        later by get_session_items. A limit of None, 0 or less means no limit.
        """
        due = sorted(self.progress_repo.list_due(now), key=_due_order)
        if limit and limit > 0:
            due = due[:limit]
        return due

    def get_session_items(self, now: datetime, limit: Optional[int] = None) -> list[ItemRecord]:
        """
        Due records with every grouped record expanded to its whole group.

        A group is pulled in at the position of its first due member, with
        members ordered by group position.
        """
        items = []
        seen_groups = set()
        for record in self.get_due_items(now, limit):
            if not record.test_with_group:
                items.append(record)
            elif record.group_id not in seen_groups:
                seen_groups.add(record.group_id)
                items.extend(self.progress_repo.list_group(record.group_id))
        return items

    def build_review_units(self, items: list[ItemRecord]) -> list[ReviewUnit]:
        members: dict[str, list[ItemRecord]] = {}
        grouped: dict[str, bool] = {}
        for item in items:
            members.setdefault(item.unit_key, []).append(item)
            grouped[item.unit_key] = item.test_with_group

        units = [
            ReviewUnit(
                key=key,
                items=tuple(sorted(group, key=lambda r: r.group_position)),
                is_group=grouped[key],
            )
            for key, group in members.items()
        ]
        units.sort(key=lambda unit: _due_order(unit.representative))
        return units

    def get_due_groups(self, now: datetime, limit: Optional[int] = None) -> list[str]:
        """Ordered unit keys (group id or item id) due at `now`."""
        units = self.build_review_units(self.get_session_items(now, limit))
        return [unit.key for unit in units]

    def get_due_summary(self, now: datetime) -> DueSummary:
        """Count due units by the state of their first due member."""
        first_member: dict[str, ItemRecord] = {}
        for record in self.get_due_items(now):
            current = first_member.get(record.unit_key)
            if current is None or record.group_position < current.group_position:
                first_member[record.unit_key] = record

        new = learning = review = 0
        for record in first_member.values():
            if record.state == CardState.NEW:
                new += 1
            elif record.state == CardState.REVIEW:
                review += 1
            else:
                learning += 1

        summary = DueSummary(due=len(first_member), new=new, learning=learning, review=review)
        logger.debug("Due summary at %s: %s", now.isoformat(), summary)
        return summary
