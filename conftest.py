"""
Shared pytest fixtures: an in-memory progress store, a controllable clock
and a stub content provider.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from murajaah.content_repo import Container
from murajaah.fsrs import CardState
from murajaah.records import GroupingStrategy, ItemGroup, ItemRecord, new_id
from murajaah.scheduler import DueSetSelector
from murajaah.store import (
    Database,
    GroupRepository,
    ProgressRepository,
    SessionStatisticsRepository,
    SettingsRepository,
)

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@dataclass
class StubContentProvider:
    """Boundary markers keyed by (container_number, strategy value)."""
    markers: dict = field(default_factory=dict)
    error: Optional[Exception] = None
    calls: list = field(default_factory=list)

    def get_structural_boundaries(self, container_number, strategy):
        self.calls.append((container_number, GroupingStrategy(strategy).value))
        if self.error is not None:
            raise self.error
        return self.markers.get((container_number, GroupingStrategy(strategy).value), [])


@pytest.fixture
def db():
    database = Database.from_url("sqlite:///:memory:")
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def progress_repo(db):
    return ProgressRepository(db)


@pytest.fixture
def group_repo(db):
    return GroupRepository(db)


@pytest.fixture
def stats_repo(db):
    return SessionStatisticsRepository(db)


@pytest.fixture
def settings_repo(db):
    return SettingsRepository(db)


@pytest.fixture
def selector(progress_repo):
    return DueSetSelector(progress_repo)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def content_provider():
    return StubContentProvider()


@pytest.fixture
def container():
    return Container(number=1, item_count=12, name="Test")


def make_record(
    item_number: int,
    container_number: int = 1,
    state: CardState = CardState.NEW,
    next_review: Optional[datetime] = None,
    group_id: Optional[str] = None,
    group_position: int = 1,
    test_with_group: bool = False,
    stability: Optional[float] = None,
) -> ItemRecord:
    """Record in a given state; non-new records get a positive stability."""
    if stability is None:
        stability = 0.0 if state == CardState.NEW else 5.0
    last_reviewed = None if state == CardState.NEW else T0 - timedelta(days=5)
    return ItemRecord(
        id=new_id(),
        container_number=container_number,
        item_number=item_number,
        group_id=group_id or new_id(),
        group_position=group_position,
        stability=stability,
        difficulty=0.0 if state == CardState.NEW else 0.5,
        state=state,
        last_reviewed=last_reviewed,
        next_review=next_review,
        test_with_group=test_with_group,
        created_at=T0 - timedelta(days=30),
    )


def add_group(
    progress_repo: ProgressRepository,
    start: int,
    end: int,
    container_number: int = 1,
    test_as_group: bool = True,
) -> tuple[ItemGroup, list[ItemRecord]]:
    """Commit a range of items to learning as one group."""
    group = ItemGroup(
        id=new_id(),
        container_number=container_number,
        start_index=start,
        end_index=end,
        strategy=GroupingStrategy.FIXED,
        test_as_group=test_as_group,
        created_at=T0,
    )
    records = progress_repo.add_group_to_learning(group, now=T0)
    return group, records
