"""
Tests for the review session lifecycle.
"""

from datetime import timedelta
from unittest import mock

import pytest

from murajaah.errors import (
    EmptySessionError,
    InvalidSessionStateError,
    PersistenceError,
    RecordDecodeError,
)
from murajaah.fsrs import CardState, Rating
from murajaah.records import RatingTally
from murajaah.session_controller import ReviewSession, SessionStatus, calculate_retention
from murajaah.store.models import ItemProgress

from conftest import T0, add_group, make_record


@pytest.fixture
def make_session(selector, progress_repo, stats_repo, clock):
    def _make(**kwargs):
        return ReviewSession(selector, progress_repo, stats_repo, clock=clock, **kwargs)
    return _make


def add_singles(progress_repo, count):
    records = [make_record(i) for i in range(1, count + 1)]
    progress_repo.upsert_many(records)
    return records


# ---- Retention ----

def test_calculate_retention():
    assert calculate_retention(RatingTally()) == 0.0
    assert calculate_retention(RatingTally(again=1, hard=1, good=1, easy=1)) == 75.0
    assert calculate_retention(RatingTally(again=0, good=3)) == 100.0


# ---- Start ----

def test_start_with_nothing_due_raises(make_session, stats_repo, clock):
    session = make_session()

    with pytest.raises(EmptySessionError):
        session.start()

    assert session.status == SessionStatus.IDLE
    assert stats_repo.list_recent(days=1, now=clock()) == []


def test_start_persists_zeroed_statistics(make_session, progress_repo, stats_repo):
    add_singles(progress_repo, 2)
    session = make_session()

    stats = session.start()

    assert session.status == SessionStatus.ACTIVE
    assert session.total_units == 2
    assert session.unit_index == 0
    stored = stats_repo.get(stats.id)
    assert stored.total_reviewed == 0
    assert stored.started_at == T0
    assert not stored.is_finalized


def test_start_twice_raises(make_session, progress_repo):
    add_singles(progress_repo, 1)
    session = make_session()
    session.start()

    with pytest.raises(InvalidSessionStateError):
        session.start()


def test_limit_is_passed_to_selection(make_session, progress_repo):
    add_singles(progress_repo, 5)
    session = make_session(limit=3)
    session.start()

    assert session.total_units == 3


# ---- Rating ----

def test_rating_a_group_updates_every_member_identically(make_session, progress_repo, stats_repo, clock):
    group, _ = add_group(progress_repo, 1, 3)
    session = make_session()
    stats = session.start()
    assert [r.item_number for r in session.current_items] == [1, 2, 3]

    clock.advance(seconds=12)
    results = session.rate_current_unit(Rating.GOOD)

    members = progress_repo.list_group(group.id)
    assert len(members) == 3
    first = members[0]
    for member in members:
        assert member.state == CardState.REVIEW
        assert member.stability == first.stability
        assert member.difficulty == first.difficulty
        assert member.interval == first.interval == 1
        assert member.next_review == first.next_review == T0 + timedelta(days=1, seconds=12)
        assert member.last_reviewed == first.last_reviewed == T0 + timedelta(seconds=12)
        assert len(member.history) == 1
        assert member.history[0].event_id == first.history[0].event_id
        assert member.history[0].elapsed_ms == 12000
        assert member.recall_score == 100.0
    assert [r.id for r in results] == [m.id for m in members]

    stored = stats_repo.get(stats.id)
    assert stored.total_reviewed == 1
    assert stored.new_learned == 1
    assert stored.ratings.good == 1


def test_retention_over_a_session(make_session, progress_repo, stats_repo):
    add_singles(progress_repo, 5)
    session = make_session()
    stats = session.start()

    for rating in (Rating.AGAIN, Rating.GOOD, Rating.GOOD, Rating.HARD, Rating.EASY):
        session.rate_current_unit(rating)

    final = stats_repo.get(stats.id)
    assert final.total_reviewed == 5
    assert final.ratings == RatingTally(again=1, hard=1, good=2, easy=1)
    assert final.retention == pytest.approx(80.0)


def test_session_completes_after_last_unit(make_session, progress_repo, stats_repo, clock):
    add_group(progress_repo, 1, 3)
    add_group(progress_repo, 4, 6)
    session = make_session()
    stats = session.start()
    assert session.total_units == 2

    session.rate_current_unit(Rating.GOOD)
    assert session.status == SessionStatus.ACTIVE
    assert session.unit_index == 1

    clock.advance(seconds=30)
    session.rate_current_unit(Rating.EASY)

    assert session.status == SessionStatus.COMPLETE
    assert session.current_unit is None
    final = stats_repo.get(stats.id)
    assert final.total_reviewed == 2
    assert final.completed_at == T0 + timedelta(seconds=30)
    assert final.review_time_ms == 30000
    assert session.statistics == final


def test_rating_requires_active_session(make_session, progress_repo):
    session = make_session()
    with pytest.raises(InvalidSessionStateError):
        session.rate_current_unit(Rating.GOOD)

    add_singles(progress_repo, 1)
    session.start()
    session.pause()
    with pytest.raises(InvalidSessionStateError):
        session.rate_current_unit(Rating.GOOD)


def test_invalid_rating_is_rejected(make_session, progress_repo):
    add_singles(progress_repo, 1)
    session = make_session()
    session.start()

    with pytest.raises(ValueError):
        session.rate_current_unit(5)
    assert session.unit_index == 0


# ---- Failure handling ----

def test_failed_progress_write_does_not_advance(make_session, progress_repo, stats_repo):
    group, _ = add_group(progress_repo, 1, 3)
    session = make_session()
    stats = session.start()

    with mock.patch.object(progress_repo, "upsert_many", side_effect=PersistenceError("disk full")):
        with pytest.raises(PersistenceError):
            session.rate_current_unit(Rating.GOOD)

    assert session.unit_index == 0
    assert session.statistics.total_reviewed == 0
    assert all(len(m.history) == 0 for m in progress_repo.list_group(group.id))

    session.rate_current_unit(Rating.GOOD)

    assert stats_repo.get(stats.id).total_reviewed == 1
    assert all(len(m.history) == 1 for m in progress_repo.list_group(group.id))


def test_retry_after_failed_statistics_write_does_not_double_count(make_session, progress_repo, stats_repo):
    group, _ = add_group(progress_repo, 1, 3)
    progress_repo.upsert(make_record(20, state=CardState.REVIEW, next_review=T0 - timedelta(days=1)))
    session = make_session()
    stats = session.start()

    with mock.patch.object(stats_repo, "save", side_effect=PersistenceError("locked")):
        with pytest.raises(PersistenceError):
            session.rate_current_unit(Rating.GOOD)

    # Progress was written before the statistics write failed
    members = progress_repo.list_group(group.id)
    assert all(len(m.history) == 1 for m in members)
    assert session.unit_index == 0

    session.rate_current_unit(Rating.GOOD)

    members = progress_repo.list_group(group.id)
    assert all(len(m.history) == 1 for m in members)
    assert all(m.state == CardState.REVIEW for m in members)
    stored = stats_repo.get(stats.id)
    assert stored.total_reviewed == 1
    assert stored.ratings.good == 1
    assert session.unit_index == 1


def test_corrupted_record_ends_session(make_session, progress_repo, stats_repo, db):
    record = make_record(1)
    progress_repo.upsert(record)
    session = make_session()
    stats = session.start()

    with db.session_scope() as s:
        s.get(ItemProgress, record.id).state = "forgotten"

    with pytest.raises(RecordDecodeError):
        session.rate_current_unit(Rating.GOOD)

    assert session.status == SessionStatus.COMPLETE
    assert stats_repo.get(stats.id).is_finalized


# ---- Pause, resume, end ----

def test_paused_time_is_not_counted(make_session, progress_repo, stats_repo, clock):
    add_singles(progress_repo, 1)
    session = make_session()
    stats = session.start()

    clock.advance(seconds=10)
    session.pause()
    assert session.status == SessionStatus.PAUSED
    assert session.current_unit is not None

    clock.advance(seconds=100)
    session.resume()
    clock.advance(seconds=5)
    session.rate_current_unit(Rating.GOOD)

    final = stats_repo.get(stats.id)
    assert final.review_time_ms == 15000
    assert progress_repo.get(session_item_id(progress_repo)).history[0].elapsed_ms == 15000


def session_item_id(progress_repo):
    return progress_repo.list_all()[0].id


def test_pause_and_resume_require_matching_state(make_session, progress_repo):
    session = make_session()
    with pytest.raises(InvalidSessionStateError):
        session.pause()
    with pytest.raises(InvalidSessionStateError):
        session.resume()

    add_singles(progress_repo, 1)
    session.start()
    with pytest.raises(InvalidSessionStateError):
        session.resume()


def test_end_midway_finalizes_statistics(make_session, progress_repo, stats_repo, clock):
    add_singles(progress_repo, 3)
    session = make_session()
    stats = session.start()
    session.rate_current_unit(Rating.GOOD)
    clock.advance(minutes=2)

    final = session.end()

    assert session.status == SessionStatus.COMPLETE
    assert session.current_items == []
    assert final.total_reviewed == 1
    assert final.completed_at == T0 + timedelta(minutes=2)
    assert stats_repo.get(stats.id) == final

    with pytest.raises(InvalidSessionStateError):
        session.end()


def test_end_while_paused(make_session, progress_repo, stats_repo, clock):
    add_singles(progress_repo, 1)
    session = make_session()
    stats = session.start()
    clock.advance(seconds=3)
    session.pause()
    clock.advance(minutes=10)

    final = session.end()

    assert final.review_time_ms == 3000
    assert stats_repo.get(stats.id).is_finalized


def test_end_before_start(make_session):
    session = make_session()
    assert session.end() is None
    assert session.status == SessionStatus.COMPLETE


def test_preview_intervals(make_session, progress_repo):
    add_singles(progress_repo, 1)
    session = make_session()

    with pytest.raises(InvalidSessionStateError):
        session.preview_intervals()

    session.start()
    assert session.preview_intervals() == {
        Rating.AGAIN: 0,
        Rating.HARD: 1,
        Rating.GOOD: 1,
        Rating.EASY: 4,
    }


# ---- Across sessions ----

def test_again_good_good_across_sessions(make_session, progress_repo, clock):
    record = make_record(1)
    progress_repo.upsert(record)

    first = make_session()
    first.start()
    first.rate_current_unit(Rating.AGAIN)
    assert first.status == SessionStatus.COMPLETE

    second = make_session()
    second.start()
    second.rate_current_unit(Rating.GOOD)

    clock.advance(days=1)
    third = make_session()
    third.start()
    third.rate_current_unit(Rating.GOOD)

    final = progress_repo.get(record.id)
    assert final.state == CardState.REVIEW
    assert final.interval == 3
    assert final.interval > 1
    assert [e.rating for e in final.history] == [Rating.AGAIN, Rating.GOOD, Rating.GOOD]
    assert final.history[-1].previous_interval == 1
    assert final.history[-1].scheduled_interval == 3
    assert final.recall_score == pytest.approx(200 / 3)


def test_reviewed_item_is_not_due_again_until_scheduled(make_session, progress_repo, clock):
    progress_repo.upsert(make_record(1))
    session = make_session()
    session.start()
    session.rate_current_unit(Rating.EASY)

    with pytest.raises(EmptySessionError):
        make_session().start()

    clock.advance(days=4)
    make_session().start()
