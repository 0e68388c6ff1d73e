"""
SQLAlchemy ORM Models for the progress database

Defines item progress, review history, groups, session statistics and
profile settings tables.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class ItemProgress(Base):
    """
    Persistent scheduling state for a single item (container_number + item_number).
    """
    __tablename__ = 'item_progress'
    __table_args__ = (
        UniqueConstraint('container_number', 'item_number', name='uq_item_progress_item'),
        Index('idx_item_progress_due', 'next_review'),
        Index('idx_item_progress_group', 'group_id'),
    )

    id = Column(String(36), primary_key=True)

    # Content reference
    container_number = Column(Integer, nullable=False)
    item_number = Column(Integer, nullable=False)

    # Group membership
    group_id = Column(String(36), nullable=False)
    group_position = Column(Integer, nullable=False, default=1)
    test_with_group = Column(Boolean, nullable=False, default=False)

    # Memory parameters
    stability = Column(Float, nullable=False, default=0.0)
    difficulty = Column(Float, nullable=False, default=0.0)
    ease_factor = Column(Float, nullable=False, default=2.5)  # Legacy, unused by the math

    # Scheduling state
    state = Column(String(20), nullable=False, default='new')
    lapses = Column(Integer, nullable=False, default=0)
    interval = Column(Integer, nullable=False, default=0)
    last_reviewed = Column(DateTime(timezone=True), nullable=True)
    next_review = Column(DateTime(timezone=True), nullable=True)  # NULL = due now
    recall_score = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), nullable=False)

    history = relationship(
        'ReviewEntry',
        order_by='ReviewEntry.position',
        cascade='all, delete-orphan',
        lazy='selectin',
    )

    def __repr__(self):
        return f"<ItemProgress({self.container_number}:{self.item_number}, {self.state})>"


class ReviewEntry(Base):
    """
    One entry of an item's append-only review history.

    `position` is the 0-based index within the item's history.
    """
    __tablename__ = 'review_entries'
    __table_args__ = (
        UniqueConstraint('item_id', 'position', name='uq_review_entries_position'),
        Index('idx_review_entries_event', 'event_id'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(String(36), ForeignKey('item_progress.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, nullable=False)

    rating = Column(Integer, nullable=False)  # 1=AGAIN, 2=HARD, 3=GOOD, 4=EASY
    reviewed_at = Column(DateTime(timezone=True), nullable=False)
    elapsed_ms = Column(Integer, nullable=True)  # Time spent on the review
    previous_interval = Column(Integer, nullable=True)
    scheduled_interval = Column(Integer, nullable=True)
    event_id = Column(String(36), nullable=True)  # Rating event, shared by group siblings

    def __repr__(self):
        return f"<ReviewEntry({self.item_id}#{self.position}, rating={self.rating})>"


class ItemGroupRow(Base):
    """
    Contiguous range of items in a container, generated by one grouping strategy.
    """
    __tablename__ = 'item_groups'
    __table_args__ = (
        Index('idx_item_groups_container', 'container_number', 'strategy'),
    )

    id = Column(String(36), primary_key=True)
    container_number = Column(Integer, nullable=False)
    start_index = Column(Integer, nullable=False)
    end_index = Column(Integer, nullable=False)
    strategy = Column(String(20), nullable=False)
    progress = Column(Float, nullable=False, default=0.0)
    state = Column(String(20), nullable=False, default='new')
    test_as_group = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<ItemGroup({self.container_number}:{self.start_index}-{self.end_index}, {self.strategy})>"


class SessionStatisticsRow(Base):
    """
    Counters for one review session. Frozen once completed_at is set.
    """
    __tablename__ = 'session_statistics'
    __table_args__ = (
        Index('idx_session_statistics_started', 'started_at'),
    )

    id = Column(String(36), primary_key=True)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    total_reviewed = Column(Integer, nullable=False, default=0)
    new_learned = Column(Integer, nullable=False, default=0)
    review_time_ms = Column(Integer, nullable=False, default=0)
    rating_again = Column(Integer, nullable=False, default=0)
    rating_hard = Column(Integer, nullable=False, default=0)
    rating_good = Column(Integer, nullable=False, default=0)
    rating_easy = Column(Integer, nullable=False, default=0)
    retention = Column(Float, nullable=False, default=0.0)

    def __repr__(self):
        return f"<SessionStatistics({self.id}, reviewed={self.total_reviewed})>"


class ProfileSettingsRow(Base):
    """
    Per-profile scheduling settings. FSRS weights live in profile_weights.
    """
    __tablename__ = 'profile_settings'

    profile_id = Column(String(255), primary_key=True)
    request_retention = Column(Float, nullable=False, default=0.9)
    review_limit = Column(Integer, nullable=False, default=50)
    grouping_method = Column(String(20), nullable=False, default='ruku')
    grouping_size = Column(Integer, nullable=False, default=5)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    weights = relationship(
        'ProfileWeight',
        order_by='ProfileWeight.idx',
        cascade='all, delete-orphan',
        lazy='selectin',
    )


class ProfileWeight(Base):
    """One FSRS weight w[idx] of a profile."""
    __tablename__ = 'profile_weights'

    profile_id = Column(
        String(255),
        ForeignKey('profile_settings.profile_id', ondelete='CASCADE'),
        primary_key=True,
    )
    idx = Column(Integer, primary_key=True)
    value = Column(Float, nullable=False)
