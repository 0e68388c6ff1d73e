"""
Pydantic models for decoding stored rows into domain records.

Every row read from the database passes through one of the decode_*
functions. A row that does not match its schema raises RecordDecodeError
instead of leaking a half-valid record into the scheduler.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from murajaah.errors import RecordDecodeError
from murajaah.fsrs import WEIGHT_COUNT, CardState, Rating
from murajaah.records import (
    GroupingStrategy,
    GroupState,
    ItemGroup,
    ItemRecord,
    ProfileSettings,
    RatingTally,
    ReviewEntry,
    SessionStatistics,
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to timezone-aware UTC.

    SQLite drops tzinfo on the way out; stored values are always UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class _RowModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---- Item progress ----

class ReviewEntryRow(_RowModel):
    position: int = Field(..., ge=0)
    rating: Rating
    reviewed_at: datetime
    elapsed_ms: Optional[int] = Field(None, ge=0)
    previous_interval: Optional[int] = Field(None, ge=0)
    scheduled_interval: Optional[int] = Field(None, ge=0)
    event_id: Optional[str] = None

    @field_validator("reviewed_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class ItemProgressRow(_RowModel):
    id: str
    container_number: int = Field(..., ge=1)
    item_number: int = Field(..., ge=1)
    group_id: str
    group_position: int = Field(..., ge=1)
    test_with_group: bool
    stability: float = Field(..., ge=0)
    difficulty: float = Field(..., ge=0, le=1)
    ease_factor: float
    state: CardState
    lapses: int = Field(..., ge=0)
    interval: int = Field(..., ge=0)
    last_reviewed: Optional[datetime] = None
    next_review: Optional[datetime] = None
    recall_score: float = Field(0.0, ge=0, le=100)
    created_at: datetime
    history: list[ReviewEntryRow] = Field(default_factory=list)

    @field_validator("last_reviewed", "next_review", "created_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @model_validator(mode="after")
    def _history_is_contiguous(self) -> "ItemProgressRow":
        positions = [entry.position for entry in self.history]
        if positions != list(range(len(positions))):
            raise ValueError(f"history positions are not contiguous: {positions}")
        return self


def decode_item_record(row) -> ItemRecord:
    """Decode an ItemProgress row (with its history) into an ItemRecord."""
    try:
        model = ItemProgressRow.model_validate(row)
    except ValidationError as exc:
        raise RecordDecodeError("item record", str(exc), raw=row) from exc

    history = tuple(
        ReviewEntry(
            rating=entry.rating,
            reviewed_at=entry.reviewed_at,
            elapsed_ms=entry.elapsed_ms,
            previous_interval=entry.previous_interval,
            scheduled_interval=entry.scheduled_interval,
            event_id=entry.event_id,
        )
        for entry in model.history
    )
    return ItemRecord(
        id=model.id,
        container_number=model.container_number,
        item_number=model.item_number,
        group_id=model.group_id,
        group_position=model.group_position,
        stability=model.stability,
        difficulty=model.difficulty,
        ease_factor=model.ease_factor,
        state=model.state,
        lapses=model.lapses,
        interval=model.interval,
        last_reviewed=model.last_reviewed,
        next_review=model.next_review,
        history=history,
        test_with_group=model.test_with_group,
        recall_score=model.recall_score,
        created_at=model.created_at,
    )


# ---- Groups ----

class ItemGroupRowModel(_RowModel):
    id: str
    container_number: int = Field(..., ge=1)
    start_index: int = Field(..., ge=1)
    end_index: int = Field(..., ge=1)
    strategy: GroupingStrategy
    state: GroupState
    progress: float = Field(..., ge=0, le=100)
    test_as_group: bool
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _range_is_ordered(self) -> "ItemGroupRowModel":
        if self.start_index > self.end_index:
            raise ValueError(f"start_index {self.start_index} > end_index {self.end_index}")
        return self


def decode_group(row) -> ItemGroup:
    try:
        model = ItemGroupRowModel.model_validate(row)
    except ValidationError as exc:
        raise RecordDecodeError("group", str(exc), raw=row) from exc
    return ItemGroup(**model.model_dump())


# ---- Session statistics ----

class SessionStatisticsRowModel(_RowModel):
    id: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    total_reviewed: int = Field(..., ge=0)
    new_learned: int = Field(..., ge=0)
    review_time_ms: int = Field(..., ge=0)
    rating_again: int = Field(..., ge=0)
    rating_hard: int = Field(..., ge=0)
    rating_good: int = Field(..., ge=0)
    rating_easy: int = Field(..., ge=0)
    retention: float = Field(..., ge=0, le=100)

    @field_validator("started_at", "completed_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


def decode_session_statistics(row) -> SessionStatistics:
    try:
        model = SessionStatisticsRowModel.model_validate(row)
    except ValidationError as exc:
        raise RecordDecodeError("session statistics", str(exc), raw=row) from exc
    return SessionStatistics(
        id=model.id,
        started_at=model.started_at,
        completed_at=model.completed_at,
        total_reviewed=model.total_reviewed,
        new_learned=model.new_learned,
        review_time_ms=model.review_time_ms,
        ratings=RatingTally(
            again=model.rating_again,
            hard=model.rating_hard,
            good=model.rating_good,
            easy=model.rating_easy,
        ),
        retention=model.retention,
    )


# ---- Profile settings ----

class ProfileWeightRow(_RowModel):
    idx: int = Field(..., ge=0, lt=WEIGHT_COUNT)
    value: float


class ProfileSettingsRowModel(_RowModel):
    profile_id: str
    request_retention: float = Field(..., gt=0, lt=1)
    review_limit: int = Field(..., ge=1)
    grouping_method: GroupingStrategy
    grouping_size: int = Field(..., ge=1)
    created_at: datetime
    updated_at: datetime
    weights: list[ProfileWeightRow] = Field(default_factory=list)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _weights_complete(self) -> "ProfileSettingsRowModel":
        indexes = sorted(weight.idx for weight in self.weights)
        if indexes != list(range(WEIGHT_COUNT)):
            raise ValueError(f"expected {WEIGHT_COUNT} weights, got indexes {indexes}")
        return self


def decode_profile_settings(row) -> ProfileSettings:
    try:
        model = ProfileSettingsRowModel.model_validate(row)
    except ValidationError as exc:
        raise RecordDecodeError("profile settings", str(exc), raw=row) from exc
    weights = tuple(w.value for w in sorted(model.weights, key=lambda w: w.idx))
    return ProfileSettings(
        profile_id=model.profile_id,
        request_retention=model.request_retention,
        review_limit=model.review_limit,
        grouping_method=model.grouping_method,
        grouping_size=model.grouping_size,
        weights=weights,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
