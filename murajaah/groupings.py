"""
Grouping Engine - partitions a container's items into review groups.

Strategies:
- fixed: consecutive runs of `size` items, the last run shorter
- ruku/page: one group per structural span, from boundary markers
- custom: ranges supplied by the learner, stored as given

Groups of one (container, strategy) always partition 1..item_count.
Creation is idempotent: stored groups are returned unchanged unless a fixed
request asks for a different size.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from murajaah.content_repo import Container, ContentProvider
from murajaah.errors import DegradedGroupingError, InvalidGroupingError
from murajaah.records import GroupingStrategy, GroupState, ItemGroup, new_id, utc_now
from murajaah.store.group_repo import GroupRepository

logger = logging.getLogger(__name__)

DEFAULT_GROUP_SIZE = 5
FALLBACK_GROUP_SIZE = 5


def fixed_ranges(item_count: int, size: int) -> list[tuple[int, int]]:
    """Inclusive (start, end) runs of `size` items covering 1..item_count."""
    size = max(1, size)
    return [
        (start, min(start + size - 1, item_count))
        for start in range(1, item_count + 1, size)
    ]


def structural_ranges(markers: Iterable[int], item_count: int) -> list[tuple[int, int]]:
    """
    Inclusive (start, end) spans from boundary markers.

    Markers are the first item of each span. They are sorted, deduplicated
    and clipped to 1..item_count; item 1 always opens the first span. Each
    span covers the items observed between its marker and the next one.
    """
    starts = sorted({m for m in markers if 1 <= m <= item_count})
    if not starts:
        return []
    if starts[0] != 1:
        starts.insert(0, 1)

    ranges = []
    for i, start in enumerate(starts):
        next_start = starts[i + 1] if i + 1 < len(starts) else item_count + 1
        observed = range(start, next_start)
        if len(observed) == 0:
            continue
        ranges.append((min(observed), max(observed)))
    return ranges


def validate_partition(ranges: list[tuple[int, int]], item_count: int) -> list[tuple[int, int]]:
    """
    Check that ranges cover 1..item_count exactly once.

    Returns:
        The ranges sorted by start

    Raises:
        InvalidGroupingError: On gaps, overlaps or out-of-bounds ranges
    """
    ordered = sorted(ranges)
    expected_start = 1
    for start, end in ordered:
        if start > end:
            raise InvalidGroupingError(f"Range {start}-{end} is reversed")
        if start != expected_start:
            kind = "gap" if start > expected_start else "overlap"
            raise InvalidGroupingError(f"Ranges have a {kind} at item {min(start, expected_start)}")
        expected_start = end + 1
    if expected_start != item_count + 1:
        raise InvalidGroupingError(
            f"Ranges end at item {expected_start - 1}, container has {item_count} items"
        )
    return ordered


class GroupingEngine:
    """
    Creates, stores and looks up item groups.

    Usage:
        engine = GroupingEngine(GroupRepository(db), MongoContentRepository())
        groups = engine.create_groups_for_container(container, GroupingStrategy.RUKU)
    """

    def __init__(self, group_repo: GroupRepository, content_provider: Optional[ContentProvider] = None):
        self.group_repo = group_repo
        self.content_provider = content_provider
        self.degradations: list[DegradedGroupingError] = []

    def create_groups_for_container(
        self,
        container: Container,
        strategy: GroupingStrategy,
        size: int = DEFAULT_GROUP_SIZE,
    ) -> list[ItemGroup]:
        """
        Return the groups of a container for a strategy, creating them if needed.

        Args:
            container: Container to partition
            strategy: Grouping strategy
            size: Group size for the fixed strategy, clamped to at least 1

        Returns:
            Groups sorted by start index. Structural strategies without
            boundary data return fixed groups of 5 instead.
        """
        strategy = GroupingStrategy(strategy)
        size = max(1, size)
        existing = self.group_repo.list_for_container(container.number, strategy)

        if strategy == GroupingStrategy.FIXED and existing:
            expected = min(size, container.item_count)
            if existing[0].size != expected:
                logger.info(
                    "Fixed group size changed for container %d (%d -> %d), regenerating",
                    container.number, existing[0].size, expected,
                )
                self.group_repo.delete_for_container(container.number, strategy)
                existing = []

        if existing or strategy == GroupingStrategy.CUSTOM:
            return existing

        if strategy.is_structural:
            markers, failure = self._boundary_markers(container, strategy)
            ranges = structural_ranges(markers, container.item_count)
            if not ranges:
                return self._degrade(container, strategy, failure or "no boundary markers")
        else:
            ranges = fixed_ranges(container.item_count, size)

        groups = self._build(container.number, strategy, ranges)
        self.group_repo.save_many(groups)
        logger.info(
            "Created %d %s group(s) for container %d",
            len(groups), strategy.value, container.number,
        )
        return groups

    def save_custom_groups(
        self,
        container: Container,
        ranges: list[tuple[int, int]],
    ) -> list[ItemGroup]:
        """
        Replace the custom groups of a container.

        Raises:
            InvalidGroupingError: If the ranges do not partition the container
        """
        ordered = validate_partition(ranges, container.item_count)
        self.group_repo.delete_for_container(container.number, GroupingStrategy.CUSTOM)
        groups = self._build(container.number, GroupingStrategy.CUSTOM, ordered)
        self.group_repo.save_many(groups)
        return groups

    def get_groups_for_container(
        self,
        container_number: int,
        strategy: Optional[GroupingStrategy] = None,
    ) -> list[ItemGroup]:
        return self.group_repo.list_for_container(container_number, strategy)

    def get_group(self, group_id: str) -> ItemGroup:
        return self.group_repo.get(group_id)

    def update_group_progress(self, group_id: str, progress: float, state: GroupState) -> ItemGroup:
        return self.group_repo.update_progress(group_id, progress, state)

    # ---- Internals ----

    def _boundary_markers(
        self,
        container: Container,
        strategy: GroupingStrategy,
    ) -> tuple[list[int], Optional[str]]:
        """Markers from the container, else from the content provider, plus a failure reason."""
        markers = container.markers_for(strategy)
        if markers:
            return markers, None
        if self.content_provider is None:
            return [], "no content provider"

        try:
            return list(self.content_provider.get_structural_boundaries(container.number, strategy)), None
        except Exception as exc:
            logger.debug("Boundary lookup failed", exc_info=True)
            return [], f"provider error: {exc}"

    def _degrade(self, container: Container, strategy: GroupingStrategy, reason: str) -> list[ItemGroup]:
        error = DegradedGroupingError(container.number, strategy.value, reason)
        logger.warning(str(error))
        self.degradations.append(error)
        return self.create_groups_for_container(container, GroupingStrategy.FIXED, FALLBACK_GROUP_SIZE)

    @staticmethod
    def _build(
        container_number: int,
        strategy: GroupingStrategy,
        ranges: list[tuple[int, int]],
    ) -> list[ItemGroup]:
        created_at = utc_now()
        return [
            ItemGroup(
                id=new_id(),
                container_number=container_number,
                start_index=start,
                end_index=end,
                strategy=strategy,
                test_as_group=True,
                created_at=created_at,
            )
            for start, end in ranges
        ]
