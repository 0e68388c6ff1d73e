"""
Store-wide maintenance operations.
"""

from __future__ import annotations

import logging

from murajaah.store.database import Database
from murajaah.store.group_repo import GroupRepository
from murajaah.store.progress_repo import ProgressRepository
from murajaah.store.stats_repo import SessionStatisticsRepository

logger = logging.getLogger(__name__)


def reset_all_progress(db: Database) -> dict[str, int]:
    """
    DANGEROUS: Delete every item record, group and session statistics row.

    Profile settings are kept.

    Returns:
        Deleted row counts by kind
    """
    counts = {
        "items": ProgressRepository(db).delete_all(),
        "groups": GroupRepository(db).delete_all(),
        "sessions": SessionStatisticsRepository(db).delete_all(),
    }
    logger.warning("Progress reset: %s", counts)
    return counts
