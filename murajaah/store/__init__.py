"""
Store package exports.
"""

from murajaah.store.database import Database, create_db_engine
from murajaah.store.group_repo import GroupRepository
from murajaah.store.maintenance import reset_all_progress
from murajaah.store.progress_repo import ProgressRepository
from murajaah.store.schemas import (
    decode_group,
    decode_item_record,
    decode_profile_settings,
    decode_session_statistics,
)
from murajaah.store.settings_repo import SettingsRepository
from murajaah.store.stats_repo import SessionStatisticsRepository

__all__ = [
    "Database",
    "create_db_engine",
    "GroupRepository",
    "reset_all_progress",
    "ProgressRepository",
    "SessionStatisticsRepository",
    "SettingsRepository",
    "decode_group",
    "decode_item_record",
    "decode_profile_settings",
    "decode_session_statistics",
]
