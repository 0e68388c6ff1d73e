"""
Profile settings repository.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from murajaah.config import get_default_profile_id
from murajaah.fsrs import FSRSParameters
from murajaah.records import ProfileSettings, utc_now
from murajaah.store.database import Database
from murajaah.store.models import ProfileSettingsRow, ProfileWeight
from murajaah.store.schemas import as_utc, decode_profile_settings

logger = logging.getLogger(__name__)


class SettingsRepository:

    def __init__(self, db: Database):
        self.db = db

    def get(self, profile_id: Optional[str] = None) -> ProfileSettings:
        """
        Settings of a profile, or the defaults when none are stored.

        Args:
            profile_id: Profile to load; defaults to DEFAULT_PROFILE_ID
        """
        profile_id = profile_id or get_default_profile_id()
        with self.db.session_scope() as session:
            row = session.get(ProfileSettingsRow, profile_id)
            if row is None:
                return ProfileSettings(profile_id=profile_id)
            return decode_profile_settings(row)

    def save(self, settings: ProfileSettings) -> ProfileSettings:
        """
        Store settings, replacing any previous version.

        Raises:
            ValueError: If the weights or retention are not valid FSRS parameters,
                or the group size is below 1
        """
        settings.fsrs_parameters()  # validates
        if settings.grouping_size < 1:
            raise ValueError(f"grouping_size must be at least 1, got {settings.grouping_size}")
        settings = replace(settings, updated_at=utc_now())

        with self.db.session_scope() as session:
            row = session.get(ProfileSettingsRow, settings.profile_id)
            if row is None:
                row = ProfileSettingsRow(
                    profile_id=settings.profile_id,
                    created_at=as_utc(settings.created_at),
                )
                session.add(row)
            row.request_retention = settings.request_retention
            row.review_limit = settings.review_limit
            row.grouping_method = settings.grouping_method.value
            row.grouping_size = settings.grouping_size
            row.updated_at = as_utc(settings.updated_at)
            stored = {weight.idx: weight for weight in row.weights}
            for idx, value in enumerate(settings.weights):
                if idx in stored:
                    stored[idx].value = float(value)
                else:
                    row.weights.append(ProfileWeight(idx=idx, value=float(value)))
        logger.info("Saved settings for profile %s", settings.profile_id)
        return settings

    def reset(self, profile_id: Optional[str] = None) -> ProfileSettings:
        """Delete stored settings of a profile and return the defaults."""
        profile_id = profile_id or get_default_profile_id()
        with self.db.session_scope() as session:
            row = session.get(ProfileSettingsRow, profile_id)
            if row is not None:
                session.delete(row)
        logger.info("Reset settings for profile %s", profile_id)
        return ProfileSettings(profile_id=profile_id)

    def get_parameters(self, profile_id: Optional[str] = None) -> FSRSParameters:
        return self.get(profile_id).fsrs_parameters()
