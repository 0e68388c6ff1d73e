"""
Service layer to assemble the statistics dashboard.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from murajaah.analytics.metrics import build_day_index, compute_daily, compute_totals
from murajaah.analytics.queries import load_sessions_df
from murajaah.analytics.types import StatisticsDashboard
from murajaah.records import utc_now
from murajaah.store.stats_repo import SessionStatisticsRepository

DEFAULT_DAYS = 30


def build_statistics_dashboard(
    stats_repo: SessionStatisticsRepository,
    days: int = DEFAULT_DAYS,
    now: Optional[datetime] = None,
) -> StatisticsDashboard:
    """
    Build all totals and series needed by the statistics page.
    """
    sessions_df = load_sessions_df(stats_repo, days=days, now=now or utc_now())
    totals = compute_totals(sessions_df)
    daily = compute_daily(sessions_df, build_day_index(sessions_df))

    return StatisticsDashboard(
        days=days,
        sessions_df=sessions_df,
        daily=daily,
        **totals,
    )
