"""
Data-loading helpers for analytics.
"""

from __future__ import annotations

from datetime import datetime

import pandas as pd

from murajaah.store.stats_repo import SessionStatisticsRepository

SESSION_COLUMNS = [
    "session_id",
    "started_at",
    "total_reviewed",
    "new_learned",
    "review_time_ms",
    "retention",
    "day_utc",
]


def load_sessions_df(stats_repo: SessionStatisticsRepository, days: int, now: datetime) -> pd.DataFrame:
    """
    Load sessions started within the last `days` days into a dataframe, oldest first.
    """
    sessions = stats_repo.list_recent(days=days, now=now)
    if not sessions:
        return pd.DataFrame(columns=SESSION_COLUMNS)

    df = pd.DataFrame([
        {
            "session_id": s.id,
            "started_at": s.started_at,
            "total_reviewed": s.total_reviewed,
            "new_learned": s.new_learned,
            "review_time_ms": s.review_time_ms,
            "retention": s.retention,
        }
        for s in sessions
    ])
    df["started_at"] = pd.to_datetime(df["started_at"], utc=True)
    df["day_utc"] = df["started_at"].dt.floor("D")
    return df.sort_values("started_at").reset_index(drop=True)
