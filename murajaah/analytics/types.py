"""
Types for the statistics dashboard.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True)
class StatisticsDashboard:
    """
    Precomputed totals and series over recent review sessions.
    """
    days: int
    sessions: int
    total_reviewed: int
    new_learned: int
    avg_retention: float
    avg_time_per_review_ms: float
    sessions_df: pd.DataFrame
    daily: pd.DataFrame
