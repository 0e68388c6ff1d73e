"""
Metric computations for the statistics dashboard.
"""

from __future__ import annotations

import pandas as pd


def build_day_index(sessions_df: pd.DataFrame) -> pd.DatetimeIndex:
    """
    Build a dense UTC day index spanning the session range.
    """
    if sessions_df.empty:
        return pd.DatetimeIndex([], tz="UTC")
    start = sessions_df["day_utc"].min()
    end = sessions_df["day_utc"].max()
    return pd.date_range(start=start, end=end, freq="D")


def compute_totals(sessions_df: pd.DataFrame) -> dict:
    """
    Session count, reviews, new items, mean retention and mean time per review.
    """
    if sessions_df.empty:
        return {
            "sessions": 0,
            "total_reviewed": 0,
            "new_learned": 0,
            "avg_retention": 0.0,
            "avg_time_per_review_ms": 0.0,
        }

    total_reviewed = int(sessions_df["total_reviewed"].sum())
    total_time = float(sessions_df["review_time_ms"].sum())
    return {
        "sessions": int(len(sessions_df)),
        "total_reviewed": total_reviewed,
        "new_learned": int(sessions_df["new_learned"].sum()),
        "avg_retention": float(sessions_df["retention"].mean()),
        "avg_time_per_review_ms": total_time / total_reviewed if total_reviewed > 0 else 0.0,
    }


def compute_daily(sessions_df: pd.DataFrame, day_index: pd.DatetimeIndex) -> pd.DataFrame:
    """
    Reviews per day and mean session retention per day.

    Days without sessions have 0 reviews and NaN retention.
    """
    if sessions_df.empty or len(day_index) == 0:
        return pd.DataFrame(columns=["reviews", "retention"], dtype="float64")

    daily = sessions_df.groupby("day_utc").agg(
        reviews=("total_reviewed", "sum"),
        retention=("retention", "mean"),
    ).reindex(day_index)
    daily["reviews"] = daily["reviews"].fillna(0).astype("int64")
    return daily


def recent_chart(sessions_df: pd.DataFrame, points: int = 7) -> pd.DataFrame:
    """
    The last `points` sessions with their retention and review counts, oldest first.
    """
    if sessions_df.empty:
        return pd.DataFrame(columns=["started_at", "retention", "total_reviewed"])
    ordered = sessions_df.sort_values("started_at")
    return ordered[["started_at", "retention", "total_reviewed"]].tail(points).reset_index(drop=True)
