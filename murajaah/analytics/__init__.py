"""
Analytics package exports.
"""

from murajaah.analytics.metrics import recent_chart
from murajaah.analytics.service import build_statistics_dashboard
from murajaah.analytics.types import StatisticsDashboard

__all__ = [
    "build_statistics_dashboard",
    "recent_chart",
    "StatisticsDashboard",
]
