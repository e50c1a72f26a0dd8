"""Schedule quality metrics."""

from periodplanner.analytics.metrics import (
    BalanceStatus,
    Insight,
    MetricsCache,
    ScheduleAnalytics,
    ScheduleMetrics,
)

__all__ = [
    "BalanceStatus",
    "Insight",
    "MetricsCache",
    "ScheduleAnalytics",
    "ScheduleMetrics",
]
