"""Schedule quality metrics, insights and suggestions.

Metrics are read-only views over a grid snapshot. Results are cached on a
fingerprint of the grid and configuration for a short time so repeated
redraws do not recompute them. The cache is an explicit object owned by
whoever builds the analytics instance.
"""

import json
import math
import time
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from periodplanner.domain.calendar import parse_date
from periodplanner.domain.models import PERIODS, ConstraintConfig, ScheduleWeeks, weeks_to_dict
from periodplanner.validation.rules import count_day, count_week, longest_run

IDEAL_LOAD_RATIO = 0.75
UNDERUTILIZED_RATIO = 0.7
NEAR_CAPACITY_RATIO = 0.85
OPTIMAL_TOLERANCE = 0.1
PRESSURE_SWEET_SPOT = (70.0, 90.0)
COMPRESSION_GAP_DAYS = 3


class BalanceStatus(Enum):
    """How a day's load compares with the ideal load."""

    UNDERUTILIZED = "underutilized"
    NEAR_CAPACITY = "near_capacity"
    OPTIMAL = "optimal"
    BALANCED = "balanced"


@dataclass
class DayBalance:
    class_count: int
    ideal_load: float
    score: float
    status: BalanceStatus


@dataclass
class PeriodUsage:
    count: int
    percentage: float


@dataclass
class LimitPressure:
    """Usage of a cap as a percentage of the cap."""

    value: int
    limit: int
    pressure: float


@dataclass
class WeeklyPressure:
    """Position of a week's count between the weekly minimum and maximum."""

    count: int
    min_limit: int
    max_limit: int
    pressure: float


@dataclass
class ConstraintPressure:
    consecutive: dict[str, LimitPressure] = field(default_factory=dict)
    daily: dict[str, LimitPressure] = field(default_factory=dict)
    weekly: dict[int, WeeklyPressure] = field(default_factory=dict)


@dataclass
class DateRange:
    start: str
    end: str
    days: int


@dataclass
class CompressionOpportunity:
    potential_days_reduction: int = 0
    date_ranges: list[DateRange] = field(default_factory=list)


@dataclass
class ScheduleMetrics:
    """All metrics for one schedule.

    Attributes:
        schedule_span: Calendar days from first to last date with a class.
        daily_balance: Per-date load against the ideal load.
        period_utilization: Per-period share of days that use it.
        constraint_pressure: How close each cap is to being hit.
        overall_quality: Weighted 0-100 score.
    """

    schedule_span: int
    daily_balance: dict[str, DayBalance]
    period_utilization: dict[int, PeriodUsage]
    constraint_pressure: ConstraintPressure
    overall_quality: int = 0


@dataclass
class Insight:
    """A message about the schedule. Suggestions carry extra details."""

    kind: str
    message: str
    details: Optional[str] = None


@dataclass
class MetricsCache:
    """Last computed metrics and the fingerprint they were computed for."""

    last_fingerprint: Optional[str] = None
    last_result: Optional[ScheduleMetrics] = None
    timestamp: float = 0.0

    def clear(self) -> None:
        self.last_fingerprint = None
        self.last_result = None
        self.timestamp = 0.0


def schedule_span(weeks: ScheduleWeeks) -> int:
    dates = sorted(
        parse_date(date_str)
        for week in weeks.values()
        for date_str, day in week.items()
        if count_day(day)
    )
    if not dates:
        return 0
    return (dates[-1] - dates[0]).days + 1


def daily_balance(weeks: ScheduleWeeks, max_per_day: int) -> dict[str, DayBalance]:
    ideal = max_per_day * IDEAL_LOAD_RATIO
    max_distance = max(ideal, max_per_day - ideal)
    balance = {}
    for week in weeks.values():
        for date_str, day in week.items():
            count = count_day(day)
            if max_distance > 0:
                score = 100 * (1 - abs(count - ideal) / max_distance)
            else:
                score = 100.0 if count == 0 else 0.0

            if count < ideal * UNDERUTILIZED_RATIO:
                status = BalanceStatus.UNDERUTILIZED
            elif count > max_per_day * NEAR_CAPACITY_RATIO:
                status = BalanceStatus.NEAR_CAPACITY
            elif abs(count - ideal) < ideal * OPTIMAL_TOLERANCE:
                status = BalanceStatus.OPTIMAL
            else:
                status = BalanceStatus.BALANCED

            balance[date_str] = DayBalance(count, ideal, max(0.0, min(100.0, score)), status)
    return balance


def period_utilization(weeks: ScheduleWeeks) -> dict[int, PeriodUsage]:
    counts = {p: 0 for p in PERIODS}
    total_days = 0
    for week in weeks.values():
        for day in week.values():
            total_days += 1
            for period in PERIODS:
                if day.get(period):
                    counts[period] += 1
    return {
        p: PeriodUsage(c, (c / total_days) * 100 if total_days else 0.0)
        for p, c in counts.items()
    }


def constraint_pressure(weeks: ScheduleWeeks, config: ConstraintConfig) -> ConstraintPressure:
    pressure = ConstraintPressure()
    for offset, week in weeks.items():
        for date_str, day in week.items():
            run = longest_run(day)
            pressure.consecutive[date_str] = LimitPressure(
                run,
                config.max_consecutive_classes,
                (run / config.max_consecutive_classes) * 100 if config.max_consecutive_classes else 0.0,
            )
            count = count_day(day)
            pressure.daily[date_str] = LimitPressure(
                count,
                config.max_classes_per_day,
                (count / config.max_classes_per_day) * 100 if config.max_classes_per_day else 0.0,
            )

        weekly = count_week(week)
        spread = config.max_classes_per_week - config.min_classes_per_week
        pressure.weekly[offset] = WeeklyPressure(
            weekly,
            config.min_classes_per_week,
            config.max_classes_per_week,
            ((weekly - config.min_classes_per_week) / spread) * 100 if spread > 0 else 0.0,
        )
    return pressure


def overall_quality(metrics: ScheduleMetrics) -> int:
    """Weighted score: day balance 50%, daily pressure 30%, period spread 20%."""
    balances = [d.score for d in metrics.daily_balance.values()]
    avg_balance = sum(balances) / len(balances) if balances else 0.0

    low, high = PRESSURE_SWEET_SPOT
    pressure_scores = [
        100 - abs(min(high, max(low, d.pressure)) - d.pressure)
        for d in metrics.constraint_pressure.daily.values()
    ]
    avg_pressure = sum(pressure_scores) / len(pressure_scores) if pressure_scores else 0.0

    percentages = [u.percentage for u in metrics.period_utilization.values()]
    mean = sum(percentages) / len(PERIODS)
    variance = sum((p - mean) ** 2 for p in percentages)
    spread_score = 100 - min(100.0, math.sqrt(variance / len(PERIODS)))

    return round(avg_balance * 0.5 + avg_pressure * 0.3 + spread_score * 0.2)


def compression_opportunities(metrics: ScheduleMetrics) -> CompressionOpportunity:
    """Find runs of lightly used days that could be folded together."""
    low_days = sorted(
        parse_date(date_str)
        for date_str, day in metrics.daily_balance.items()
        if day.class_count < day.ideal_load * UNDERUTILIZED_RATIO
    )
    if not low_days:
        return CompressionOpportunity()

    ranges = []
    range_start = range_end = low_days[0]
    for current in low_days[1:]:
        if current - range_end <= timedelta(days=COMPRESSION_GAP_DAYS):
            range_end = current
            continue
        if range_end > range_start:
            ranges.append(_date_range(range_start, range_end))
        range_start = range_end = current
    ranges.append(_date_range(range_start, range_end))

    return CompressionOpportunity(
        potential_days_reduction=max(1, math.floor(len(low_days) * 0.7)),
        date_ranges=ranges,
    )


def _date_range(start, end) -> DateRange:
    return DateRange(start.isoformat(), end.isoformat(), (end - start).days + 1)


def _short_date(date_str: str) -> str:
    d = parse_date(date_str)
    return f"{d:%a %b} {d.day}"


class ScheduleAnalytics:
    """Computes schedule metrics with a fingerprint-keyed cache.

    Args:
        cache: Cache object to read and update. A fresh one is used if omitted.
        ttl_seconds: How long a cached result stays valid.
        clock: Monotonic time source.
    """

    def __init__(
        self,
        cache: Optional[MetricsCache] = None,
        ttl_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cache = cache if cache is not None else MetricsCache()
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    @staticmethod
    def fingerprint(weeks: ScheduleWeeks, config: ConstraintConfig) -> str:
        return json.dumps(weeks_to_dict(weeks), sort_keys=True) + json.dumps(config.to_dict(), sort_keys=True)

    def calculate_metrics(self, weeks: ScheduleWeeks, config: ConstraintConfig) -> ScheduleMetrics:
        """Metrics for ``weeks`` under ``config``, served from cache when fresh."""
        key = self.fingerprint(weeks, config)
        now = self.clock()
        if (
            self.cache.last_result is not None
            and self.cache.last_fingerprint == key
            and now - self.cache.timestamp < self.ttl_seconds
        ):
            return self.cache.last_result

        metrics = ScheduleMetrics(
            schedule_span=schedule_span(weeks),
            daily_balance=daily_balance(weeks, config.max_classes_per_day),
            period_utilization=period_utilization(weeks),
            constraint_pressure=constraint_pressure(weeks, config),
        )
        metrics.overall_quality = overall_quality(metrics)

        self.cache.last_fingerprint = key
        self.cache.last_result = metrics
        self.cache.timestamp = now
        logger.debug("Computed schedule metrics", quality=metrics.overall_quality)
        return metrics

    def generate_insights(self, metrics: ScheduleMetrics) -> list[Insight]:
        insights = []

        if metrics.schedule_span > 0:
            insights.append(
                Insight(
                    "span",
                    f"Your schedule spans {metrics.schedule_span} days from first to last class.",
                )
            )

        statuses = [d.status for d in metrics.daily_balance.values()]
        underutilized = statuses.count(BalanceStatus.UNDERUTILIZED)
        near_capacity = statuses.count(BalanceStatus.NEAR_CAPACITY)
        if underutilized:
            insights.append(
                Insight(
                    "balance",
                    f"{underutilized} days are underutilized (less than 70% of ideal class load).",
                )
            )
        if near_capacity:
            insights.append(
                Insight(
                    "balance",
                    f"{near_capacity} days are near capacity (more than 85% of maximum).",
                )
            )

        low_periods = [str(p) for p, u in metrics.period_utilization.items() if u.percentage < 30]
        if low_periods:
            insights.append(
                Insight(
                    "utilization",
                    f"Periods {', '.join(low_periods)} are underutilized (<30% of days).",
                )
            )

        compression = compression_opportunities(metrics)
        if compression.potential_days_reduction > 0:
            insights.append(
                Insight(
                    "compression",
                    "There may be an opportunity to reduce the schedule span by approximately "
                    f"{compression.potential_days_reduction} days while maintaining balance.",
                )
            )

        insights.append(Insight("quality", f"Overall schedule quality score: {metrics.overall_quality}/100"))
        return insights

    def generate_suggestions(self, metrics: ScheduleMetrics) -> list[Insight]:
        suggestions = []

        low_days = [
            date_str
            for date_str, day in metrics.daily_balance.items()
            if day.class_count < day.ideal_load * UNDERUTILIZED_RATIO
        ]
        if low_days:
            text = ", ".join(_short_date(d) for d in low_days[:3])
            if len(low_days) > 3:
                text += f" and {len(low_days) - 3} more"
            suggestions.append(
                Insight(
                    "balance",
                    "Consider adding more classes to less utilized days to improve balance.",
                    f"Lower utilization days: {text}",
                )
            )

        compression = compression_opportunities(metrics)
        if compression.potential_days_reduction > 0:
            if compression.date_ranges:
                details = "Sparse date ranges: " + ", ".join(
                    f"{_short_date(r.start)} to {_short_date(r.end)}" for r in compression.date_ranges
                )
            else:
                details = f"Potential to reduce schedule span by {compression.potential_days_reduction} days"
            suggestions.append(
                Insight("compression", "Consider consolidating classes to reduce schedule span.", details)
            )

        high = [str(p) for p, u in metrics.period_utilization.items() if u.percentage > 70]
        low = [str(p) for p, u in metrics.period_utilization.items() if u.percentage < 40]
        if high or low:
            parts = []
            if high:
                parts.append(f"High-use periods: {', '.join(high)}.")
            if low:
                parts.append(f"Low-use periods: {', '.join(low)}.")
            suggestions.append(
                Insight(
                    "utilization",
                    "Consider redistributing classes across periods for better balance.",
                    " ".join(parts),
                )
            )

        short_weeks = [
            f"Week {offset + 1} ({w.count}/{w.min_limit})"
            for offset, w in sorted(metrics.constraint_pressure.weekly.items())
            if w.count < w.min_limit * 0.9
        ]
        if short_weeks:
            suggestions.append(
                Insight(
                    "weekly",
                    "Some weeks are below the recommended class minimum.",
                    f"Weeks below minimum: {', '.join(short_weeks)}",
                )
            )

        if metrics.overall_quality < 90:
            suggestions.append(
                Insight(
                    "quality",
                    "Your schedule has room for improvement in overall quality.",
                    f"Current quality score: {metrics.overall_quality}/100. "
                    "Aim for a more balanced distribution across days and periods.",
                )
            )

        return suggestions
