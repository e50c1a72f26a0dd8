"""Plain-text reports for terminals and log files.

This module renders:
- A week grid with one column per weekday and one row per period
- What-if simulation results with the placements that would be removed
- Analytics insights and suggestions
"""

from pathlib import Path
from typing import Optional, Union

from periodplanner.analytics.metrics import Insight, ScheduleMetrics
from periodplanner.domain.calendar import parse_date
from periodplanner.domain.models import PERIODS, WeekAvailability, WeekGrid
from periodplanner.scheduling.simulator import SimulationResult

CELL_WIDTH = 12
UNAVAILABLE_MARK = "x"


class TextReportGenerator:
    """Generates human-readable text reports."""

    def write(self, content: str, output_path: Union[str, Path]) -> str:
        """Save a generated report and return it unchanged."""
        Path(output_path).write_text(content)
        return content

    def week_grid(
        self,
        week: WeekGrid,
        unavailable: Optional[WeekAvailability] = None,
        title: str = "WEEK SCHEDULE",
    ) -> str:
        """Render one week as a period-by-weekday table.

        Free slots marked unavailable show as ``x``.
        """
        unavailable = unavailable or {}
        dates = sorted(week)
        width = 8 + (CELL_WIDTH + 1) * len(dates)

        lines = ["=" * width, title, "=" * width]
        header = f"{'Period':<8}" + " ".join(
            f"{parse_date(d).strftime('%a %m/%d'):^{CELL_WIDTH}}" for d in dates
        )
        lines.append(header)
        lines.append("-" * width)

        for period in PERIODS:
            cells = []
            for date_str in dates:
                name = week[date_str].get(period)
                if name:
                    cell = name[:CELL_WIDTH]
                elif unavailable.get(date_str, {}).get(period):
                    cell = UNAVAILABLE_MARK
                else:
                    cell = "."
                cells.append(f"{cell:^{CELL_WIDTH}}")
            lines.append(f"{period:<8}" + " ".join(cells))

        lines.append("-" * width)
        total = sum(1 for d in dates for p in PERIODS if week[d].get(p))
        lines.append(f"Classes this week: {total}")
        return "\n".join(lines) + "\n"

    def simulation(self, result: SimulationResult, limit: int = 20) -> str:
        """Summarize a what-if simulation."""
        lines = [
            "=" * 60,
            "WHAT-IF SIMULATION",
            "=" * 60,
            f"Source: {result.source}",
            f"Feasible: {'yes' if result.feasible else 'no'}",
            f"Classes: {result.current_class_count} -> {result.simulated_class_count}",
            f"Affected days: {result.metrics.affected_days}",
        ]
        if result.metrics.weeks_below_minimum:
            lines.append(f"Weeks below minimum: {result.metrics.weeks_below_minimum}")
        if result.detail:
            lines.append(f"Detail: {result.detail}")

        if result.invalid_placements:
            lines.append("")
            lines.append(f"Placements to remove ({len(result.invalid_placements)}):")
            for p in result.invalid_placements[:limit]:
                lines.append(
                    f"  - week {p.week_offset:+d} {p.date_str} period {p.period}: "
                    f"{p.activity_name} ({p.message})"
                )
            if len(result.invalid_placements) > limit:
                lines.append(f"  ... and {len(result.invalid_placements) - limit} more")
        return "\n".join(lines) + "\n"

    def analytics(
        self,
        metrics: ScheduleMetrics,
        insights: list[Insight],
        suggestions: list[Insight],
    ) -> str:
        """List metrics headline figures, insights and suggestions."""
        lines = [
            "=" * 60,
            "SCHEDULE ANALYTICS",
            "=" * 60,
            f"Quality score: {metrics.overall_quality}/100",
            f"Schedule span: {metrics.schedule_span} days",
            "",
            "Period utilization:",
        ]
        for period, usage in metrics.period_utilization.items():
            bar = "#" * int(usage.percentage / 5)
            lines.append(f"  {period}: {usage.percentage:5.1f}% {bar}")

        if insights:
            lines.append("")
            lines.append("Insights:")
            lines.extend(f"  - {i.message}" for i in insights)
        if suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for s in suggestions:
                lines.append(f"  - {s.message}")
                if s.details:
                    lines.append(f"      {s.details}")
        return "\n".join(lines) + "\n"
