"""Command-line interface for the period planner."""

import argparse
import sys
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Optional

from loguru import logger

from periodplanner.analytics.metrics import MetricsCache, ScheduleAnalytics
from periodplanner.domain.calendar import Weekday, parse_date
from periodplanner.domain.models import Activity
from periodplanner.output.pdf_generator import PDFGenerator
from periodplanner.output.text_report import TextReportGenerator
from periodplanner.scheduling.cpsat_simulator import CPSATSimulationStrategy, SolverConfig
from periodplanner.scheduling.simulator import SimulatorConfig, WhatIfSimulator
from periodplanner.scheduling.store import PersistenceMode, ScheduleStore
from periodplanner.scheduling.suggestions import SuggestionEngine
from periodplanner.storage.backends import InMemoryStore, JsonDirectoryStore
from periodplanner.validation.rules import audit_schedule, check_config_combination


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr; warnings only unless verbose."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def create_sample_activities() -> list[Activity]:
    """Create a sample catalog with realistic blackout periods."""
    mon, tue, wed, thu, fri = Weekday.school_days()
    rows = [
        ("PK207", [2], [2], [4], [3], [1, 3]),
        ("PK214", [2, 5], [3, 5], [1, 5], [5, 7], [2, 3, 5]),
        ("PK208", [2, 5], [7, 5], [2, 5], [2, 5], [3, 5, 7]),
        ("PK213", [2, 6], [1, 6], [6, 8], [2, 6], [3, 4, 6]),
        ("K-313", [1], [4], [2, 4], [4], [8]),
        ("K-309", [1], [7], [2, 7], [3], [1]),
        ("K-311", [1], [7], [2, 7], [1], [3]),
        ("1-407", [2], [1], [1], [2, 4], [7]),
        ("1-409", [4], [1], [3], [2, 5], [4]),
        ("2-411", [7], [2, 8], [1], [8], [2]),
        ("3-418", [8], [3], [3, 8], [1], [8]),
        ("4-509", [1], [8], [3], [3, 8], [1]),
    ]
    return [
        Activity(
            name=name,
            conflicts={
                mon: set(m),
                tue: set(t),
                wed: set(w),
                thu: set(th),
                fri: set(f),
            },
        )
        for name, m, t, w, th, f in rows
    ]


def build_store(state_dir: Optional[str], start_date: Optional[date] = None) -> ScheduleStore:
    """Create a store backed by ``state_dir`` (or memory) and load saved state."""
    persistence = JsonDirectoryStore(state_dir) if state_dir else InMemoryStore()
    store = ScheduleStore(persistence=persistence, start_date=start_date, mode=PersistenceMode.WRITE_THROUGH)
    if state_dir:
        store.load()
        if start_date is not None:
            store.set_start_date(start_date)
    return store


def fill_week(store: ScheduleStore, engine: SuggestionEngine) -> list[str]:
    """Place each unplaced activity, most constrained first, in its first legal slot.

    Returns:
        Names of activities that had no legal slot.
    """
    stuck = []
    while True:
        activity = engine.suggest_next(exclude=stuck)
        if activity is None:
            break
        slots = engine.available_slots(activity.name)
        if not slots:
            stuck.append(activity.name)
            continue
        store.schedule_activity(activity.name, slots[0].date_str, slots[0].period)
    return stuck


def run_demo(start: Optional[date] = None, output_path: Optional[str] = None) -> None:
    """Fill a week with the sample catalog and print the result."""
    store = build_store(None, start)
    for activity in create_sample_activities():
        store.add_activity(activity)
    engine = SuggestionEngine(store)

    print(f"Filling week of {store.start_date} with {len(store.activities)} sample classes...")
    stuck = fill_week(store, engine)

    reporter = TextReportGenerator()
    print()
    print(reporter.week_grid(store.current_week(), store.current_unavailability()))
    if stuck:
        print(f"No legal slot left for: {', '.join(stuck)}")

    analytics = ScheduleAnalytics(MetricsCache())
    metrics = analytics.calculate_metrics(store.weeks(), store.config)
    print(reporter.analytics(metrics, analytics.generate_insights(metrics), analytics.generate_suggestions(metrics)))

    if output_path:
        print(f"Generating PDF: {output_path}")
        PDFGenerator().generate(store.current_week(), output_path, store.current_unavailability())
        print("  PDF created successfully!")


def run_import(csv_path: str, state_dir: Optional[str]) -> int:
    store = build_store(state_dir)
    outcome = store.import_activities_file(csv_path)
    if not outcome.succeeded:
        print(f"Import failed: {outcome.error}")
        print(f"Keeping the existing catalog ({len(outcome.activities)} classes).")
        return 1

    print(f"Imported {len(outcome.activities)} classes from {csv_path}")
    for activity in outcome.activities:
        print(f"  {activity.name:<12} {activity.blackout_count} blackout periods")
    if store.last_storage_error:
        print(f"Warning: {store.last_storage_error.user_message}")
        return 1
    return 0


def run_simulate(
    state_dir: Optional[str],
    overrides: dict[str, Optional[int]],
    solver_type: str = "scan",
    time_limit: float = 10.0,
    apply: bool = False,
) -> int:
    """Simulate new constraint values against the stored schedule."""
    store = build_store(state_dir)
    current = store.config
    try:
        proposed = replace(current, **{k: v for k, v in overrides.items() if v is not None})
    except ValueError as e:
        print(f"Invalid constraints: {e}")
        return 1

    strategy = None
    if solver_type == "cpsat":
        strategy = CPSATSimulationStrategy(store.activities, SolverConfig(time_limit_seconds=time_limit))

    simulator = WhatIfSimulator(strategy, SimulatorConfig(timeout_seconds=time_limit + 5))
    result = simulator.simulate_snapshot(store.snapshot(), proposed)
    print(TextReportGenerator().simulation(result))

    if apply:
        check = check_config_combination(proposed)
        if not check.valid:
            print(f"Not applied: {check.message}")
            return 1
        removed = store.apply_constraint_change(result.invalid_placements, proposed)
        print(f"Applied new constraints, removed {removed} placements.")
    return 0


def run_report(state_dir: Optional[str], week: int = 0, output_path: Optional[str] = None) -> int:
    store = build_store(state_dir)
    direction = 1 if week > 0 else -1
    for _ in range(abs(week)):
        store.change_week(direction)

    reporter = TextReportGenerator()
    print(reporter.week_grid(store.current_week(), store.current_unavailability(), title=f"WEEK {week:+d}"))

    audit = audit_schedule(store.weeks(), store.config)
    if audit.is_valid:
        print("Constraint audit: PASSED")
    else:
        print(f"Constraint audit: {len(audit.violations)} issue(s)")
        for violation in audit.violations[:10]:
            print(f"    - {violation.message}")

    if output_path:
        PDFGenerator().generate(store.current_week(), output_path, store.current_unavailability())
        print(f"PDF written to {output_path}")
    return 0


def main() -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="Period Planner - weekly class placement tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo                           Fill a week with sample classes
  %(prog)s demo --output week.pdf         Also write a PDF

  %(prog)s import classes.csv --state ./planner
  %(prog)s report --state ./planner --week 1
  %(prog)s simulate --state ./planner --max-per-day 3
  %(prog)s simulate --state ./planner --max-consecutive 1 --solver cpsat --apply
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    demo_parser = subparsers.add_parser("demo", help="Fill a week with sample classes")
    demo_parser.add_argument("--start", type=str, help="Start date YYYY-MM-DD (default: next Monday)")
    demo_parser.add_argument("--output", "-o", type=str, help="Output PDF file path")

    import_parser = subparsers.add_parser("import", help="Replace the class catalog from a CSV file")
    import_parser.add_argument("csv_path", type=str, help="CSV file with class blackout periods")
    import_parser.add_argument("--state", type=str, help="Directory holding planner state")

    report_parser = subparsers.add_parser("report", help="Print a stored week")
    report_parser.add_argument("--state", type=str, help="Directory holding planner state")
    report_parser.add_argument("--week", type=int, default=0, help="Week offset (default: 0)")
    report_parser.add_argument("--output", "-o", type=str, help="Output PDF file path")

    sim_parser = subparsers.add_parser("simulate", help="Preview the effect of new constraints")
    sim_parser.add_argument("--state", type=str, help="Directory holding planner state")
    sim_parser.add_argument("--max-consecutive", type=int, help="New maximum consecutive classes")
    sim_parser.add_argument("--max-per-day", type=int, help="New maximum classes per day")
    sim_parser.add_argument("--min-per-week", type=int, help="New minimum classes per week")
    sim_parser.add_argument("--max-per-week", type=int, help="New maximum classes per week")
    sim_parser.add_argument(
        "--solver",
        type=str,
        default="scan",
        choices=["scan", "cpsat"],
        help="Simulation strategy (default: scan)",
    )
    sim_parser.add_argument(
        "--time-limit",
        type=float,
        default=10.0,
        help="Solver time limit in seconds (default: 10)",
    )
    sim_parser.add_argument("--apply", action="store_true", help="Commit the change after simulating")

    args = parser.parse_args()
    configure_logging(args.verbose)

    if args.command == "demo":
        run_demo(parse_date(args.start) if args.start else None, args.output)
        return 0
    elif args.command == "import":
        if not Path(args.csv_path).exists():
            print(f"File not found: {args.csv_path}")
            return 1
        return run_import(args.csv_path, args.state)
    elif args.command == "report":
        return run_report(args.state, args.week, args.output)
    elif args.command == "simulate":
        overrides = {
            "max_consecutive_classes": args.max_consecutive,
            "max_classes_per_day": args.max_per_day,
            "min_classes_per_week": args.min_per_week,
            "max_classes_per_week": args.max_per_week,
        }
        return run_simulate(args.state, overrides, args.solver, args.time_limit, args.apply)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
