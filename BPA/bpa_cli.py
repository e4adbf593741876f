from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .bpa_api import run_program_allocation
from .bpa_io import (
    _render_report_lines,
    _write_assignments_csv,
    _write_metrics_extended_csv,
    _write_placements_csv,
    _write_rosters_csv,
    _write_summary_csv,
)

LOG = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Assign students to block programs from ranked signups",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--programs", type=Path, default=Path("src/programs.csv"))
    p.add_argument("--signups", type=Path, default=Path("src/signups.csv"))
    p.add_argument(
        "--strict-prefs",
        action="store_true",
        help="Fail on preference names that match no program of their block",
    )
    p.add_argument(
        "--unranked-penalty",
        type=int,
        default=10,
        help="Score added for a placement outside the student's ranked list",
    )
    p.add_argument(
        "--progress",
        action="store_true",
        help="Print progress per block and preference round",
    )
    p.add_argument(
        "--sanity-checks",
        action="store_true",
        help="Re-check roster/assignment invariants after every placement",
    )
    p.add_argument("--out-assignments", type=Path, default=Path("assignments.csv"))
    p.add_argument("--out-rosters", type=Path, default=Path("rosters.csv"))
    p.add_argument(
        "--out-placements",
        type=Path,
        default=Path("placements.csv"),
        help="CSV log of placements in the order they were made",
    )
    p.add_argument("--out-summary", type=Path, default=Path("summary.csv"))
    p.add_argument("--out-metrics-extended", type=Path, default=Path("metrics_extended.csv"))
    p.add_argument(
        "--print-report",
        action="store_true",
        help="Print every student's assignments and score",
    )
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging verbosity",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level))
    LOG.debug("Starting run with args=%s", args)

    programs, students, result = run_program_allocation(
        args.programs,
        args.signups,
        strict_prefs=args.strict_prefs,
        sanity_checks=args.sanity_checks,
        progress=args.progress,
        unranked_penalty=args.unranked_penalty,
    )

    _write_assignments_csv(args.out_assignments, programs=programs, students=students, result=result)
    _write_rosters_csv(args.out_rosters, programs=programs, students=students, result=result)
    _write_placements_csv(args.out_placements, placement_log=result.placement_log)
    _write_summary_csv(args.out_summary, summary=result.summary)
    _write_metrics_extended_csv(args.out_metrics_extended, metrics=result.metrics_extended)

    if args.print_report:
        for line in _render_report_lines(programs=programs, students=students, result=result):
            print(line)

    if result.unassigned:
        LOG.warning("%d student/block slots left unassigned (blocks full)", len(result.unassigned))

    print(f"OK: {args.out_assignments} ({len(students)} students, {len(result.placement_log)} placements)")
    print(
        "Metrics: "
        f"TotalScore={result.summary.total_score} "
        f"MeanScore={result.summary.mean_score:.6f} "
        f"Unassigned={result.summary.unassigned_slots} "
        f"UnderMin={result.summary.programs_under_min}"
    )
    return 0
