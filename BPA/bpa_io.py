from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Sequence

from .bpa_domain import (
    BLOCK_ORDER,
    PREFS_PER_BLOCK,
    Block,
    ExtendedMetrics,
    PlacementLogRow,
    Preference,
    Program,
    RunResult,
    RunSummary,
    Student,
)

LOG = logging.getLogger(__name__)

# Signup export columns (0-based); preferences are block-major, PREFS_PER_BLOCK per block.
_SIGNUP_EMAIL_COL = 1
_SIGNUP_LAST_NAME_COL = 2
_SIGNUP_FIRST_NAME_COL = 3
_SIGNUP_PREFS_START_COL = 6


def _parse_cap(raw: str, field: str, row_number: int) -> int:
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValueError(f"Catalog row {row_number}: {field} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"Catalog row {row_number}: {field} must be >= 0, got {value}")
    return value


def _read_programs(path: Path) -> list[Program]:
    """Read the program catalog CSV; ids are assigned in row order starting at 0."""

    programs: list[Program] = []
    seen: set[tuple[Block, str]] = set()
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        required = {"name", "block", "min_cap", "max_cap"}
        if reader.fieldnames is None or not required.issubset(set(reader.fieldnames)):
            raise ValueError(f"Program catalog needs columns: {sorted(required)} (file: {path})")
        for row_number, r in enumerate(reader, start=2):
            name = str(r["name"] or "").strip()
            if not name:
                raise ValueError(f"Catalog row {row_number}: program name is blank")
            try:
                block = Block.from_code(int(str(r["block"]).strip()))
            except ValueError:
                raise ValueError(f"Catalog row {row_number}: unknown block {r['block']!r}") from None
            if (block, name) in seen:
                raise ValueError(f"Catalog row {row_number}: duplicate program {name!r} in {block.label}")
            seen.add((block, name))
            programs.append(
                Program(
                    program_id=len(programs),
                    name=name,
                    block=block,
                    min_cap=_parse_cap(r["min_cap"], "min_cap", row_number),
                    max_cap=_parse_cap(r["max_cap"], "max_cap", row_number),
                )
            )
    return programs


def _resolve_preferences(
    cells: Sequence[str],
    programs: Sequence[Program],
    *,
    block: Block,
    student_label: str,
    strict: bool,
) -> Preference:
    """Map preference names to program ids of `block` (first catalog match); blanks become None."""

    by_name: dict[str, int] = {}
    for p in programs:
        if p.block is block:
            by_name.setdefault(p.name, p.program_id)

    resolved: list[int | None] = []
    for cell in cells:
        name = cell.strip()
        if not name:
            resolved.append(None)
            continue
        program_id = by_name.get(name)
        if program_id is None:
            if strict:
                raise ValueError(f"Unknown {block.label} program {name!r} for {student_label}")
            LOG.warning("Ignoring unknown %s program %r for %s", block.label, name, student_label)
        resolved.append(program_id)
    return tuple(resolved)


def _read_signups(path: Path, programs: Sequence[Program], *, strict: bool = False) -> list[Student]:
    """
    Read the signup export (header row, positional columns) into students.

    Ids are assigned in row order starting at 0. Display name is "First Last".
    """

    min_columns = _SIGNUP_PREFS_START_COL + len(BLOCK_ORDER) * PREFS_PER_BLOCK
    students: list[Student] = []
    seen_emails: set[str] = set()
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        next(reader, None)
        for record in reader:
            if not any(cell.strip() for cell in record):
                continue
            email = record[_SIGNUP_EMAIL_COL].strip() if len(record) > _SIGNUP_EMAIL_COL else ""
            if len(record) < min_columns:
                raise ValueError(f"Invalid student: {email}")
            if email:
                if email in seen_emails:
                    raise ValueError(f"Duplicate student: {email}")
                seen_emails.add(email)

            name = (
                f"{record[_SIGNUP_FIRST_NAME_COL].strip()} {record[_SIGNUP_LAST_NAME_COL].strip()}"
            )
            prefs: dict[Block, Preference] = {}
            for i, block in enumerate(BLOCK_ORDER):
                start = _SIGNUP_PREFS_START_COL + i * PREFS_PER_BLOCK
                prefs[block] = _resolve_preferences(
                    record[start : start + PREFS_PER_BLOCK],
                    programs,
                    block=block,
                    student_label=name,
                    strict=strict,
                )
            students.append(
                Student(student_id=len(students), name=name, prefs=prefs, email=email)
            )
    return students


def _write_assignments_csv(
    path: Path,
    *,
    programs: Sequence[Program],
    students: Sequence[Student],
    result: RunResult,
) -> None:
    """
    Write one row per student: program name per block (blank = unassigned) and score.
    """

    names = {p.program_id: p.name for p in programs}
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["StudentID", "Name", "Email", *(b.label for b in BLOCK_ORDER), "Score"])
        for student in students:
            assigned = result.assignments.get(student.student_id, {})
            score = result.scores.get(student.student_id)
            writer.writerow(
                [
                    student.student_id,
                    student.name,
                    student.email,
                    *(names[assigned[b]] if b in assigned else "" for b in BLOCK_ORDER),
                    ("" if score is None else score),
                ]
            )


def _write_rosters_csv(
    path: Path,
    *,
    programs: Sequence[Program],
    students: Sequence[Student],
    result: RunResult,
) -> None:
    """
    Write one row per program with its enrolment (student names in placement order).
    """

    names = {s.student_id: s.name for s in students}
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(
            ["ProgramID", "Block", "Program", "MinCap", "MaxCap", "Enrolled", "Students"]
        )
        for program in programs:
            roster = result.rosters.get(program.program_id, [])
            writer.writerow(
                [
                    program.program_id,
                    program.block.label,
                    program.name,
                    program.min_cap,
                    program.max_cap,
                    len(roster),
                    ";".join(names[sid] for sid in roster),
                ]
            )


def _write_placements_csv(
    path: Path,
    *,
    placement_log: list[PlacementLogRow],
) -> None:
    """
    Write the placement log in the order placements were made.
    """

    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["Block", "Phase", "PrefRank", "StudentID", "ProgramID"])
        for row in placement_log:
            writer.writerow(
                [
                    row.block.label,
                    row.phase,
                    ("" if row.pref_rank is None else row.pref_rank),
                    row.student_id,
                    row.program_id,
                ]
            )


def _write_summary_csv(path: Path, *, summary: RunSummary) -> None:
    """
    Write a one-row summary CSV.
    """

    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(
            [
                "total_score",
                "mean_score",
                "students_score_zero",
                "students_score_unknown",
                "unassigned_slots",
                "programs_under_min",
            ]
        )
        writer.writerow(
            [
                summary.total_score,
                f"{summary.mean_score:.6f}",
                summary.students_score_zero,
                summary.students_score_unknown,
                summary.unassigned_slots,
                summary.programs_under_min,
            ]
        )


def _write_metrics_extended_csv(
    path: Path,
    *,
    metrics: ExtendedMetrics,
) -> None:
    """
    Write extended metrics as a one-row CSV.
    """

    keys = list(metrics.values.keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(keys)
        writer.writerow([f"{metrics.values[k]:.6f}" for k in keys])


def _render_report_lines(
    *,
    programs: Sequence[Program],
    students: Sequence[Student],
    result: RunResult,
) -> list[str]:
    names = {p.program_id: p.name for p in programs}
    lines: list[str] = []
    for student in students:
        score = result.scores.get(student.student_id)
        lines.append(f"{student.name} (score: {'?' if score is None else score})")
        assigned = result.assignments.get(student.student_id, {})
        for block in BLOCK_ORDER:
            program_id = assigned.get(block)
            lines.append(f"  {block.label}: {'-' if program_id is None else names[program_id]}")
    return lines
