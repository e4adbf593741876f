from __future__ import annotations

from pathlib import Path
from typing import Sequence

from .bpa_config import _RunConfig
from .bpa_domain import Program, RunResult, Student
from .bpa_engine import _ProgramAllocationEngine
from .bpa_io import _read_programs, _read_signups


def _build_config(
    *,
    strict_prefs: bool,
    sanity_checks: bool,
    progress: bool,
    unranked_penalty: int,
) -> _RunConfig:
    if unranked_penalty < 0:
        raise ValueError("unranked_penalty must be >= 0")
    return _RunConfig(
        strict_prefs=strict_prefs,
        sanity_checks=sanity_checks,
        progress=progress,
        unranked_penalty=unranked_penalty,
    )


def allocate_programs(
    programs: Sequence[Program],
    students: Sequence[Student],
    *,
    sanity_checks: bool = False,
    progress: bool = False,
    unranked_penalty: int = 10,
) -> RunResult:
    """
    Run one allocation over already-loaded programs and students.

    Every call builds a fresh engine, so the same inputs always give the same result.
    """
    config = _build_config(
        strict_prefs=False,
        sanity_checks=sanity_checks,
        progress=progress,
        unranked_penalty=unranked_penalty,
    )
    engine = _ProgramAllocationEngine(programs=programs, students=students, config=config)
    return engine.run()


def run_program_allocation(
    programs_csv: Path,
    signups_csv: Path,
    *,
    strict_prefs: bool = False,
    sanity_checks: bool = False,
    progress: bool = False,
    unranked_penalty: int = 10,
) -> tuple[list[Program], list[Student], RunResult]:
    """
    Public API function: load the catalog and signups, then run the allocation.

    This is a thin orchestration layer:
      - Validates parameters
      - Loads CSV inputs (any load error aborts before allocation starts)
      - Builds and runs the allocation engine

    The loaded programs and students are returned with the result so callers can
    render reports without reloading.
    """
    config = _build_config(
        strict_prefs=strict_prefs,
        sanity_checks=sanity_checks,
        progress=progress,
        unranked_penalty=unranked_penalty,
    )

    programs = _read_programs(programs_csv)
    students = _read_signups(signups_csv, programs, strict=config.strict_prefs)

    engine = _ProgramAllocationEngine(programs=programs, students=students, config=config)
    return programs, students, engine.run()
