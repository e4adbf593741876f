from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional


class Block(Enum):
    """A scheduling slot. The integer value is the code used in the program catalog."""

    ACADEMICS = 1
    CULTURE = 2
    FEST = 3
    COMMUNITY = 4
    EXPERIENCE = 5

    @property
    def label(self) -> str:
        return self.name.title()

    @classmethod
    def from_code(cls, code: int) -> Block:
        try:
            return cls(code)
        except ValueError:
            raise ValueError(f"unknown block: {code}") from None


# Canonical iteration order (allocation, scoring, signup columns).
BLOCK_ORDER: tuple[Block, ...] = (
    Block.ACADEMICS,
    Block.CULTURE,
    Block.FEST,
    Block.COMMUNITY,
    Block.EXPERIENCE,
)

PREFS_PER_BLOCK = 5

# Ranked program ids for one block; None marks a preference that did not resolve.
Preference = tuple[Optional[int], ...]


@dataclass(frozen=True)
class Program:
    """An activity offering in exactly one block (one catalog row)."""

    program_id: int
    name: str
    block: Block
    min_cap: int
    max_cap: int


@dataclass(frozen=True)
class Student:
    """A signup: identity plus ranked preferences per block (one signup row)."""

    student_id: int
    name: str
    prefs: Mapping[Block, Preference]
    email: str = ""


@dataclass(frozen=True)
class PlacementLogRow:
    """Audit row for one placement, in the order placements were made."""

    block: Block
    phase: str
    pref_rank: int | None
    student_id: int
    program_id: int


@dataclass(frozen=True)
class UnassignedRow:
    """A student left without a program in a block because every program was full."""

    student_id: int
    block: Block


@dataclass(frozen=True)
class RunSummary:
    """Aggregated results for a single run."""

    total_score: int
    mean_score: float
    students_score_zero: int
    students_score_unknown: int
    unassigned_slots: int
    programs_under_min: int


@dataclass(frozen=True)
class ExtendedMetrics:
    """Additional metrics for deeper analysis (exported to metrics_extended CSV)."""

    values: dict[str, float]


@dataclass(frozen=True)
class RunResult:
    """
    Outputs of a run.

    `assignments` maps student id -> {block: program id}; a block missing from the
    inner mapping means the student is unassigned there. `rosters` maps program id
    -> student ids in placement order. Both are copies of the engine state.
    """

    assignments: dict[int, dict[Block, int]]
    rosters: dict[int, list[int]]
    scores: dict[int, int | None]
    placement_log: list[PlacementLogRow]
    unassigned: list[UnassignedRow]
    summary: RunSummary
    metrics_extended: ExtendedMetrics
