from __future__ import annotations

import logging
from typing import Sequence

from .bpa_config import _RunConfig
from .bpa_domain import (
    BLOCK_ORDER,
    Block,
    ExtendedMetrics,
    PlacementLogRow,
    Program,
    RunResult,
    RunSummary,
    Student,
    UnassignedRow,
)
from .bpa_metrics import compute_assignment_score, compute_gini_index, compute_total_score

LOG = logging.getLogger(__name__)


class _ProgramAllocationEngine:
    """
    Application service that performs the block-by-block allocation and computes metrics.

    Responsibility:
      - Run the preference rounds and the fallback placement for every block.
      - Own the allocation state: student -> {block: program} and program -> roster.
        Both sides are written together in `_place` and nowhere else.
      - Produce a placement log for analysis/debugging.
      - Compute run-level metrics in a single, well-defined place.
    """

    _PREF_RANKS = 5

    def __init__(
        self,
        *,
        programs: Sequence[Program],
        students: Sequence[Student],
        config: _RunConfig,
    ) -> None:
        self._config = config
        self._programs = list(programs)
        self._students = list(students)

        self._program_by_id: dict[int, Program] = {p.program_id: p for p in self._programs}
        if len(self._program_by_id) != len(self._programs):
            raise ValueError("Duplicate program id in catalog")
        self._student_by_id: dict[int, Student] = {s.student_id: s for s in self._students}
        if len(self._student_by_id) != len(self._students):
            raise ValueError("Duplicate student id in signups")

        for student in self._students:
            for block, ranked in student.prefs.items():
                for program_id in ranked:
                    if program_id is None:
                        continue
                    program = self._program_by_id.get(program_id)
                    if program is None:
                        raise ValueError(
                            f"Student {student.student_id} prefers unknown program id {program_id}"
                        )
                    if program.block is not block:
                        raise ValueError(
                            f"Student {student.student_id} ranks {program.name!r} "
                            f"({program.block.label}) under {block.label}"
                        )

        # Catalog order within each block is the fallback tie-break.
        self._programs_by_block: dict[Block, tuple[Program, ...]] = {
            block: tuple(p for p in self._programs if p.block is block) for block in BLOCK_ORDER
        }

        self._rosters: dict[int, list[int]] = {p.program_id: [] for p in self._programs}
        self._assignments: dict[int, dict[Block, int]] = {s.student_id: {} for s in self._students}

        self._placement_log: list[PlacementLogRow] = []
        self._unassigned: list[UnassignedRow] = []

    # ---- Scoring ---------------------------------------------------------

    def _score(self, student: Student) -> int | None:
        return compute_assignment_score(
            student.prefs,
            self._assignments[student.student_id],
            unranked_penalty=self._config.unranked_penalty,
        )

    def _round_order(self) -> list[Student]:
        """
        Students by descending score (worst-served first), recomputed from the
        current assignments. Unknown scores go first; ties keep load order.
        """

        scores = {s.student_id: self._score(s) for s in self._students}

        def _key(student: Student) -> tuple[bool, int]:
            score = scores[student.student_id]
            if score is None:
                return (False, 0)
            return (True, -score)

        return sorted(self._students, key=_key)

    # ---- Placement -------------------------------------------------------

    def _has_room(self, program: Program) -> bool:
        return len(self._rosters[program.program_id]) < program.max_cap

    def _place(self, student: Student, program: Program, *, phase: str, pref_rank: int | None) -> None:
        self._rosters[program.program_id].append(student.student_id)
        self._assignments[student.student_id][program.block] = program.program_id
        self._placement_log.append(
            PlacementLogRow(
                block=program.block,
                phase=phase,
                pref_rank=pref_rank,
                student_id=student.student_id,
                program_id=program.program_id,
            )
        )
        if self._config.sanity_checks:
            self._assert_student_state(student.student_id)
            self._assert_program_capacity(program.program_id)

    def _assert_student_state(self, student_id: int) -> None:
        for block, program_id in self._assignments[student_id].items():
            if self._program_by_id[program_id].block is not block:
                raise AssertionError(f"Student {student_id} assigned across blocks in {block.label}")
            if student_id not in self._rosters[program_id]:
                raise AssertionError(f"Roster of program {program_id} is missing student {student_id}")

    def _assert_program_capacity(self, program_id: int) -> None:
        program = self._program_by_id[program_id]
        roster = self._rosters[program_id]
        if len(roster) > program.max_cap:
            raise AssertionError(
                f"Capacity exceeded for {program.name!r}: {len(roster)} > {program.max_cap}"
            )
        if len(roster) != len(set(roster)):
            raise AssertionError(f"Duplicate student in roster of {program.name!r}")
        for student_id in roster:
            if self._assignments[student_id].get(program.block) != program_id:
                raise AssertionError(
                    f"Roster of {program.name!r} lists student {student_id} not assigned to it"
                )

    # ---- Allocation ------------------------------------------------------

    def run(self) -> RunResult:
        """
        Allocate every block and compute metrics.

        Flow (per block, in canonical order):
          1) Preference rounds 0..4: reorder students by score, then place each
             unassigned student into their rank-r program if it has room.
          2) Fallback: place each still-unassigned student into the least-enrolled
             program of the block that has room.
          3) After the last block, compute summary metrics.
        """

        for block in BLOCK_ORDER:
            self._run_preference_rounds(block)
            self._run_fallback(block)

        summary, metrics_extended = self._compute_metrics()

        return RunResult(
            assignments={sid: dict(blocks) for sid, blocks in self._assignments.items()},
            rosters={pid: list(roster) for pid, roster in self._rosters.items()},
            scores={s.student_id: self._score(s) for s in self._students},
            placement_log=list(self._placement_log),
            unassigned=list(self._unassigned),
            summary=summary,
            metrics_extended=metrics_extended,
        )

    def _run_preference_rounds(self, block: Block) -> None:
        """
        Phase A: greedy first-come-first-served placement, most-preferred rank first.

        A placement is final; later rounds never displace it.
        """

        for pref_rank in range(self._PREF_RANKS):
            if self._config.progress:
                print(f"Block {block.label}: preference round {pref_rank}", flush=True)
            placed = 0
            for student in self._round_order():
                if block in self._assignments[student.student_id]:
                    continue
                ranked = student.prefs.get(block, ())
                if pref_rank >= len(ranked):
                    continue
                program_id = ranked[pref_rank]
                if program_id is None:
                    continue
                program = self._program_by_id[program_id]
                if not self._has_room(program):
                    continue
                self._place(student, program, phase="preference", pref_rank=pref_rank)
                placed += 1
            LOG.debug("Block %s round %d: %d placed", block.label, pref_rank, placed)

    def _run_fallback(self, block: Block) -> None:
        """
        Phase B: least-enrolled program with room (ties by catalog order), in load order.
        """

        if self._config.progress:
            print(f"Block {block.label}: fallback", flush=True)
        candidates = self._programs_by_block[block]
        for student in self._students:
            if block in self._assignments[student.student_id]:
                continue
            ordered = sorted(
                candidates,
                key=lambda p: (len(self._rosters[p.program_id]), p.program_id),
            )
            target = next((p for p in ordered if self._has_room(p)), None)
            if target is None:
                self._unassigned.append(UnassignedRow(student_id=student.student_id, block=block))
                LOG.info("No room in block %s for student %s", block.label, student.name)
                continue
            self._place(student, target, phase="fallback", pref_rank=None)

    # ---- Metrics ---------------------------------------------------------

    def _compute_metrics(self) -> tuple[RunSummary, ExtendedMetrics]:
        per_student = [self._score(s) for s in self._students]
        known = [s for s in per_student if s is not None]

        under_min = [
            p for p in self._programs if len(self._rosters[p.program_id]) < p.min_cap
        ]
        for program in under_min:
            LOG.info(
                "Program %r (%s) below minimum: %d < %d",
                program.name,
                program.block.label,
                len(self._rosters[program.program_id]),
                program.min_cap,
            )

        total_score = compute_total_score(per_student)
        summary = RunSummary(
            total_score=total_score,
            mean_score=(total_score / len(known)) if known else 0.0,
            students_score_zero=sum(1 for s in known if s == 0),
            students_score_unknown=len(per_student) - len(known),
            unassigned_slots=len(self._unassigned),
            programs_under_min=len(under_min),
        )

        n_placements = len(self._placement_log)
        rank0 = sum(1 for r in self._placement_log if r.pref_rank == 0)
        top3 = sum(1 for r in self._placement_log if r.pref_rank is not None and r.pref_rank < 3)
        fallback = sum(1 for r in self._placement_log if r.phase == "fallback")

        fill_rates = [
            len(self._rosters[p.program_id]) / p.max_cap for p in self._programs if p.max_cap > 0
        ]

        metrics = {
            "placements_total": float(n_placements),
            "share_rank0": rank0 / n_placements if n_placements else 0.0,
            "share_top3": top3 / n_placements if n_placements else 0.0,
            "share_fallback": fallback / n_placements if n_placements else 0.0,
            "unassigned_slots": float(len(self._unassigned)),
            "program_fill_rate_mean": sum(fill_rates) / len(fill_rates) if fill_rates else 0.0,
            "programs_under_min": float(len(under_min)),
            "score_mean": summary.mean_score,
            "score_max": float(max(known)) if known else 0.0,
            "score_gini": compute_gini_index(known),
        }
        return summary, ExtendedMetrics(values=metrics)
