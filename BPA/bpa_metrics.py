from __future__ import annotations

from typing import Mapping, Sequence

from .bpa_domain import BLOCK_ORDER, Block, Preference

UNRANKED_PENALTY = 10


def compute_assignment_score(
    prefs: Mapping[Block, Preference],
    assignments: Mapping[Block, int],
    *,
    unranked_penalty: int = UNRANKED_PENALTY,
) -> int | None:
    """
    Assignment quality of one student (lower is better, 0 = top choice everywhere).

    Blocks are scanned in canonical order and the scan stops at the first block
    without an assignment, so later blocks never contribute:
      - assigned program at 0-based rank i of that block's preferences -> +i
      - assigned program not ranked at all -> +unranked_penalty

    Returns None when an assigned block has no preference entry at all.
    """

    score = 0
    for block in BLOCK_ORDER:
        program_id = assignments.get(block)
        if program_id is None:
            break
        ranked = prefs.get(block)
        if ranked is None:
            return None
        if program_id in ranked:
            score += ranked.index(program_id)
        else:
            score += unranked_penalty
    return score


def compute_total_score(per_student_scores: Sequence[int | None]) -> int:
    """Sum of known scores; unknown (None) scores are skipped."""

    return sum(s for s in per_student_scores if s is not None)


def compute_gini_index(values: Sequence[float]) -> float:
    """
    Deterministic Gini index over non-negative values.

    Applied to assignment scores, where higher means worse: 0 means every
    student was served equally well (or equally badly), values near 1 mean
    the penalty is concentrated on a few students.

    For sorted values x_1..x_n and X = sum(x):
      G = sum_i (2i - n - 1) * x_i / (n * X)    if X > 0
      G = 0                                     if X == 0
    """

    vals = [max(0.0, float(v)) for v in values]
    n = len(vals)
    if n == 0:
        return 0.0
    vals.sort()

    total = sum(vals)
    if total <= 0.0:
        return 0.0

    numerator = 0.0
    for i, x in enumerate(vals, start=1):
        numerator += (2 * i - n - 1) * x
    return numerator / (n * total)
