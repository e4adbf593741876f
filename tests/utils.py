from __future__ import annotations

import csv
from pathlib import Path
from typing import Sequence

SIGNUP_HEADER = ["Timestamp", "Email", "Last Name", "First Name", "Grade", "Advisor"] + [
    f"{label} {rank}"
    for label in ("Academics", "Culture", "Fest", "Community", "Experience")
    for rank in range(1, 6)
]


def write_programs(path: Path, rows: Sequence[tuple[str, int, int, int]]) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["name", "block", "min_cap", "max_cap"])
        writer.writerows(rows)


def signup_row(email: str, first: str, last: str, prefs: Sequence[Sequence[str]]) -> list[str]:
    """prefs: one list of up to 5 names per block, in block order."""
    cells: list[str] = []
    for block_prefs in prefs:
        cells.extend(list(block_prefs) + [""] * (5 - len(block_prefs)))
    return ["2024-09-01 08:00:00", email, last, first, "10", ""] + cells


def write_signups(path: Path, rows: Sequence[Sequence[str]]) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(SIGNUP_HEADER)
        writer.writerows(rows)


def two_per_block_catalog(max_cap: int) -> list[tuple[str, int, int, int]]:
    return [
        (f"{label} {letter}", code, 0, max_cap)
        for code, label in enumerate(("Academics", "Culture", "Fest", "Community", "Experience"), start=1)
        for letter in ("A", "B")
    ]
