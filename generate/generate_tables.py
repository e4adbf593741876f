#!/usr/bin/env python3
from __future__ import annotations

import argparse
import csv
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

# Same block codes/order as the allocation package (1..5).
BLOCK_LABELS = ("Academics", "Culture", "Fest", "Community", "Experience")
PREFS_PER_BLOCK = 5


@dataclass(frozen=True)
class ProgramRow:
    name: str
    block: int
    min_cap: int
    max_cap: int


@dataclass(frozen=True)
class SignupRow:
    timestamp: str
    email: str
    last_name: str
    first_name: str
    grade: str
    advisor: str
    prefs: tuple[str, ...]


def _prompt_positive_int(prompt: str) -> int:
    while True:
        raw = input(prompt).strip()
        try:
            value = int(raw)
        except ValueError:
            print("Enter a whole number.")
            continue
        if value <= 0:
            print("Number must be > 0.")
            continue
        return value


def generate_programs(
    rng: random.Random,
    *,
    per_block: int,
    cap_min: int,
    cap_max: int,
) -> list[ProgramRow]:
    """
    K programs per block, catalog grouped by block.
    min_cap is roughly a third of max_cap.
    """
    rows: list[ProgramRow] = []
    for code, label in enumerate(BLOCK_LABELS, start=1):
        for i in range(1, per_block + 1):
            max_cap = rng.randint(cap_min, cap_max)
            rows.append(
                ProgramRow(
                    name=f"{label} {i}",
                    block=code,
                    min_cap=max_cap // 3,
                    max_cap=max_cap,
                )
            )
    return rows


def generate_signups(
    rng: random.Random,
    programs: Sequence[ProgramRow],
    *,
    n_students: int,
    blank_rate: float,
) -> list[SignupRow]:
    """
    Each student ranks up to PREFS_PER_BLOCK distinct programs per block.
    With probability blank_rate a cell is left empty (a skipped choice).
    """
    by_block: dict[int, list[str]] = {}
    for p in programs:
        by_block.setdefault(p.block, []).append(p.name)

    rows: list[SignupRow] = []
    for i in range(1, n_students + 1):
        prefs: list[str] = []
        for code in range(1, len(BLOCK_LABELS) + 1):
            names = by_block.get(code, [])
            picks = rng.sample(names, k=min(PREFS_PER_BLOCK, len(names)))
            picks += [""] * (PREFS_PER_BLOCK - len(picks))
            prefs.extend("" if rng.random() < blank_rate else name for name in picks)
        rows.append(
            SignupRow(
                timestamp=f"2024-09-01 08:{i % 60:02d}:00",
                email=f"student{i}@example.org",
                last_name=f"Last{i}",
                first_name=f"First{i}",
                grade=str(rng.randint(9, 12)),
                advisor="",
                prefs=tuple(prefs),
            )
        )
    return rows


def _write_programs_csv(path: Path, rows: Sequence[ProgramRow]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["name", "block", "min_cap", "max_cap"])
        for r in rows:
            writer.writerow([r.name, r.block, r.min_cap, r.max_cap])


def _write_signups_csv(path: Path, rows: Sequence[SignupRow]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    header = ["Timestamp", "Email", "Last Name", "First Name", "Grade", "Advisor"]
    for label in BLOCK_LABELS:
        header.extend(f"{label} {rank}" for rank in range(1, PREFS_PER_BLOCK + 1))
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for r in rows:
            writer.writerow(
                [r.timestamp, r.email, r.last_name, r.first_name, r.grade, r.advisor, *r.prefs]
            )


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Generate a synthetic program catalog and signup export",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--students", type=int, default=None, help="Number of students (N)")
    p.add_argument("--per-block", type=int, default=None, help="Programs per block (K)")
    p.add_argument("--cap-min", type=int, default=5)
    p.add_argument("--cap-max", type=int, default=20)
    p.add_argument(
        "--blank-rate",
        type=float,
        default=0.0,
        help="Probability that a preference cell is left empty (0..1)",
    )
    p.add_argument("--seed", type=int, default=42)
    p.add_argument("--out-programs", type=Path, default=Path("src/programs.csv"))
    p.add_argument("--out-signups", type=Path, default=Path("src/signups.csv"))
    return p.parse_args()


def main() -> int:
    args = _parse_args()

    n_students = args.students if args.students is not None else _prompt_positive_int("Number of students (N): ")
    per_block = args.per_block if args.per_block is not None else _prompt_positive_int("Programs per block (K): ")

    if args.cap_min < 0 or args.cap_min > args.cap_max:
        raise SystemExit("--cap-min must be within 0..--cap-max")
    if not (0.0 <= args.blank_rate <= 1.0):
        raise SystemExit("--blank-rate must be in 0..1")

    rng = random.Random(args.seed)
    programs = generate_programs(rng, per_block=per_block, cap_min=args.cap_min, cap_max=args.cap_max)
    signups = generate_signups(rng, programs, n_students=n_students, blank_rate=args.blank_rate)

    _write_programs_csv(args.out_programs, programs)
    _write_signups_csv(args.out_signups, signups)

    print(f"Done: {args.out_programs} ({len(programs)} programs)")
    print(f"Done: {args.out_signups} ({len(signups)} students)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
