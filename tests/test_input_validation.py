from __future__ import annotations

import sys
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

sys.path.append(str(Path(__file__).resolve().parents[1]))

from BPA.bpa_api import allocate_programs, run_program_allocation
from BPA.bpa_domain import BLOCK_ORDER, Block, Program, Student, UnassignedRow
from BPA.bpa_io import _read_programs, _read_signups
from tests.utils import signup_row, two_per_block_catalog, write_programs, write_signups


def _prefs(academics: list[str]) -> list[list[str]]:
    return [academics, [], [], [], []]


class TestCatalogValidation(unittest.TestCase):
    def _read(self, text: str) -> list[Program]:
        with TemporaryDirectory() as tmp:
            path = Path(tmp) / "programs.csv"
            path.write_text(text, encoding="utf-8")
            return _read_programs(path)

    def test_reads_catalog_in_order(self) -> None:
        programs = self._read("name,block,min_cap,max_cap\nRobotics,1,2,10\nChoir,2,0,4\n")
        self.assertEqual(
            programs,
            [
                Program(program_id=0, name="Robotics", block=Block.ACADEMICS, min_cap=2, max_cap=10),
                Program(program_id=1, name="Choir", block=Block.CULTURE, min_cap=0, max_cap=4),
            ],
        )

    def test_missing_column(self) -> None:
        with self.assertRaises(ValueError):
            self._read("name,block,max_cap\nRobotics,1,10\n")

    def test_unknown_block_code(self) -> None:
        with self.assertRaisesRegex(ValueError, "unknown block"):
            self._read("name,block,min_cap,max_cap\nRobotics,6,0,10\n")

    def test_negative_capacity(self) -> None:
        with self.assertRaises(ValueError):
            self._read("name,block,min_cap,max_cap\nRobotics,1,-1,10\n")

    def test_duplicate_program_in_block(self) -> None:
        with self.assertRaisesRegex(ValueError, "duplicate program"):
            self._read("name,block,min_cap,max_cap\nRobotics,1,0,10\nRobotics,1,0,5\n")

    def test_blank_program_name(self) -> None:
        with self.assertRaisesRegex(ValueError, "name is blank"):
            self._read("name,block,min_cap,max_cap\nRobotics,1,0,10\n  ,2,0,5\n")

    def test_same_name_in_other_block_is_allowed(self) -> None:
        programs = self._read("name,block,min_cap,max_cap\nService,1,0,10\nService,4,0,5\n")
        self.assertEqual([p.block for p in programs], [Block.ACADEMICS, Block.COMMUNITY])


class TestSignupValidation(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.workdir = Path(self._tmp.name)
        self.programs_csv = self.workdir / "programs.csv"
        write_programs(self.programs_csv, two_per_block_catalog(max_cap=2))
        self.programs = _read_programs(self.programs_csv)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _read(self, rows: list[list[str]], *, strict: bool = False) -> list[Student]:
        path = self.workdir / "signups.csv"
        write_signups(path, rows)
        return _read_signups(path, self.programs, strict=strict)

    def test_blank_and_unknown_names_become_empty_slots(self) -> None:
        rows = [signup_row("a@example.org", "Ada", "Lovelace", _prefs(["Academics B", "", "Juggling"]))]
        with self.assertLogs("BPA.bpa_io", level="WARNING") as logs:
            students = self._read(rows)
        self.assertEqual(students[0].name, "Ada Lovelace")
        self.assertEqual(students[0].email, "a@example.org")
        self.assertEqual(students[0].prefs[Block.ACADEMICS], (1, None, None, None, None))
        self.assertIn("Juggling", logs.output[0])

    def test_names_resolve_within_their_block_only(self) -> None:
        rows = [signup_row("a@example.org", "Ada", "Lovelace", _prefs(["Culture A"]))]
        with self.assertLogs("BPA.bpa_io", level="WARNING"):
            students = self._read(rows)
        self.assertEqual(students[0].prefs[Block.ACADEMICS], (None,) * 5)

    def test_strict_mode_rejects_unknown_names(self) -> None:
        rows = [signup_row("a@example.org", "Ada", "Lovelace", _prefs(["Juggling"]))]
        with self.assertRaisesRegex(ValueError, "Juggling"):
            self._read(rows, strict=True)

    def test_short_row_is_invalid(self) -> None:
        with self.assertRaisesRegex(ValueError, "Invalid student: a@example.org"):
            self._read([["2024-09-01", "a@example.org", "Lovelace", "Ada"]])

    def test_duplicate_email(self) -> None:
        row = signup_row("a@example.org", "Ada", "Lovelace", _prefs([]))
        with self.assertRaisesRegex(ValueError, "Duplicate student"):
            self._read([row, row])

    def test_strict_run_writes_nothing_on_error(self) -> None:
        signups_csv = self.workdir / "signups.csv"
        write_signups(signups_csv, [signup_row("a@example.org", "Ada", "Lovelace", _prefs(["Juggling"]))])
        with self.assertRaises(ValueError):
            run_program_allocation(self.programs_csv, signups_csv, strict_prefs=True)


class TestEngineInputValidation(unittest.TestCase):
    def setUp(self) -> None:
        self.programs = [
            Program(program_id=0, name="Robotics", block=Block.ACADEMICS, min_cap=0, max_cap=2),
            Program(program_id=1, name="Choir", block=Block.CULTURE, min_cap=0, max_cap=2),
        ]

    def test_preference_for_other_block_program(self) -> None:
        students = [Student(student_id=0, name="S0", prefs={Block.ACADEMICS: (1, None, None, None, None)})]
        with self.assertRaises(ValueError):
            allocate_programs(self.programs, students)

    def test_preference_for_unknown_program(self) -> None:
        students = [Student(student_id=0, name="S0", prefs={Block.ACADEMICS: (7, None, None, None, None)})]
        with self.assertRaises(ValueError):
            allocate_programs(self.programs, students)

    def test_empty_catalog_leaves_every_block_unassigned(self) -> None:
        student = Student(student_id=0, name="S0", prefs={})
        result = allocate_programs([], [student])
        self.assertEqual(result.assignments, {0: {}})
        self.assertEqual(
            result.unassigned, [UnassignedRow(student_id=0, block=block) for block in BLOCK_ORDER]
        )
        self.assertEqual(result.summary.unassigned_slots, len(BLOCK_ORDER))
        self.assertEqual(result.scores, {0: 0})

    def test_no_students_gives_empty_result(self) -> None:
        result = allocate_programs(self.programs, [])
        self.assertEqual(result.assignments, {})
        self.assertEqual(result.rosters, {0: [], 1: []})
        self.assertEqual(result.placement_log, [])
        self.assertEqual(result.unassigned, [])
        self.assertEqual(result.summary.mean_score, 0.0)
        self.assertEqual(result.metrics_extended.values["score_gini"], 0.0)

    def test_duplicate_student_ids(self) -> None:
        students = [Student(student_id=0, name="S0", prefs={}), Student(student_id=0, name="S1", prefs={})]
        with self.assertRaises(ValueError):
            allocate_programs(self.programs, students)

    def test_negative_penalty(self) -> None:
        student = Student(student_id=0, name="S0", prefs={})
        with self.assertRaises(ValueError):
            allocate_programs(self.programs, [student], unranked_penalty=-1)


if __name__ == "__main__":
    unittest.main()
