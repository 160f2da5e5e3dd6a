import csv
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = PROJECT_ROOT / "data"
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from cube_helpers import count_set_bits
from path_helpers import resolve_puzzle_path
from puzzle_helpers import COLOR_BGR, RECORD_COLUMNS, load_puzzle

EXPECTED_PUZZLES = {
    "soma_cube.csv": ((3, 3, 3), 7),
    "two_slabs.csv": ((2, 2, 2), 2),
    "bar_cube.csv": ((3, 3, 3), 9),
}


class DataFileTests(unittest.TestCase):
    def test_expected_files_exist(self) -> None:
        for file_name in EXPECTED_PUZZLES:
            with self.subTest(file=file_name):
                self.assertTrue((DATA_DIR / file_name).exists())

    def test_headers(self) -> None:
        for file_name in EXPECTED_PUZZLES:
            with self.subTest(file=file_name):
                with (DATA_DIR / file_name).open(newline="") as file:
                    header = next(csv.reader(file))
                self.assertEqual(tuple(header), RECORD_COLUMNS)

    def test_puzzles_build(self) -> None:
        for file_name, (dims, piece_count) in EXPECTED_PUZZLES.items():
            with self.subTest(file=file_name):
                puzzle = load_puzzle(DATA_DIR / file_name)
                self.assertEqual(puzzle.dims, dims)
                self.assertEqual(len(puzzle.pieces), piece_count)
                self.assertEqual(sum(len(piece) for piece in puzzle.pieces), puzzle.cell_count)

                for piece in puzzle.pieces:
                    self.assertIn(piece.color, COLOR_BGR)
                    self.assertTrue(piece.placements, f"{piece.name} has no placements")
                    for placement in piece.placements:
                        self.assertEqual(count_set_bits(placement), len(piece))
                        self.assertEqual(placement & ~puzzle.full, 0)

    def test_resolve_bundled_names(self) -> None:
        expected = (DATA_DIR / "soma_cube.csv").resolve()
        self.assertEqual(resolve_puzzle_path("soma_cube").resolve(), expected)
        self.assertEqual(resolve_puzzle_path("soma_cube.csv").resolve(), expected)
        self.assertEqual(resolve_puzzle_path("no_such_puzzle.csv"), Path("no_such_puzzle.csv"))


if __name__ == "__main__":
    unittest.main()
