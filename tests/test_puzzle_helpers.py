import sys
import tempfile
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from puzzle_helpers import (
    DEFAULT_COLOR,
    MalformedRecordError,
    PieceRecord,
    PuzzleDefinitionError,
    VolumeMismatchError,
    build_puzzle,
    infer_cube_dims,
    load_puzzle,
    normalize_color,
    parse_dims,
    parse_shape,
    read_puzzle_csv,
    render_arrangement,
    render_mask,
)

SQUARE = ((0, 0, 0), (1, 0, 0), (0, 1, 0), (1, 1, 0))


def write_puzzle(directory: str, text: str, name: str = "puzzle.csv") -> Path:
    path = Path(directory) / name
    path.write_text(text)
    return path


class ParseTests(unittest.TestCase):
    def test_parse_shape(self) -> None:
        self.assertEqual(parse_shape("000-100-012", 2), ((0, 0, 0), (1, 0, 0), (0, 1, 2)))

    def test_parse_shape_rejects_bad_codes(self) -> None:
        for text in ("", "00-100", "000-1a0", "000-1000", "000--100"):
            with self.subTest(shape=text):
                with self.assertRaises(MalformedRecordError) as ctx:
                    parse_shape(text, 4)
                self.assertEqual(ctx.exception.row, 4)
                self.assertEqual(ctx.exception.column, "shape")

    def test_parse_shape_rejects_repeated_cells(self) -> None:
        with self.assertRaises(MalformedRecordError):
            parse_shape("000-100-000", 2)

    def test_parse_dims(self) -> None:
        self.assertEqual(parse_dims("2x3x4"), (2, 3, 4))
        self.assertEqual(parse_dims("4X4X4"), (4, 4, 4))
        for value in ("2x3", "axbxc", "0x1x1"):
            with self.subTest(dims=value):
                with self.assertRaises(ValueError):
                    parse_dims(value)

    def test_normalize_color(self) -> None:
        self.assertEqual(normalize_color("Bright Blue"), "bright_blue")
        self.assertEqual(normalize_color("purple"), "magenta")
        with self.assertLogs("puzzle_helpers", level="WARNING"):
            self.assertEqual(normalize_color("chartreuse"), DEFAULT_COLOR)


class ReadPuzzleTests(unittest.TestCase):
    def test_reads_records_after_header(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_puzzle(temp_dir, "name,color,shape\nA,red,000-100\n\nB,blue,000\n")
            records = read_puzzle_csv(path)

        self.assertEqual(
            records,
            [
                PieceRecord("A", "red", ((0, 0, 0), (1, 0, 0))),
                PieceRecord("B", "blue", ((0, 0, 0),)),
            ],
        )

    def test_reports_row_and_column_of_bad_shape(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_puzzle(temp_dir, "name,color,shape\nA,red,000-100\nB,blue,0x0\n")
            with self.assertRaises(MalformedRecordError) as ctx:
                read_puzzle_csv(path)

        self.assertEqual(ctx.exception.row, 3)
        self.assertEqual(ctx.exception.column, "shape")
        self.assertIn("row 3", str(ctx.exception))

    def test_reports_wrong_column_count(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_puzzle(temp_dir, "name,color,shape\nA,red\n")
            with self.assertRaises(MalformedRecordError) as ctx:
                read_puzzle_csv(path)

        self.assertEqual(ctx.exception.row, 2)
        self.assertIn("expected 3 columns", ctx.exception.reason)

    def test_headerless_file_is_rejected_at_row_one(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_puzzle(temp_dir, "A,red,000-100\nB,blue,000\n")
            with self.assertRaises(MalformedRecordError) as ctx:
                read_puzzle_csv(path)

        self.assertEqual(ctx.exception.row, 1)
        self.assertIn("expected header name,color,shape", ctx.exception.reason)

    def test_header_is_case_and_space_insensitive(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_puzzle(temp_dir, "Name, Color ,SHAPE\nA,red,000\n")
            records = read_puzzle_csv(path)

        self.assertEqual(records, [PieceRecord("A", "red", ((0, 0, 0),))])

    def test_missing_file_raises_os_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(OSError):
                read_puzzle_csv(Path(temp_dir) / "missing.csv")

    def test_empty_file_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_puzzle(temp_dir, "")
            with self.assertRaises(PuzzleDefinitionError):
                read_puzzle_csv(path)


class BuildPuzzleTests(unittest.TestCase):
    def test_infers_cube_dims(self) -> None:
        self.assertEqual(infer_cube_dims(8), (2, 2, 2))
        self.assertEqual(infer_cube_dims(64), (4, 4, 4))

    def test_rejects_cell_total_that_is_not_a_cube(self) -> None:
        records = [PieceRecord("A", "red", SQUARE), PieceRecord("B", "blue", SQUARE[:3])]
        with self.assertRaises(VolumeMismatchError) as ctx:
            build_puzzle(records)

        self.assertEqual(ctx.exception.total_cells, 7)
        self.assertEqual(ctx.exception.expected_cells, 8)

    def test_rejects_dims_that_do_not_match(self) -> None:
        records = [PieceRecord("A", "red", SQUARE), PieceRecord("B", "blue", SQUARE)]
        with self.assertRaises(VolumeMismatchError) as ctx:
            build_puzzle(records, dims=(3, 3, 1))

        self.assertEqual(ctx.exception.total_cells, 8)
        self.assertEqual(ctx.exception.expected_cells, 9)

    def test_rejects_empty_piece_list(self) -> None:
        with self.assertRaises(PuzzleDefinitionError):
            build_puzzle([])

    def test_builds_pieces_with_placements(self) -> None:
        records = [PieceRecord("A", "red", SQUARE), PieceRecord("B", "blue", SQUARE)]
        puzzle = build_puzzle(records, name="slabs")

        self.assertEqual(puzzle.dims, (2, 2, 2))
        self.assertEqual(puzzle.full, 0xFF)
        self.assertEqual([piece.piece_id for piece in puzzle.pieces], ["0", "1"])
        self.assertEqual([len(piece.placements) for piece in puzzle.pieces], [6, 6])
        self.assertEqual(len(puzzle.pieces[0].orientations), 3)

    def test_cuboid_dims(self) -> None:
        records = [PieceRecord("A", "red", SQUARE), PieceRecord("B", "blue", SQUARE)]
        puzzle = build_puzzle(records, dims=(2, 4, 1))

        self.assertEqual(puzzle.cell_count, 8)
        self.assertEqual([len(piece.placements) for piece in puzzle.pieces], [3, 3])

    def test_load_puzzle_uses_file_stem_as_name(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = write_puzzle(
                temp_dir,
                "name,color,shape\nA,red,000-100-010-110\nB,blue,000-100-010-110\n",
                name="slabs.csv",
            )
            puzzle = load_puzzle(path)

        self.assertEqual(puzzle.name, "slabs")
        self.assertEqual(puzzle.cell_count, 8)


class RenderTests(unittest.TestCase):
    def test_render_arrangement(self) -> None:
        records = [PieceRecord("A", "red", SQUARE), PieceRecord("B", "blue", SQUARE)]
        puzzle = build_puzzle(records)

        text = render_arrangement(puzzle, [(0, 0x0F), (1, 0xF0)])

        self.assertEqual(text, "0 0  1 1\n0 0  1 1")

    def test_render_partial_arrangement(self) -> None:
        records = [PieceRecord("A", "red", SQUARE), PieceRecord("B", "blue", SQUARE)]
        puzzle = build_puzzle(records)

        self.assertEqual(render_arrangement(puzzle, [(1, 0x33)]), ". .  . .\n1 1  1 1")

    def test_render_mask(self) -> None:
        self.assertEqual(render_mask((2, 2, 2), 0b1), ". .  . .\nX .  . .")


if __name__ == "__main__":
    unittest.main()
