"""Puzzle model: piece definitions, volume assembly and text rendering."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from cube_helpers import (
    Coord,
    Dims,
    Orientation,
    cell_index,
    full_volume_mask,
    get_bit,
    iter_set_bits,
    piece_placements,
    unique_orientations,
    volume_cell_count,
)

LOGGER = logging.getLogger(__name__)

RECORD_COLUMNS = ("name", "color", "shape")
SHAPE_SEPARATOR = "-"
DIGITS = "0123456789"

# =========================
# Colors (BGR, as OpenCV expects)
# =========================
DEFAULT_COLOR = "bright_red"

COLOR_BGR: Dict[str, Tuple[int, int, int]] = {
    "black": (40, 40, 40),
    "red": (43, 57, 192),
    "green": (96, 174, 39),
    "yellow": (15, 196, 241),
    "blue": (185, 128, 41),
    "magenta": (182, 89, 155),
    "cyan": (156, 188, 26),
    "white": (236, 240, 241),
    "bright_black": (141, 140, 127),
    "bright_red": (60, 76, 231),
    "bright_green": (113, 204, 46),
    "bright_yellow": (84, 241, 255),
    "bright_blue": (219, 152, 52),
    "bright_magenta": (214, 112, 218),
    "bright_cyan": (230, 230, 80),
    "bright_white": (255, 255, 255),
}

COLOR_ALIASES = {"purple": "magenta", "bright_purple": "bright_magenta"}

# =========================
# Errors
# =========================
class PuzzleDefinitionError(ValueError):
    """Base class for problems with a puzzle definition."""


class MalformedRecordError(PuzzleDefinitionError):
    def __init__(self, row: int, column: str, reason: str) -> None:
        self.row = row
        self.column = column
        self.reason = reason
        super().__init__(f"row {row}, column '{column}': {reason}")


class VolumeMismatchError(PuzzleDefinitionError):
    def __init__(self, total_cells: int, expected_cells: int, dims: Dims) -> None:
        self.total_cells = total_cells
        self.expected_cells = expected_cells
        self.dims = dims
        super().__init__(
            f"pieces cover {total_cells} cells but a {format_dims(dims)} volume "
            f"has {expected_cells}"
        )

# =========================
# Model
# =========================
class PieceRecord(NamedTuple):
    name: str
    color: str
    shape: Tuple[Coord, ...]


class Piece:
    """A puzzle piece with every orientation and placement precomputed."""

    def __init__(
        self,
        name: str,
        piece_id: str,
        color: str,
        base: Tuple[Coord, ...],
        orientations: List[Orientation],
        placements: List[int],
    ) -> None:
        self.name = name
        self.piece_id = piece_id
        self.color = color
        self.base = base
        self.orientations = orientations
        self.placements = placements

    def __len__(self) -> int:
        return len(self.base)

    def __repr__(self) -> str:
        return f"Piece({self.name!r}, orientations={len(self.orientations)}, placements={len(self.placements)})"


class Puzzle:
    def __init__(self, name: str, dims: Dims, pieces: List[Piece]) -> None:
        self.name = name
        self.dims = dims
        self.pieces = pieces
        self.full = full_volume_mask(dims)

    @property
    def cell_count(self) -> int:
        return volume_cell_count(self.dims)

    def __repr__(self) -> str:
        return f"Puzzle({self.name!r}, dims={format_dims(self.dims)}, pieces={len(self.pieces)})"

# =========================
# Parsing
# =========================
def format_dims(dims: Dims) -> str:
    return "x".join(str(size) for size in dims)


def parse_dims(value: str) -> Dims:
    """Parse a volume size like '4x4x4'."""
    parts = value.lower().replace("*", "x").split("x")
    if len(parts) != 3 or not all(part.strip().isdigit() for part in parts):
        raise ValueError(f"invalid dims: {value!r} (expected e.g. 4x4x4)")
    size_x, size_y, size_z = (int(part) for part in parts)
    if min(size_x, size_y, size_z) < 1:
        raise ValueError(f"invalid dims: {value!r} (sizes must be positive)")
    return (size_x, size_y, size_z)


def normalize_color(label: str) -> str:
    """Map a free-text color label onto a known color name."""
    color = "_".join(label.strip().lower().replace("-", " ").split())
    color = COLOR_ALIASES.get(color, color)
    if color not in COLOR_BGR:
        LOGGER.warning("Unknown color %r; using %s", label, DEFAULT_COLOR)
        return DEFAULT_COLOR
    return color


def parse_shape(text: str, row: int) -> Tuple[Coord, ...]:
    """Parse a shape like '000-100-010' into cells."""
    if not text.strip():
        raise MalformedRecordError(row, "shape", "empty shape")

    cells: List[Coord] = []
    for code in text.split(SHAPE_SEPARATOR):
        code = code.strip()
        if len(code) != 3 or any(char not in DIGITS for char in code):
            raise MalformedRecordError(row, "shape", f"invalid cell code {code!r} (expected 3 digits)")
        cells.append((int(code[0]), int(code[1]), int(code[2])))

    if len(set(cells)) != len(cells):
        raise MalformedRecordError(row, "shape", "shape repeats a cell")
    return tuple(cells)


def parse_records(rows: Iterable[Tuple[int, Sequence[str]]]) -> List[PieceRecord]:
    """Parse (row_number, columns) pairs into piece records."""
    records: List[PieceRecord] = []
    for row_number, row in rows:
        if len(row) != len(RECORD_COLUMNS):
            raise MalformedRecordError(
                row_number,
                ",".join(RECORD_COLUMNS),
                f"expected {len(RECORD_COLUMNS)} columns, got {len(row)}",
            )
        name, color, shape = row
        if not name.strip():
            raise MalformedRecordError(row_number, "name", "empty piece name")
        records.append(PieceRecord(name.strip(), normalize_color(color), parse_shape(shape, row_number)))
    return records


def read_puzzle_csv(path: Union[str, Path]) -> List[PieceRecord]:
    """Read piece records from a puzzle CSV (header row, then name,color,shape)."""
    with open(path, "r", newline="") as input_file:
        reader = csv.reader(input_file)
        header = next(reader, None)
        if header is None:
            raise PuzzleDefinitionError(f"{path}: empty puzzle file")
        if tuple(column.strip().lower() for column in header) != RECORD_COLUMNS:
            raise MalformedRecordError(
                reader.line_num,
                ",".join(RECORD_COLUMNS),
                f"expected header {','.join(RECORD_COLUMNS)}, got {','.join(header)}",
            )

        def iter_rows():
            for row in reader:
                if not row or not any(cell.strip() for cell in row):
                    continue
                yield reader.line_num, row

        return parse_records(iter_rows())

# =========================
# Assembly
# =========================
def infer_cube_dims(total_cells: int) -> Dims:
    """Return the cube whose cell count equals total_cells."""
    side = round(total_cells ** (1 / 3))
    dims = (side, side, side)
    if side < 1 or volume_cell_count(dims) != total_cells:
        expected = max(side, 1)
        raise VolumeMismatchError(total_cells, expected ** 3, (expected,) * 3)
    return dims


def build_puzzle(
    records: Sequence[PieceRecord],
    dims: Optional[Dims] = None,
    name: str = "puzzle",
) -> Puzzle:
    """Build a puzzle, precomputing every placement of every piece."""
    if not records:
        raise PuzzleDefinitionError("puzzle defines no pieces")

    total_cells = sum(len(record.shape) for record in records)
    if dims is None:
        dims = infer_cube_dims(total_cells)
    elif volume_cell_count(dims) != total_cells:
        raise VolumeMismatchError(total_cells, volume_cell_count(dims), dims)

    pieces: List[Piece] = []
    for index, record in enumerate(records):
        orientations = unique_orientations(record.shape)
        placements = piece_placements(orientations, dims)
        if not placements:
            LOGGER.warning("Piece %s does not fit in a %s volume", record.name, format_dims(dims))
        pieces.append(
            Piece(
                name=record.name,
                piece_id=format(index, "X"),
                color=record.color,
                base=record.shape,
                orientations=orientations,
                placements=placements,
            )
        )

    LOGGER.info(
        "%s: %s pieces in a %s volume, %s placements",
        name,
        len(pieces),
        format_dims(dims),
        f"{sum(len(piece.placements) for piece in pieces):,}",
    )
    return Puzzle(name, dims, pieces)


def load_puzzle(path: Union[str, Path], dims: Optional[Dims] = None) -> Puzzle:
    """Read a puzzle CSV and build the puzzle model."""
    records = read_puzzle_csv(path)
    return build_puzzle(records, dims=dims, name=Path(path).stem)

# =========================
# Text rendering
# =========================
def render_cells(dims: Dims, label_for_index: Callable[[int], str]) -> str:
    """Render the volume row by row: top y first, z slices side by side."""
    size_x, size_y, size_z = dims
    lines = []
    for y in reversed(range(size_y)):
        slices = []
        for z in range(size_z):
            slices.append(" ".join(label_for_index(cell_index(x, y, z, dims)) for x in range(size_x)))
        lines.append("  ".join(slices))
    return "\n".join(lines)


def render_arrangement(puzzle: Puzzle, placements: Sequence[Tuple[int, int]]) -> str:
    """Render placed pieces by their ids; empty cells are '.'."""
    width = max(len(piece.piece_id) for piece in puzzle.pieces)
    owner: Dict[int, str] = {}
    for piece_index, placement in placements:
        label = puzzle.pieces[piece_index].piece_id.rjust(width)
        for index in iter_set_bits(placement):
            owner[index] = label
    return render_cells(puzzle.dims, lambda index: owner.get(index, ".".rjust(width)))


def render_mask(dims: Dims, mask: int) -> str:
    """Render a bare bitmask with 'X' for set cells."""
    return render_cells(dims, lambda index: "X" if get_bit(mask, index) else ".")
