"""Geometry and bit helpers for packing polycubes into a rectangular volume."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Iterable, Iterator, List, Sequence, Tuple

Coord = Tuple[int, int, int]
Dims = Tuple[int, int, int]

LOGGER = logging.getLogger(__name__)

# =========================
# Index / coord helpers
# =========================
def cell_index(x: int, y: int, z: int, dims: Dims) -> int:
    """Convert (x, y, z) into a linear cell index (x varies fastest)."""
    size_x, size_y, _ = dims
    return z * size_y * size_x + y * size_x + x


def index_to_cell(index: int, dims: Dims) -> Coord:
    """Convert a linear cell index into (x, y, z)."""
    size_x, size_y, _ = dims
    z, rest = divmod(index, size_x * size_y)
    y, x = divmod(rest, size_x)
    return (x, y, z)


def volume_cell_count(dims: Dims) -> int:
    """Return the number of cells in a volume."""
    size_x, size_y, size_z = dims
    return size_x * size_y * size_z


def cells_to_code(cells: Iterable[Coord]) -> str:
    """Format cells in the puzzle file shape notation, e.g. '000-100'."""
    return "-".join(f"{x}{y}{z}" for x, y, z in cells)

# =========================
# Bit helpers
# =========================
def count_set_bits(value: int) -> int:
    """Return the number of set bits in value."""
    return bin(value).count("1")


def iter_set_bits(mask: int) -> Iterator[int]:
    """Yield set bit positions from a bitmask."""
    while mask:
        least_significant_bit = mask & -mask
        yield least_significant_bit.bit_length() - 1
        mask ^= least_significant_bit


def empty_mask() -> int:
    return 0


def get_bit(mask: int, index: int) -> bool:
    return (mask >> index) & 1 == 1


def set_bit(mask: int, index: int) -> int:
    return mask | (1 << index)


def union(first: int, second: int) -> int:
    return first | second


def intersection(first: int, second: int) -> int:
    return first & second


def xor_mask(first: int, second: int) -> int:
    """Toggle the bits of second in first (removes second when it is a subset)."""
    return first ^ second


def intersects(first: int, second: int) -> bool:
    return (first & second) != 0


def full_volume_mask(dims: Dims) -> int:
    """Return a bitmask with every cell of the volume set."""
    return (1 << volume_cell_count(dims)) - 1


def cells_to_bitmask(cells: Iterable[Coord], dims: Dims) -> int:
    """Convert an iterable of cells into a bitmask."""
    mask = 0
    for x, y, z in cells:
        mask |= 1 << cell_index(x, y, z, dims)
    return mask


def bitmask_to_cells(mask: int, dims: Dims) -> Tuple[Coord, ...]:
    """Convert a bitmask into a tuple of cells, in index order."""
    return tuple(index_to_cell(index, dims) for index in iter_set_bits(mask))

# =========================
# Rotations (24 proper rotations of the cube)
# =========================
def rotate_x(cell: Coord) -> Coord:
    """Quarter turn about the x axis."""
    x, y, z = cell
    return (x, -z, y)


def rotate_y(cell: Coord) -> Coord:
    """Quarter turn about the y axis."""
    x, y, z = cell
    return (z, y, -x)


def rotate_z(cell: Coord) -> Coord:
    """Quarter turn about the z axis."""
    x, y, z = cell
    return (-y, x, z)


QUARTER_TURNS = {"x": rotate_x, "y": rotate_y, "z": rotate_z}

# Turns that bring each of the six faces to +z.
FACE_TURNS: Tuple[Tuple[str, ...], ...] = (
    (),
    ("x",),
    ("x", "x"),
    ("x", "x", "x"),
    ("y",),
    ("y", "y", "y"),
)

# In-plane z turns first, then the face turn: 6 x 4 = 24 rotations.
ROTATIONS: Tuple[Tuple[str, ...], ...] = tuple(
    ("z",) * turns + face for face in FACE_TURNS for turns in range(4)
)


def apply_rotation(cells: Iterable[Coord], rotation: Sequence[str]) -> List[Coord]:
    """Apply a sequence of quarter turns to every cell."""
    rotated = list(cells)
    for axis in rotation:
        turn = QUARTER_TURNS[axis]
        rotated = [turn(cell) for cell in rotated]
    return rotated


def normalize_cells(cells: Iterable[Coord]) -> Tuple[Coord, ...]:
    """Shift cells so the minimum x/y/z is zero, sorted."""
    cells = list(cells)
    min_x = min(x for x, _, _ in cells)
    min_y = min(y for _, y, _ in cells)
    min_z = min(z for _, _, z in cells)
    return tuple(sorted((x - min_x, y - min_y, z - min_z) for x, y, z in cells))


def cells_extent(cells: Sequence[Coord]) -> Dims:
    """Return the bounding box size of a set of cells."""
    return (
        max(x for x, _, _ in cells) - min(x for x, _, _ in cells) + 1,
        max(y for _, y, _ in cells) - min(y for _, y, _ in cells) + 1,
        max(z for _, _, z in cells) - min(z for _, _, z in cells) + 1,
    )

# =========================
# Orientations
# =========================
class Orientation:
    """One rotation of a piece, normalized to the nonnegative octant.

    Identity is the bitmask of the cells embedded in a cube whose side is the
    largest bounding-box extent. That extent does not change under rotation,
    so every orientation of one piece shares the same reference frame. The
    mask is computed once here and compared afterwards.
    """

    __slots__ = ("cells", "extent", "mask", "key")

    def __init__(self, cells: Iterable[Coord]) -> None:
        self.cells = normalize_cells(cells)
        self.extent = cells_extent(self.cells)
        side = max(self.extent)
        self.mask = cells_to_bitmask(self.cells, (side, side, side))
        self.key = (side, self.mask)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Orientation):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __len__(self) -> int:
        return len(self.cells)

    def __repr__(self) -> str:
        return f"Orientation({cells_to_code(self.cells)})"


def unique_orientations(base: Sequence[Coord]) -> List[Orientation]:
    """Return every geometrically distinct rotation of a polycube, first-seen order."""
    seen = set()
    orientations: List[Orientation] = []
    for rotation in ROTATIONS:
        orientation = Orientation(apply_rotation(base, rotation))
        if orientation not in seen:
            seen.add(orientation)
            orientations.append(orientation)
    return orientations

# =========================
# Placements
# =========================
def orientation_placements(orientation: Orientation, dims: Dims) -> List[int]:
    """Return one mask per translation of the orientation that fits the volume."""
    size_x, size_y, size_z = dims
    extent_x, extent_y, extent_z = orientation.extent
    placements: List[int] = []
    for offset_x in range(size_x - extent_x + 1):
        for offset_y in range(size_y - extent_y + 1):
            for offset_z in range(size_z - extent_z + 1):
                mask = 0
                for x, y, z in orientation.cells:
                    mask |= 1 << cell_index(x + offset_x, y + offset_y, z + offset_z, dims)
                placements.append(mask)
    return placements


def piece_placements(orientations: Sequence[Orientation], dims: Dims) -> List[int]:
    """Concatenate the placements of every orientation of a piece."""
    placements: List[int] = []
    for orientation in orientations:
        placements.extend(orientation_placements(orientation, dims))

    duplicates = len(placements) - len(set(placements))
    if duplicates:
        LOGGER.warning("%s placements repeat an identical mask", duplicates)
    return placements

# =========================
# Volume symmetries
# =========================
@lru_cache(maxsize=None)
def build_volume_symmetry_maps(dims: Dims) -> Tuple[Tuple[int, ...], ...]:
    """Build index-to-index maps for every rotation that maps the volume onto itself."""
    cells = [index_to_cell(index, dims) for index in range(volume_cell_count(dims))]
    seen = set()
    symmetry_maps: List[Tuple[int, ...]] = []

    for rotation in ROTATIONS:
        rotated = apply_rotation(cells, rotation)
        if cells_extent(rotated) != dims:
            continue
        min_x = min(x for x, _, _ in rotated)
        min_y = min(y for _, y, _ in rotated)
        min_z = min(z for _, _, z in rotated)
        mapping = tuple(
            cell_index(x - min_x, y - min_y, z - min_z, dims) for x, y, z in rotated
        )
        # degenerate volumes (a side of 1) collapse several rotations
        if mapping not in seen:
            seen.add(mapping)
            symmetry_maps.append(mapping)

    return tuple(symmetry_maps)


def transform_mask(mask: int, symmetry_map: Sequence[int]) -> int:
    """Apply an index map to every set bit of a mask."""
    transformed = 0
    for index in iter_set_bits(mask):
        transformed |= 1 << symmetry_map[index]
    return transformed


def canonical_mask(mask: int, symmetry_maps: Sequence[Sequence[int]]) -> int:
    """Return the smallest image of mask under the given symmetries."""
    return min(transform_mask(mask, symmetry_map) for symmetry_map in symmetry_maps)


def canonical_placements(placements: Sequence[int], dims: Dims) -> List[int]:
    """Return one representative placement per orbit of the volume's rotations."""
    symmetry_maps = build_volume_symmetry_maps(dims)
    known = set(placements)
    representatives = {canonical_mask(placement, symmetry_maps) for placement in placements}
    return sorted(mask for mask in representatives if mask in known)
