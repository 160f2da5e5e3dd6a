"""Backtracking exact-cover search over precomputed polycube placements."""

from __future__ import annotations

import csv
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from cube_helpers import (
    bitmask_to_cells,
    build_volume_symmetry_maps,
    canonical_placements,
    cells_to_code,
    iter_set_bits,
    transform_mask,
)
from puzzle_helpers import Puzzle

LOGGER = logging.getLogger(__name__)

Solution = Tuple[Tuple[int, int], ...]  # (piece_index, placement_mask) pairs

SOLUTION_FIELDS = [
    "solution_id",
    "piece_index",
    "piece_id",
    "piece_name",
    "placement_bitmask",
    "cells",
]

# =========================
# Arrangement
# =========================
class Arrangement:
    """Occupancy plus the ordered stack of committed placements."""

    def __init__(self) -> None:
        self.occupied = 0
        self.placements: List[Tuple[int, int]] = []

    def push(self, piece_index: int, placement: int) -> None:
        if self.occupied & placement:
            raise ValueError("placement overlaps the current arrangement")
        self.occupied |= placement
        self.placements.append((piece_index, placement))

    def pop(self) -> Optional[Tuple[int, int]]:
        if not self.placements:
            return None
        piece_index, placement = self.placements.pop()
        self.occupied ^= placement
        return piece_index, placement

    @contextmanager
    def placed(self, piece_index: int, placement: int) -> Iterator[None]:
        """Commit a placement for the duration of the block, undoing it on exit."""
        self.push(piece_index, placement)
        try:
            yield
        finally:
            self.pop()

    def snapshot(self) -> Solution:
        return tuple(self.placements)

    def __len__(self) -> int:
        return len(self.placements)

# =========================
# Search context
# =========================
class SearchContext:
    """Counters and accumulated solutions for one search run.

    While ``stabilizer`` holds the volume maps that fix the current seed, a
    solution is kept only if it is the smallest of its images under them, so
    rotated copies pinned to the same seed are counted once.
    """

    def __init__(
        self,
        max_solutions: Optional[int] = None,
        on_solution: Optional[Callable[[Solution, "SearchContext"], None]] = None,
    ) -> None:
        if max_solutions is not None and max_solutions < 0:
            raise ValueError(f"max_solutions must not be negative, got {max_solutions}")
        self.explored = 0
        self.solutions: List[Solution] = []
        # 0 means no limit, as on the command line
        self.max_solutions = max_solutions or None
        self.on_solution = on_solution
        self.stabilizer: Sequence[Sequence[int]] = ()
        self.start_time = time.time()
        self.end_time: Optional[float] = None

    @property
    def done(self) -> bool:
        return self.max_solutions is not None and len(self.solutions) >= self.max_solutions

    @property
    def elapsed(self) -> float:
        end_time = self.end_time if self.end_time is not None else time.time()
        return end_time - self.start_time

    @property
    def rate(self) -> Optional[float]:
        """Average seconds per solution, None before the first one."""
        if not self.solutions:
            return None
        return self.elapsed / len(self.solutions)

    def add_solution(self, arrangement: Arrangement) -> None:
        solution = arrangement.snapshot()
        if len(self.stabilizer) > 1 and canonical_solution(solution, self.stabilizer) != sorted_solution(solution):
            return
        self.solutions.append(solution)
        if self.on_solution is not None:
            self.on_solution(solution, self)


def sorted_solution(solution: Solution) -> Solution:
    return tuple(sorted(solution))


def canonical_solution(solution: Solution, symmetry_maps: Sequence[Sequence[int]]) -> Solution:
    """Return the smallest sorted image of a solution under the given symmetries."""
    return min(
        tuple(sorted((piece_index, transform_mask(placement, symmetry_map)) for piece_index, placement in solution))
        for symmetry_map in symmetry_maps
    )


def seed_stabilizer(seed: int, symmetry_maps: Sequence[Sequence[int]]) -> List[Sequence[int]]:
    """Return the symmetry maps that leave a placement unchanged."""
    return [symmetry_map for symmetry_map in symmetry_maps if transform_mask(seed, symmetry_map) == seed]


# =========================
# Feasibility checks
# =========================
def build_cover_map(puzzle: Puzzle) -> List[List[List[int]]]:
    """Index each piece's placements by the cells they cover, keeping list order."""
    cover_map: List[List[List[int]]] = []
    for piece in puzzle.pieces:
        per_cell: List[List[int]] = [[] for _ in range(puzzle.cell_count)]
        for placement in piece.placements:
            for index in iter_set_bits(placement):
                per_cell[index].append(placement)
        cover_map.append(per_cell)
    return cover_map


def has_full_coverage(puzzle: Puzzle, board: int, pieces: Sequence[int]) -> bool:
    """Return True if the free placements of pieces could still cover every cell.

    Overlaps between those placements are ignored, so this only rules boards out.
    """
    coverage = board
    for piece_index in pieces:
        for placement in puzzle.pieces[piece_index].placements:
            if not board & placement:
                coverage |= placement
                if coverage == puzzle.full:
                    return True
    return coverage == puzzle.full


def can_pieces_fit(puzzle: Puzzle, board: int, pieces: Sequence[int]) -> bool:
    """Return True if every piece, taken alone, still has a free placement."""
    for piece_index in pieces:
        if all(board & placement for placement in puzzle.pieces[piece_index].placements):
            return False
    return True


def next_empty_cell(occupied: int, full: int, prev: int) -> int:
    """Return the lowest empty cell at or above prev, or -1 if the board is full."""
    free = (full & ~occupied) >> prev << prev
    if not free:
        return -1
    return (free & -free).bit_length() - 1

# =========================
# Solver
# =========================
def solve_board(
    ctx: SearchContext,
    puzzle: Puzzle,
    cover_map: List[List[List[int]]],
    arrangement: Arrangement,
    prev: int,
    remaining: Tuple[int, ...],
) -> None:
    """Depth-first search from the current arrangement.

    Cells below prev are filled: only the latest placement is ever undone.
    """
    ctx.explored += 1

    if not remaining:
        ctx.add_solution(arrangement)
        return

    cell = next_empty_cell(arrangement.occupied, puzzle.full, prev)
    if cell < 0:
        return

    occupied = arrangement.occupied
    for position, piece_index in enumerate(remaining):
        others = remaining[:position] + remaining[position + 1:]
        for placement in cover_map[piece_index][cell]:
            if occupied & placement:
                continue
            board = occupied | placement
            if not has_full_coverage(puzzle, board, others):
                continue
            if not can_pieces_fit(puzzle, board, others):
                continue
            with arrangement.placed(piece_index, placement):
                solve_board(ctx, puzzle, cover_map, arrangement, cell, others)
            if ctx.done:
                return


def most_constrained_piece(puzzle: Puzzle) -> int:
    """Index of the piece with the fewest placements (first one on ties)."""
    return min(range(len(puzzle.pieces)), key=lambda index: len(puzzle.pieces[index].placements))


def symmetry_seeds(puzzle: Puzzle, piece_index: int) -> List[int]:
    """Starting placements for a piece, one per orbit of the volume's rotations."""
    return canonical_placements(puzzle.pieces[piece_index].placements, puzzle.dims)


def solve(
    puzzle: Puzzle,
    symmetry_breaking: bool = True,
    max_solutions: Optional[int] = None,
    on_solution: Optional[Callable[[Solution, SearchContext], None]] = None,
) -> SearchContext:
    """Find every tiling of the puzzle volume. Optionally stop after max_solutions.

    With symmetry breaking the most constrained piece is pinned to each of its
    symmetry seeds in turn, so rotated copies of a solution are not revisited.
    Solutions reached through a seed that is itself symmetric are kept only in
    their canonical form under that seed's stabilizer.
    """
    ctx = SearchContext(max_solutions=max_solutions, on_solution=on_solution)
    cover_map = build_cover_map(puzzle)
    arrangement = Arrangement()
    pieces = tuple(range(len(puzzle.pieces)))

    if not symmetry_breaking:
        solve_board(ctx, puzzle, cover_map, arrangement, 0, pieces)
    else:
        constrained = most_constrained_piece(puzzle)
        seeds = symmetry_seeds(puzzle, constrained)
        remaining = tuple(index for index in pieces if index != constrained)
        LOGGER.info(
            "Pinning %s to %s of %s placements",
            puzzle.pieces[constrained].name,
            len(seeds),
            len(puzzle.pieces[constrained].placements),
        )
        symmetry_maps = build_volume_symmetry_maps(puzzle.dims)
        for seed in seeds:
            ctx.stabilizer = seed_stabilizer(seed, symmetry_maps)
            with arrangement.placed(constrained, seed):
                solve_board(ctx, puzzle, cover_map, arrangement, 0, remaining)
            if ctx.done:
                break
        ctx.stabilizer = ()

    ctx.end_time = time.time()
    LOGGER.debug("search finished: %s solutions, %s explored", len(ctx.solutions), ctx.explored)
    return ctx

# =========================
# Reporting
# =========================
def format_duration(seconds: float) -> str:
    if seconds >= 1:
        return f"{seconds:.2f}s"
    if seconds >= 1e-3:
        return f"{seconds * 1e3:.2f}ms"
    return f"{seconds * 1e6:.2f}µs"


def format_progress(ctx: SearchContext) -> str:
    rate = format_duration(ctx.rate) if ctx.rate is not None else "n/a"
    return (
        f"Solutions: {len(ctx.solutions):,} Explored: {ctx.explored:,} "
        f"[rate {rate} per solution]"
    )


def format_summary(ctx: SearchContext) -> str:
    rate = format_duration(ctx.rate) if ctx.rate is not None else "n/a"
    return (
        f"Solutions: {len(ctx.solutions):,} Explored: {ctx.explored:,} "
        f"Time: {format_duration(ctx.elapsed)} [rate {rate} per solution]"
    )


def write_solutions_csv(path: Union[str, Path], puzzle: Puzzle, solutions: Sequence[Solution]) -> None:
    """Write one row per placed piece per solution."""
    with open(path, "w", newline="") as output_file:
        writer = csv.DictWriter(output_file, fieldnames=SOLUTION_FIELDS)
        writer.writeheader()
        for solution_id, solution in enumerate(solutions, start=1):
            for piece_index, placement in solution:
                piece = puzzle.pieces[piece_index]
                writer.writerow(
                    {
                        "solution_id": solution_id,
                        "piece_index": piece_index,
                        "piece_id": piece.piece_id,
                        "piece_name": piece.name,
                        "placement_bitmask": placement,
                        "cells": cells_to_code(bitmask_to_cells(placement, puzzle.dims)),
                    }
                )


def read_solutions_csv(path: Union[str, Path]) -> Dict[int, Solution]:
    """Read solutions written by write_solutions_csv, keyed by solution id."""
    grouped: Dict[int, List[Tuple[int, int]]] = {}
    with open(path, "r", newline="") as input_file:
        reader = csv.DictReader(input_file)
        for row in reader:
            solution_id = int(row["solution_id"])
            grouped.setdefault(solution_id, []).append(
                (int(row["piece_index"]), int(row["placement_bitmask"]))
            )
    return {solution_id: tuple(placements) for solution_id, placements in grouped.items()}
