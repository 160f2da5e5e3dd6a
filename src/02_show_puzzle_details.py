import argparse
import logging

from cube_helpers import build_volume_symmetry_maps, cells_to_code, count_set_bits
from path_helpers import resolve_puzzle_path
from puzzle_helpers import (
    Puzzle,
    PuzzleDefinitionError,
    format_dims,
    load_puzzle,
    parse_dims,
    render_mask,
)
from solver_helpers import most_constrained_piece, symmetry_seeds

LOGGER = logging.getLogger(__name__)


def print_pieces(puzzle: Puzzle) -> None:
    print("\n=== PIECES ===")
    for piece in puzzle.pieces:
        print(
            f"{piece.piece_id}: {piece.name} ({piece.color}) cells {len(piece)} | "
            f"orientations {len(piece.orientations)} | placements {len(piece.placements)}"
        )
        print(f"  shape: {cells_to_code(piece.base)}")


def print_orientations(puzzle: Puzzle, name: str) -> None:
    matches = [piece for piece in puzzle.pieces if piece.name == name or piece.piece_id == name]
    if not matches:
        raise SystemExit(f"no piece named {name!r}")
    piece = matches[0]
    print(f"\n=== ORIENTATIONS: {piece.name} ===")
    for idx, orientation in enumerate(piece.orientations):
        print(f"orientation {idx}: {cells_to_code(orientation.cells)} (mask {orientation.mask})")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Show orientation and placement counts and the symmetry seeds of a puzzle."
    )
    parser.add_argument("puzzle", help="puzzle CSV or the name of a bundled puzzle")
    parser.add_argument("--dims", type=parse_dims, default=None, help="volume size like 2x2x3")
    parser.add_argument("--orientations", default=None, help="list the orientations of this piece (name or id)")
    parser.add_argument("--skip-seeds", action="store_true", help="do not render the symmetry seeds")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        puzzle = load_puzzle(resolve_puzzle_path(args.puzzle), dims=args.dims)

        print("=== PUZZLE ===")
        print(f"name: {puzzle.name}")
        print(f"dims: {format_dims(puzzle.dims)}")
        print(f"cells: {puzzle.cell_count}")
        print(f"pieces: {len(puzzle.pieces)}")
        print(f"placements: {sum(len(piece.placements) for piece in puzzle.pieces):,}")

        print_pieces(puzzle)

        if args.orientations:
            print_orientations(puzzle, args.orientations)

        constrained = most_constrained_piece(puzzle)
        seeds = symmetry_seeds(puzzle, constrained)

        print("\n=== SYMMETRY ===")
        print(f"volume_rotations: {len(build_volume_symmetry_maps(puzzle.dims))}")
        print(f"most_constrained: {puzzle.pieces[constrained].name}")
        print(f"seeds: {len(seeds)}")

        if not args.skip_seeds:
            print("\n=== SEEDS ===")
            for idx, seed in enumerate(seeds, start=1):
                print(f"seed {idx}: mask {seed:#x} ({count_set_bits(seed)} cells)")
                print(render_mask(puzzle.dims, seed))
    except PuzzleDefinitionError as exc:
        LOGGER.error("Invalid puzzle definition: %s", exc)
        raise SystemExit(1)
    except Exception:
        LOGGER.exception("Failed to show puzzle details")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
