import argparse
import logging
from pathlib import Path
from typing import Sequence, Tuple

import cv2
import numpy as np

from cube_helpers import index_to_cell, iter_set_bits
from path_helpers import DEFAULT_SOLUTIONS_CSV, ensure_output_dir, resolve_puzzle_path
from puzzle_helpers import COLOR_BGR, Puzzle, PuzzleDefinitionError, load_puzzle, parse_dims
from solver_helpers import read_solutions_csv

LOGGER = logging.getLogger(__name__)


def render_solution_image(
    puzzle: Puzzle,
    placements: Sequence[Tuple[int, int]],
    cell_size: int = 40,
    margin: int = 20,
) -> np.ndarray:
    """Render a solution as z slices side by side, top y row first."""
    size_x, size_y, size_z = puzzle.dims
    slice_width = size_x * cell_size
    slice_height = size_y * cell_size
    img_width = margin + size_z * (slice_width + margin)
    img_height = slice_height + margin * 2
    img = np.full((img_height, img_width, 3), 255, dtype=np.uint8)

    # Fill piece placements
    for piece_index, placement in placements:
        piece = puzzle.pieces[piece_index]
        color = COLOR_BGR[piece.color]
        for cell_index in iter_set_bits(placement):
            x, y, z = index_to_cell(cell_index, puzzle.dims)
            x1 = margin + z * (slice_width + margin) + x * cell_size
            y1 = margin + (size_y - 1 - y) * cell_size
            cv2.rectangle(img, (x1 + 2, y1 + 2), (x1 + cell_size - 2, y1 + cell_size - 2), color, -1)
            cv2.putText(
                img,
                piece.piece_id,
                (x1 + cell_size // 3, y1 + (cell_size * 2) // 3),
                cv2.FONT_HERSHEY_SIMPLEX,
                cell_size / 80,
                (0, 0, 0),
                1,
            )

    # Draw grid per slice
    for z in range(size_z):
        left = margin + z * (slice_width + margin)
        for i in range(size_x + 1):
            x = left + i * cell_size
            cv2.line(img, (x, margin), (x, margin + slice_height), (0, 0, 0), 2)
        for i in range(size_y + 1):
            y = margin + i * cell_size
            cv2.line(img, (left, y), (left + slice_width, y), (0, 0, 0), 2)

    return img


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Render solutions written by 01_solve_puzzle.py as PNG images."
    )
    parser.add_argument("puzzle", help="puzzle CSV or the name of a bundled puzzle")
    parser.add_argument(
        "--solutions",
        default=str(DEFAULT_SOLUTIONS_CSV),
        help="solutions CSV from 01_solve_puzzle.py --solutions-out",
    )
    parser.add_argument(
        "--images-dir",
        default=None,
        help="directory for the rendered images (default: output/images)",
    )
    parser.add_argument("--dims", type=parse_dims, default=None, help="volume size like 2x2x3")
    parser.add_argument("--limit", type=int, default=0, help="render at most N solutions (0 = all)")
    parser.add_argument("--cell-size", type=int, default=40, help="cell size in pixels")
    parser.add_argument("--margin", type=int, default=20, help="margin in pixels")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        puzzle = load_puzzle(resolve_puzzle_path(args.puzzle), dims=args.dims)
        solutions = read_solutions_csv(args.solutions)

        if args.images_dir is None:
            images_dir = ensure_output_dir() / "images"
        else:
            images_dir = Path(args.images_dir)
        images_dir.mkdir(parents=True, exist_ok=True)

        rendered = 0
        for solution_id, placements in sorted(solutions.items()):
            if args.limit > 0 and rendered >= args.limit:
                break
            if any(not 0 <= piece_index < len(puzzle.pieces) for piece_index, _ in placements):
                raise ValueError(f"solution {solution_id} references a piece not in {puzzle.name}")

            img = render_solution_image(puzzle, placements, cell_size=args.cell_size, margin=args.margin)
            out_path = images_dir / f"solution_{solution_id:04d}.png"
            cv2.imwrite(str(out_path), img)
            rendered += 1

        LOGGER.info("rendered %s images to %s", rendered, images_dir)
    except PuzzleDefinitionError as exc:
        LOGGER.error("Invalid puzzle definition: %s", exc)
        raise SystemExit(1)
    except Exception:
        LOGGER.exception("Failed to render solutions")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
