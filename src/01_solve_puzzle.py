import argparse
import logging
from pathlib import Path
from typing import Optional

from path_helpers import resolve_puzzle_path
from puzzle_helpers import PuzzleDefinitionError, load_puzzle, parse_dims, render_arrangement
from solver_helpers import (
    SearchContext,
    Solution,
    format_progress,
    format_summary,
    solve,
    write_solutions_csv,
)

LOGGER = logging.getLogger(__name__)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Find every way to pack a set of polycube pieces into a cube."
    )
    parser.add_argument("puzzle", help="puzzle CSV (name,color,shape) or the name of a bundled puzzle")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="print every solution as it is found",
    )
    parser.add_argument(
        "--dims",
        type=parse_dims,
        default=None,
        help="volume size like 2x2x3 (default: cube inferred from the piece cell count)",
    )
    parser.add_argument(
        "--max-solutions",
        type=int,
        default=0,
        help="stop after N solutions (0 means exhaustive search)",
    )
    parser.add_argument(
        "--no-symmetry-breaking",
        action="store_true",
        help="search every placement of every piece instead of pinning the most constrained piece",
    )
    parser.add_argument(
        "--solutions-out",
        default=None,
        help="write solutions to this CSV",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        max_solutions: Optional[int] = args.max_solutions if args.max_solutions and args.max_solutions > 0 else None

        puzzle = load_puzzle(resolve_puzzle_path(args.puzzle), dims=args.dims)

        def show_solution(solution: Solution, ctx: SearchContext) -> None:
            print(render_arrangement(puzzle, solution))
            print(format_progress(ctx))
            print()

        ctx = solve(
            puzzle,
            symmetry_breaking=not args.no_symmetry_breaking,
            max_solutions=max_solutions,
            on_solution=show_solution if args.verbose else None,
        )

        if args.solutions_out:
            solutions_path = Path(args.solutions_out)
            solutions_path.parent.mkdir(parents=True, exist_ok=True)
            write_solutions_csv(solutions_path, puzzle, ctx.solutions)
            LOGGER.info("wrote: %s", solutions_path)

        print(format_summary(ctx))
    except PuzzleDefinitionError as exc:
        LOGGER.error("Invalid puzzle definition: %s", exc)
        raise SystemExit(1)
    except Exception:
        LOGGER.exception("Failed to solve puzzle")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
