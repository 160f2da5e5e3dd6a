"""Shared path helpers for scripts."""

from __future__ import annotations

from pathlib import Path
from typing import Union

BASE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = BASE_DIR.parent
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = PROJECT_ROOT / "output"

DEFAULT_SOLUTIONS_CSV = OUTPUT_DIR / "solutions.csv"


def ensure_output_dir() -> Path:
    """Ensure the output directory exists and return it."""
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    return OUTPUT_DIR


def resolve_puzzle_path(value: Union[str, Path]) -> Path:
    """Return value as a path, falling back to a bundled puzzle in data/.

    'soma_cube' and 'soma_cube.csv' both resolve to data/soma_cube.csv when no
    such file exists relative to the working directory.
    """
    path = Path(value)
    if path.exists():
        return path
    candidate = DATA_DIR / path.name
    if not candidate.suffix:
        candidate = candidate.with_suffix(".csv")
    if candidate.exists():
        return candidate
    return path
