"""Grid primitives shared by the board engines.

Grids are plain numpy arrays in row-major order. Helpers here never mutate
their inputs; anything that changes a grid returns a fresh array.
"""

from typing import Iterator, List, Tuple
import numpy as np

from .errors import InvalidCommandError

# 8-connected (Moore) neighborhood offsets
NEIGHBOR_OFFSETS = [
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1),           (0, 1),
    (1, -1),  (1, 0),  (1, 1),
]


def empty_grid(rows: int, cols: int, dtype=np.int64) -> np.ndarray:
    """Create a zero-filled ``rows x cols`` grid."""
    if rows <= 0 or cols <= 0:
        raise InvalidCommandError(f"Grid dimensions must be positive, got {rows}x{cols}")
    return np.zeros((rows, cols), dtype=dtype)


def in_bounds(shape: Tuple[int, ...], row: int, col: int) -> bool:
    return 0 <= row < shape[0] and 0 <= col < shape[1]


def is_index(value) -> bool:
    """Python or numpy integer, excluding bools and whole-number floats."""
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def check_cell(shape: Tuple[int, ...], row: int, col: int) -> Tuple[int, int]:
    """Validate a cell coordinate against a grid shape."""
    if not (is_index(row) and is_index(col)):
        raise InvalidCommandError(f"Cell coordinates must be integers, got ({row!r}, {col!r})")
    r, c = int(row), int(col)
    if not in_bounds(shape, r, c):
        raise InvalidCommandError(f"Cell ({row}, {col}) is outside the {shape[0]}x{shape[1]} grid")
    return r, c


def neighbors(shape: Tuple[int, ...], row: int, col: int) -> Iterator[Tuple[int, int]]:
    """Yield the in-bounds Moore neighbors of ``(row, col)``."""
    for dr, dc in NEIGHBOR_OFFSETS:
        nr, nc = row + dr, col + dc
        if in_bounds(shape, nr, nc):
            yield nr, nc


def neighbor_counts(mask: np.ndarray) -> np.ndarray:
    """Count set cells in each cell's Moore neighborhood (clipped at the edges)."""
    rows, cols = mask.shape
    padded = np.zeros((rows + 2, cols + 2), dtype=np.int64)
    padded[1:-1, 1:-1] = mask.astype(np.int64)

    counts = np.zeros((rows, cols), dtype=np.int64)
    for dr, dc in NEIGHBOR_OFFSETS:
        counts += padded[1 + dr:1 + dr + rows, 1 + dc:1 + dc + cols]
    return counts


def empty_cells(grid: np.ndarray) -> List[Tuple[int, int]]:
    """Coordinates of zero-valued cells in row-major order."""
    return [(int(r), int(c)) for r, c in zip(*np.where(grid == 0))]


def rotate(grid: np.ndarray, k: int) -> np.ndarray:
    """Rotate counter-clockwise ``k`` quarter turns (returns a copy)."""
    return np.rot90(grid, k % 4).copy()


def rotate_clockwise(shape: np.ndarray) -> np.ndarray:
    """Quarter turn clockwise: transpose, then reverse each row."""
    return shape.T[:, ::-1].copy()
