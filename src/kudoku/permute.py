"""permute.py - Base grid and structure-preserving permutations.

Implements:
- build_base_grid: canonical 9x9 Latin square with valid 3x3 boxes
- build_permutation: band/stack permutation (box-constrained tiers) or a free
  permutation of all nine indices (box-free tier)
- permute_grid: grid[r][c] = base[rows[r]][cols[c]]
- apply_symbols: map solution values through a symbol set

Permutations come from shuffles of complete index sets, so they are always
well-formed and need no runtime validation.
"""
from __future__ import annotations
from typing import Sequence
import numpy as np

from .config import BOX_SIZE, GRID_DTYPE, GRID_SIZE, is_box_free
from .rng import Rng, shuffle
from .types import PermutationSpec, Template


def build_base_grid() -> np.ndarray:
    """Return the canonical grid value(r, c) = ((r*3 + r//3 + c) mod 9) + 1."""
    r = np.arange(GRID_SIZE, dtype=GRID_DTYPE).reshape(-1, 1)
    c = np.arange(GRID_SIZE, dtype=GRID_DTYPE).reshape(1, -1)
    grid = ((r * BOX_SIZE + r // BOX_SIZE + c) % GRID_SIZE) + 1
    return grid.astype(GRID_DTYPE)


BASE_GRID = build_base_grid()
BASE_GRID.setflags(write=False)


def _band_permutation(rng: Rng) -> tuple:
    bands = shuffle(range(BOX_SIZE), rng)
    out = []
    for band in bands:
        out.extend(band * BOX_SIZE + offset for offset in shuffle(range(BOX_SIZE), rng))
    return tuple(out)


def build_permutation(difficulty: str, rng: Rng) -> PermutationSpec:
    """Draw row and column permutations for a difficulty.

    Args:
        difficulty: Tier name
        rng: Seeded generator (rows drawn before columns)

    Returns:
        PermutationSpec

    Notes:
        - Box-constrained: bands shuffled, then rows within each band, so
          3x3 box uniqueness survives
        - Box-free: all nine indices shuffled freely (boxes not preserved)
    """
    if is_box_free(difficulty):
        rows = tuple(shuffle(range(GRID_SIZE), rng))
        cols = tuple(shuffle(range(GRID_SIZE), rng))
        return PermutationSpec(rows, cols)
    rows = _band_permutation(rng)
    cols = _band_permutation(rng)
    return PermutationSpec(rows, cols)


def permute_grid(base: np.ndarray, row_perm: Sequence[int], col_perm: Sequence[int]) -> np.ndarray:
    """Apply row/column permutations: grid[r][c] = base[row_perm[r]][col_perm[c]]."""
    return np.asarray(base)[np.ix_(list(row_perm), list(col_perm))].astype(GRID_DTYPE)


def apply_symbols(grid: np.ndarray, symbols: Sequence[str]) -> Template:
    """Render a value grid as 9 row strings through the symbol bijection."""
    lookup = np.asarray(list(symbols), dtype=object)
    rendered = lookup[np.asarray(grid) - 1]
    return tuple("".join(row) for row in rendered)
