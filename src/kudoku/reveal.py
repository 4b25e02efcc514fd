"""reveal.py - Difficulty-dependent reveal-mask policies.

Two policies, both pure functions of (solution, symbols, difficulty, rng):
- fixed-target (box-constrained tiers): every syllabic cell revealed, then
  logographic cells up to the tier's total
- fixed-subset (box-free tier): syllabic cells are ordinary cells; a fixed
  number of distinct symbol values are revealed once each
"""
from __future__ import annotations
from typing import Optional, Sequence
import numpy as np

from .config import GRID_SIZE, REVEAL_TARGETS, box_free_reveal_count, is_box_free
from .rng import Rng, shuffle
from .symbols import is_syllabic


def fixed_target_mask(
    solution: np.ndarray, symbols: Sequence[str], target: int, rng: Rng
) -> np.ndarray:
    """Reveal all syllabic cells plus shuffled logographic cells up to target.

    Args:
        solution: (9, 9) values 1..len(symbols)
        symbols: Symbol set
        target: Total revealed cells wanted
        rng: Seeded generator

    Returns:
        (9, 9) bool mask

    Notes:
        - If the syllabic count already meets the target nothing else is revealed
        - Logographic candidates are listed row-major before shuffling
    """
    revealed = np.zeros((GRID_SIZE, GRID_SIZE), dtype=bool)
    hidden_candidates = []
    syllabic_count = 0
    for r in range(GRID_SIZE):
        for c in range(GRID_SIZE):
            if is_syllabic(symbols[int(solution[r, c]) - 1]):
                revealed[r, c] = True
                syllabic_count += 1
            else:
                hidden_candidates.append((r, c))

    remaining = max(0, target - syllabic_count)
    for r, c in shuffle(hidden_candidates, rng)[:remaining]:
        revealed[r, c] = True
    return revealed


def fixed_subset_mask(solution: np.ndarray, reveal_count: int, rng: Rng) -> np.ndarray:
    """Reveal one occurrence each of `reveal_count` distinct symbol values.

    Args:
        solution: (9, 9) values
        reveal_count: Distinct values to reveal
        rng: Seeded generator (values shuffled first, then one draw per value)

    Returns:
        (9, 9) bool mask with min(reveal_count, distinct values) True cells
    """
    revealed = np.zeros((GRID_SIZE, GRID_SIZE), dtype=bool)
    values = sorted(int(v) for v in np.unique(solution))
    for value in shuffle(values, rng)[:reveal_count]:
        cells = np.argwhere(solution == value)  # row-major
        r, c = cells[int(rng() * len(cells))]
        revealed[r, c] = True
    return revealed


def build_reveal_mask(
    solution: np.ndarray,
    symbols: Sequence[str],
    difficulty: str,
    rng: Rng,
    reveal_count: Optional[int] = None,
) -> np.ndarray:
    """Dispatch to the tier's reveal policy.

    Args:
        reveal_count: Box-free only; defaults to config.box_free_reveal_count()
    """
    if is_box_free(difficulty):
        if reveal_count is None:
            reveal_count = box_free_reveal_count()
        return fixed_subset_mask(solution, reveal_count, rng)
    return fixed_target_mask(solution, symbols, REVEAL_TARGETS[difficulty], rng)
