"""rng.py - Seeded PRNG and shuffling.

Every randomized decision in generation draws from a stream seeded by a
human-readable label, so any single artifact is reproducible without
replaying the rest of the corpus.
"""
from __future__ import annotations
from typing import Callable, List, Sequence, TypeVar

from .utils.hash_utils import hash_label, UINT32_MASK

T = TypeVar("T")

Rng = Callable[[], float]

_MULBERRY_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0


def _imul(a: int, b: int) -> int:
    return (a * b) & UINT32_MASK


def seeded_rng(seed: int) -> Rng:
    """Return a mulberry32 generator producing floats in [0, 1).

    Args:
        seed: Unsigned 32-bit seed (wider values are masked)

    Returns:
        Zero-argument callable; each call advances the internal state

    Notes:
        - Same seed gives the same infinite sequence in every process
    """
    state = seed & UINT32_MASK

    def rng() -> float:
        nonlocal state
        state = (state + _MULBERRY_INCREMENT) & UINT32_MASK
        t = state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & UINT32_MASK
        return ((t ^ (t >> 14)) & UINT32_MASK) / _TWO_POW_32

    return rng


def rng_for(*parts: object) -> Rng:
    """Seed a generator from a label built out of parts joined by ':'."""
    return seeded_rng(hash_label(":".join(str(p) for p in parts)))


def shuffle(items: Sequence[T], rng: Rng) -> List[T]:
    """Fisher-Yates shuffle into a new list (input untouched)."""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = int(rng() * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result
