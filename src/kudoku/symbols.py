"""symbols.py - Character classes and template/solution helpers.

Syllabic symbols (kana) are always pre-revealed on box-constrained tiers;
logographic symbols (kanji and everything else) are candidates for hiding.
"""
from __future__ import annotations
from typing import Dict, List, Sequence, Tuple
import numpy as np

from .config import EXTRA_JAPANESE, GRID_DTYPE, GRID_SIZE, KANA_RANGES, KANJI_RANGES
from .errors import MalformedInputError


def _in_ranges(code_point: int, ranges) -> bool:
    return any(lo <= code_point <= hi for lo, hi in ranges)


def is_syllabic(symbol: str) -> bool:
    """True if the symbol's first code point is hiragana or katakana."""
    if not symbol:
        return False
    return _in_ranges(ord(symbol[0]), KANA_RANGES)


def is_logographic(symbol: str) -> bool:
    return bool(symbol) and not is_syllabic(symbol)


def is_japanese_char(char: str) -> bool:
    """Sentence alphabet membership: kana, kanji, or the iteration marks."""
    if not char:
        return False
    cp = ord(char[0])
    if cp in EXTRA_JAPANESE:
        return True
    return _in_ranges(cp, KANA_RANGES) or _in_ranges(cp, KANJI_RANGES)


def normalize_japanese(text: str) -> str:
    """Drop every character outside the sentence alphabet."""
    return "".join(ch for ch in text if is_japanese_char(ch))


def japanese_ratio(text: str) -> float:
    if not text:
        return 0.0
    return sum(1 for ch in text if is_japanese_char(ch)) / len(text)


def syllabic_mask(template: Sequence[str]) -> np.ndarray:
    """(9, 9) bool array, True where the template cell is syllabic."""
    return np.array(
        [[is_syllabic(ch) for ch in row] for row in template], dtype=bool
    )


def column_strings(template: Sequence[str]) -> List[str]:
    """Columns read top-to-bottom, listed right-to-left (column 8 first)."""
    return [
        "".join(template[r][c] for r in range(GRID_SIZE))
        for c in range(GRID_SIZE - 1, -1, -1)
    ]


def symbols_from_template(template: Sequence[str]) -> Tuple[str, ...]:
    """Distinct characters in order of first appearance (row-major)."""
    seen: Dict[str, None] = {}
    for row in template:
        for ch in row:
            seen.setdefault(ch, None)
    return tuple(seen)


def solution_from_template(template: Sequence[str], symbols: Sequence[str]) -> np.ndarray:
    """Map each template character to its 1-based symbol index.

    Raises:
        MalformedInputError: If a character has no symbol
    """
    index = {symbol: i + 1 for i, symbol in enumerate(symbols)}
    out = np.zeros((GRID_SIZE, GRID_SIZE), dtype=GRID_DTYPE)
    for r, row in enumerate(template):
        for c, ch in enumerate(row):
            if ch not in index:
                raise MalformedInputError(f"Symbol mapping missing for character: {ch}")
            out[r, c] = index[ch]
    return out
