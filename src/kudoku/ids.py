"""ids.py - Per-difficulty ID allocation.

IDs come from contiguous, non-overlapping ranges, increase monotonically and
are never reused, even after a record is removed.
"""
from __future__ import annotations
from typing import Dict, Iterable, Optional, Tuple

from .config import DIFFICULTIES, ID_RANGES
from .errors import RangeExhaustedError
from .types import IdRange


class IdAllocator:
    """High-water-mark allocator for one difficulty.

    Attributes:
        difficulty: Tier name (for messages)
        id_range: Inclusive range
        next_id: Next ID to hand out
    """

    def __init__(self, difficulty: str, existing_ids: Iterable[int] = (), id_range: Optional[IdRange] = None):
        self.difficulty = difficulty
        self.id_range = id_range if id_range is not None else IdRange.for_difficulty(difficulty)
        max_existing = max(existing_ids, default=0)
        self.next_id = max(max_existing + 1, self.id_range.min_id)

    @property
    def exhausted(self) -> bool:
        return self.next_id > self.id_range.max_id

    def check_available(self) -> None:
        """Raise RangeExhaustedError if no ID is left."""
        if self.exhausted:
            raise RangeExhaustedError(
                f"No available IDs left for {self.difficulty}: next {self.next_id} "
                f"exceeds max {self.id_range.max_id}"
            )

    def allocate(self) -> int:
        self.check_available()
        allocated = self.next_id
        self.next_id += 1
        return allocated


def check_id_ranges(table: Dict[str, Tuple[int, int]], order: Iterable[str] = DIFFICULTIES) -> None:
    """Assert the table is contiguous and non-overlapping in tier order.

    Raises:
        ValueError: On a gap, overlap, empty range or missing tier
    """
    prev: Optional[Tuple[str, int]] = None
    for difficulty in order:
        if difficulty not in table:
            raise ValueError(f"ID range missing for {difficulty}")
        lo, hi = table[difficulty]
        if lo > hi:
            raise ValueError(f"ID range for {difficulty} is empty: [{lo}, {hi}]")
        if prev is not None and lo != prev[1] + 1:
            raise ValueError(
                f"ID range for {difficulty} starts at {lo}; {prev[0]} ends at {prev[1]}"
            )
        prev = (difficulty, hi)


def difficulty_for_id(puzzle_id: int) -> Optional[str]:
    """Reverse lookup; None when the ID is outside every range."""
    for difficulty in DIFFICULTIES:
        lo, hi = ID_RANGES[difficulty]
        if lo <= puzzle_id <= hi:
            return difficulty
    return None


check_id_ranges(ID_RANGES)
