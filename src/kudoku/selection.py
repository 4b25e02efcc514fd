"""selection.py - Runtime puzzle selection over repeated play.

A per-difficulty shuffle bag hands out every puzzle once before any repeats.
Each reshuffle orders the pool by weight 1 / (1 + skip_score), so puzzles the
player skipped more often drift toward the end of the bag.

Skip scores persist through an opaque key/value store holding JSON values.
The store is advisory: read/write failures are reported and play continues.
"""
from __future__ import annotations
import json
import random
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Sequence, Tuple

from .config import MAX_SKIP_SCORE, SKIP_SCORE_KEY
from .rng import Rng
from .types import PuzzleRecord

_CANONICAL_ID = re.compile(r"^[1-9][0-9]*$")


class KeyValueStore(Protocol):
    def get_json(self, key: str) -> Any:
        ...

    def set_json(self, key: str, value: Any) -> None:
        ...


class MemoryStore:
    """In-process store; values are deep-copied through JSON."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, str] = {}
        self.writes = 0
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    def get_json(self, key: str) -> Any:
        raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)
        self.writes += 1


class JsonFileStore:
    """Store backed by one JSON object file.

    Failures to read or write are printed to stderr and otherwise ignored:
    losing skip scores only degrades ordering.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            print(f"[selection] WARNING: cannot read {self.path}: {e}", file=sys.stderr)
            return {}
        return data if isinstance(data, dict) else {}

    def get_json(self, key: str) -> Any:
        return self._read_all().get(key)

    def set_json(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(data, f, sort_keys=True, indent=2)
                f.write("\n")
        except OSError as e:
            print(f"[selection] WARNING: cannot write {self.path}: {e}", file=sys.stderr)


def _score_value(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 0:
        return None
    return min(value, MAX_SKIP_SCORE)


def sanitize_skip_scores(raw: Any, valid_ids: Iterable[int]) -> Dict[int, int]:
    """Keep only well-formed entries for known puzzles.

    Args:
        raw: Persisted value (anything JSON can hold)
        valid_ids: IDs of loaded puzzles

    Returns:
        {id: score} with scores clamped to MAX_SKIP_SCORE

    Notes:
        - Keys must be canonical positive integer strings ('1001', not '01001'
          or '1.5')
        - Values must be non-negative integers
    """
    if not isinstance(raw, dict):
        return {}
    known = set(valid_ids)
    out: Dict[int, int] = {}
    for key, value in raw.items():
        key = str(key)
        if not _CANONICAL_ID.match(key):
            continue
        puzzle_id = int(key)
        if puzzle_id not in known:
            continue
        score = _score_value(value)
        if score is not None:
            out[puzzle_id] = score
    return out


def weighted_shuffle(ids: Sequence[int], skip_scores: Mapping[int, int], rng: Rng) -> Tuple[int, ...]:
    """Order ids by descending weight 1 / (1 + score), random among ties."""
    keyed = [(1.0 / (1 + skip_scores.get(i, 0)), rng(), i) for i in ids]
    keyed.sort(key=lambda k: (-k[0], k[1]))
    return tuple(i for _, _, i in keyed)


@dataclass(frozen=True)
class BagState:
    """Immutable shuffle-bag position for one difficulty.

    Attributes:
        bag: Current ordering of puzzle ids
        cursor: Index of the next id to hand out
        pool_size: Pool length when the bag was built
    """

    bag: Tuple[int, ...] = ()
    cursor: int = 0
    pool_size: int = 0

    @property
    def exhausted(self) -> bool:
        return self.cursor >= len(self.bag)


def next_from_bag(
    state: Optional[BagState],
    pool: Sequence[int],
    skip_scores: Mapping[int, int],
    rng: Rng,
) -> Tuple[int, BagState]:
    """Pure transition: hand out the next id and the advanced state.

    Reshuffles when there is no state yet, the bag is exhausted, or the pool
    size changed since the bag was built.

    Raises:
        ValueError: If the pool is empty
    """
    if len(pool) == 0:
        raise ValueError("Cannot select from an empty puzzle pool.")
    if state is None or state.exhausted or state.pool_size != len(pool):
        state = BagState(weighted_shuffle(pool, skip_scores, rng), 0, len(pool))
    return state.bag[state.cursor], BagState(state.bag, state.cursor + 1, state.pool_size)


class PuzzleSelector:
    """Per-difficulty shuffle bags plus persisted skip scores.

    Attributes:
        pools: {difficulty: puzzle ids}
        store: Key/value store for skip scores
        bags: {difficulty: BagState}
    """

    def __init__(
        self,
        pools: Mapping[str, Sequence[int]],
        store: KeyValueStore,
        rng: Rng = random.random,
    ):
        self.pools = {d: tuple(ids) for d, ids in pools.items()}
        self.store = store
        self.rng = rng
        self.bags: Dict[str, BagState] = {}
        self._valid_ids = {i for ids in self.pools.values() for i in ids}
        self._scores = sanitize_skip_scores(store.get_json(SKIP_SCORE_KEY), self._valid_ids)

    @classmethod
    def from_records(
        cls, records: Iterable[PuzzleRecord], store: KeyValueStore, rng: Rng = random.random
    ) -> "PuzzleSelector":
        pools: Dict[str, list] = {}
        for record in records:
            pools.setdefault(record.difficulty, []).append(record.id)
        return cls(pools, store, rng)

    def get_next(self, difficulty: str) -> int:
        """Next puzzle id for a difficulty.

        Raises:
            ValueError: If the difficulty has no puzzles
        """
        puzzle_id, self.bags[difficulty] = next_from_bag(
            self.bags.get(difficulty), self.pools.get(difficulty, ()), self._scores, self.rng
        )
        return puzzle_id

    def mark_skipped(self, puzzle_id: int) -> None:
        """Bump a puzzle's skip score and persist all scores.

        Unknown ids are ignored and nothing is written. The change affects
        ordering from the next reshuffle on.
        """
        if puzzle_id not in self._valid_ids:
            return
        self._scores[puzzle_id] = min(self._scores.get(puzzle_id, 0) + 1, MAX_SKIP_SCORE)
        self.store.set_json(SKIP_SCORE_KEY, {str(k): v for k, v in sorted(self._scores.items())})

    def get_skip_score(self, puzzle_id: int) -> int:
        return self._scores.get(puzzle_id, 0)
