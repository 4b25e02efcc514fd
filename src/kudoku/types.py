"""types.py - Canonical dataclasses and type shapes.

Defines the immutable records shared by generation, validation and selection:
- IdRange: inclusive integer interval for one difficulty tier
- PermutationSpec: row/column permutations of the base grid
- PuzzleRecord: one persisted puzzle (JSON round-trip)
- SentencePools: row and column sentence pools for the box-free tier
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple
import numpy as np

from .config import GRID_DTYPE, GRID_SIZE, ID_RANGES, MASK_DTYPE
from .errors import MalformedInputError

Template = Tuple[str, ...]


@dataclass(frozen=True)
class IdRange:
    """Inclusive ID interval.

    Attributes:
        min_id: Lowest assignable ID
        max_id: Highest assignable ID
    """

    min_id: int
    max_id: int

    def __post_init__(self):
        if self.min_id > self.max_id:
            raise ValueError(f"IdRange is empty: [{self.min_id}, {self.max_id}]")

    def __contains__(self, value: int) -> bool:
        return self.min_id <= value <= self.max_id

    @classmethod
    def for_difficulty(cls, difficulty: str) -> "IdRange":
        lo, hi = ID_RANGES[difficulty]
        return cls(lo, hi)


@dataclass(frozen=True)
class PermutationSpec:
    """Row and column index permutations of size 9."""

    rows: Tuple[int, ...]
    cols: Tuple[int, ...]


@dataclass(frozen=True, eq=False)
class PuzzleRecord:
    """One persisted puzzle.

    Attributes:
        id: Unique integer inside the difficulty's range
        difficulty: One of config.DIFFICULTIES
        title: Display title
        symbols: Symbol set; symbols[v - 1] renders solution value v
        template: 9 row strings of 9 characters
        revealed: (9, 9) bool array, True = pre-filled
        solution: (9, 9) int32 array of values 1..len(symbols)
        vocabulary: Word entries {word, reading, meaning, jlpt}
        description: Optional description carried from the seed puzzle
        sentence_hints: Box-free only, {"rows": [...], "columns": [...]}
    """

    id: int
    difficulty: str
    title: str
    symbols: Tuple[str, ...]
    template: Template
    revealed: np.ndarray
    solution: np.ndarray
    vocabulary: Tuple[Dict[str, Any], ...] = ()
    description: Optional[str] = None
    sentence_hints: Optional[Dict[str, List[str]]] = None

    def __post_init__(self):
        if self.revealed.shape != (GRID_SIZE, GRID_SIZE):
            raise ValueError(f"revealed must be 9x9, got {self.revealed.shape}")
        if self.solution.shape != (GRID_SIZE, GRID_SIZE):
            raise ValueError(f"solution must be 9x9, got {self.solution.shape}")
        # Read-only views so records cannot be mutated in place
        self.revealed.setflags(write=False)
        self.solution.setflags(write=False)

    def to_json(self) -> Dict[str, Any]:
        """Serialize to the persisted JSON shape (camelCase keys)."""
        out: Dict[str, Any] = {
            "id": int(self.id),
            "difficulty": self.difficulty,
            "title": self.title,
            "symbols": list(self.symbols),
            "template": list(self.template),
            "revealed": self.revealed.astype(bool).tolist(),
            "solution": self.solution.astype(int).tolist(),
            "vocabulary": [dict(entry) for entry in self.vocabulary],
        }
        if self.description is not None:
            out["description"] = self.description
        if self.sentence_hints is not None:
            out["sentenceHints"] = {
                "rows": list(self.sentence_hints["rows"]),
                "columns": list(self.sentence_hints["columns"]),
            }
        return out

    @classmethod
    def from_json(cls, data: Any, label: str = "record") -> "PuzzleRecord":
        """Strictly parse a persisted record.

        Raises:
            MalformedInputError: If a required field is missing or mis-shaped
        """
        if not isinstance(data, dict):
            raise MalformedInputError(f"{label} is not an object")
        required = ("id", "difficulty", "title", "symbols", "template", "revealed", "solution")
        missing = [k for k in required if k not in data]
        if missing:
            raise MalformedInputError(f"{label} missing fields: {', '.join(missing)}")
        if not isinstance(data["id"], int) or isinstance(data["id"], bool):
            raise MalformedInputError(f"{label} id is not an integer")
        try:
            revealed = np.asarray(data["revealed"], dtype=MASK_DTYPE)
            solution = np.asarray(data["solution"], dtype=GRID_DTYPE)
            hints = data.get("sentenceHints")
            return cls(
                id=data["id"],
                difficulty=str(data["difficulty"]),
                title=data["title"] if isinstance(data["title"], str) else "",
                symbols=tuple(data["symbols"]),
                template=tuple(data["template"]),
                revealed=revealed,
                solution=solution,
                vocabulary=tuple(data.get("vocabulary") or ()),
                description=data.get("description"),
                sentence_hints=(
                    {"rows": list(hints["rows"]), "columns": list(hints["columns"])}
                    if isinstance(hints, dict)
                    else None
                ),
            )
        except (TypeError, ValueError, KeyError) as e:
            raise MalformedInputError(f"{label} is malformed: {e}") from e


@dataclass(frozen=True)
class SentencePools:
    """Row and column sentence pools (ordered, with membership sets).

    Attributes:
        rows: Row sentences in file order
        columns: Column sentences in file order
    """

    rows: Tuple[str, ...]
    columns: Tuple[str, ...]
    row_set: FrozenSet[str] = field(init=False, repr=False)
    column_set: FrozenSet[str] = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "row_set", frozenset(self.rows))
        object.__setattr__(self, "column_set", frozenset(self.columns))
