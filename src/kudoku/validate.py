"""validate.py - Independent corpus validator.

Re-derives every invariant of persisted records from raw JSON, never trusting
the generator:
- identity: difficulty, title, id type/range/uniqueness, signature uniqueness
- symbols: arity, uniqueness, non-empty strings
- template: shape, symbol membership, row/column uniqueness (box-constrained)
- revealed: shape, booleans, syllabic coverage (box-constrained) or
  fixed-subset coverage (box-free)
- solution: shape, value range, consistency with template, 3x3 boxes
- vocabulary entry shape
- box-free: sentence hints and pool membership, row/column disjointness

Violations are accumulated, never short-circuited, and labelled '<file>#<id>'.
The validator does not repair data.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple
import numpy as np

from .config import (
    BOX_FREE_DIFFICULTY,
    BOX_FREE_MAX_SYMBOLS,
    BOX_FREE_MIN_SYMBOLS,
    BOX_SIZE,
    DIFFICULTIES,
    GRID_SIZE,
    ID_RANGES,
    box_free_reveal_count,
)
from .corpus import load_puzzle_file
from .signatures import build_signature
from .symbols import column_strings, is_syllabic
from .types import PuzzleRecord, SentencePools

JLPT_MIN = 0
JLPT_MAX = 5


@dataclass(frozen=True)
class Violation:
    """One invariant violation.

    Attributes:
        label: '<file>#<id>' for records, pool entry label for pools
        kind: Short category ('id', 'symbols', 'reveal', 'disjoint', ...)
        message: Human-readable description
    """

    label: str
    kind: str
    message: str

    def __str__(self) -> str:
        return f"{self.label} {self.message}"


@dataclass
class ValidationReport:
    violations: List[Violation] = field(default_factory=list)
    puzzle_count: int = 0

    @property
    def ok(self) -> bool:
        return not self.violations

    def by_kind(self, kind: str) -> List[Violation]:
        return [v for v in self.violations if v.kind == kind]


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_grid(value: Any) -> bool:
    return (
        isinstance(value, list)
        and len(value) == GRID_SIZE
        and all(isinstance(row, list) and len(row) == GRID_SIZE for row in value)
    )


def validate_record(
    entry: Any,
    label: str,
    pools: Optional[SentencePools] = None,
    reveal_count: Optional[int] = None,
) -> List[Violation]:
    """Validate a single raw record (cross-record checks live in validate_corpus).

    Args:
        entry: Parsed JSON value
        label: '<file>#<id>'
        pools: Sentence pools (required for box-free records)
        reveal_count: Fixed-subset reveal count (default from config)

    Returns:
        All violations for this record
    """
    out: List[Violation] = []

    def add(kind: str, message: str) -> None:
        out.append(Violation(label, kind, message))

    if not isinstance(entry, dict):
        add("shape", "record is not an object.")
        return out

    if reveal_count is None:
        reveal_count = box_free_reveal_count()

    difficulty = entry.get("difficulty")
    if not difficulty:
        add("difficulty", "missing difficulty.")
    elif not isinstance(difficulty, str):
        add("difficulty", "difficulty is not a string.")
        difficulty = None
    elif difficulty not in DIFFICULTIES:
        add("difficulty", "difficulty is invalid.")
    box_free = difficulty == BOX_FREE_DIFFICULTY
    box_constrained = difficulty in DIFFICULTIES and not box_free

    title = entry.get("title")
    if not isinstance(title, str) or len(title) == 0:
        add("title", "missing title.")

    puzzle_id = entry.get("id")
    if not _is_int(puzzle_id):
        add("id", "id is missing or not an integer.")
    elif difficulty in ID_RANGES:
        lo, hi = ID_RANGES[difficulty]
        if not lo <= puzzle_id <= hi:
            add("id", f"id is outside the expected range for {difficulty}.")

    # --- symbols ---
    symbols = entry.get("symbols")
    symbols_ok = isinstance(symbols, list)
    if not symbols_ok:
        add("symbols", "symbols is missing or not an array.")
        symbols = []
    else:
        lo, hi = (BOX_FREE_MIN_SYMBOLS, BOX_FREE_MAX_SYMBOLS) if box_free else (GRID_SIZE, GRID_SIZE)
        if not lo <= len(symbols) <= hi:
            add("symbols", f"symbols length {len(symbols)}, expected {lo}-{hi}.")
        if any(not isinstance(s, str) or len(s) == 0 for s in symbols):
            add("symbols", "symbols must be non-empty strings.")
        string_symbols = [s for s in symbols if isinstance(s, str)]
        if len(set(string_symbols)) != len(string_symbols):
            add("symbols", "symbols contain duplicates.")
    symbol_list = [s for s in symbols if isinstance(s, str)]
    symbol_set = set(symbol_list)

    # --- template ---
    template = entry.get("template")
    rows: List[List[str]] = []
    if not isinstance(template, list):
        add("template", "template is missing or not an array.")
    else:
        if len(template) != GRID_SIZE:
            add("template", f"template has {len(template)} rows, expected {GRID_SIZE}.")
        for r, row in enumerate(template):
            if not isinstance(row, str):
                add("template", f"template row {r} is not a string.")
                rows.append([])
            else:
                rows.append(list(row))

    for r, row in enumerate(rows):
        if len(row) != GRID_SIZE:
            add("template", f"row {r} length {len(row)}, expected {GRID_SIZE}.")
            continue
        if any(ch not in symbol_set for ch in row):
            add("template", f"row {r} contains symbols not in the symbol list.")
        if box_constrained and len(set(row)) != GRID_SIZE:
            add("uniqueness", f"row {r} has duplicate symbols.")

    for c in range(GRID_SIZE):
        column = [row[c] for row in rows if len(row) > c]
        if len(column) != GRID_SIZE:
            add("template", f"column {c} length {len(column)}, expected {GRID_SIZE}.")
            continue
        if any(ch not in symbol_set for ch in column):
            add("template", f"column {c} contains symbols not in the symbol list.")
        if box_constrained and len(set(column)) != GRID_SIZE:
            add("uniqueness", f"column {c} has duplicate symbols.")

    grid_ok = len(rows) == GRID_SIZE and all(len(row) == GRID_SIZE for row in rows)
    row_strings = ["".join(row) for row in rows]
    col_strings = column_strings(row_strings) if grid_ok else []

    # --- revealed ---
    revealed = entry.get("revealed")
    revealed_ok = False
    if not isinstance(revealed, list):
        add("reveal", "revealed is missing or not an array.")
    elif len(revealed) != GRID_SIZE:
        add("reveal", f"revealed has {len(revealed)} rows, expected {GRID_SIZE}.")
    else:
        revealed_ok = True
        for r in range(GRID_SIZE):
            line = revealed[r]
            if not isinstance(line, list) or len(line) != GRID_SIZE:
                length = len(line) if isinstance(line, list) else 0
                add("reveal", f"revealed row {r} length {length}, expected {GRID_SIZE}.")
                revealed_ok = False
                continue
            for c in range(GRID_SIZE):
                if not isinstance(line[c], bool):
                    add("reveal", f"revealed value at row {r}, col {c} is not boolean.")
                    revealed_ok = False
                    continue
                symbol = rows[r][c] if r < len(rows) and c < len(rows[r]) else None
                if box_constrained and symbol and is_syllabic(symbol) and not line[c]:
                    add("reveal", f"kana not revealed at row {r}, col {c}.")

    if box_free and revealed_ok and grid_ok:
        mask = np.asarray(revealed, dtype=bool)
        distinct = len(set("".join(row_strings)))
        expected = min(reveal_count, distinct)
        shown = [rows[r][c] for r, c in np.argwhere(mask)]
        if len(shown) != expected:
            add("reveal", f"reveals {len(shown)} cells, expected {expected}.")
        if len(set(shown)) != len(shown):
            add("reveal", "reveals the same symbol more than once.")

    # --- solution ---
    solution = entry.get("solution")
    solution_ints = False
    if not isinstance(solution, list):
        add("solution", "solution is missing or not an array.")
    elif len(solution) != GRID_SIZE:
        add("solution", f"solution has {len(solution)} rows, expected {GRID_SIZE}.")
    else:
        solution_ints = True
        max_value = len(symbols) if box_free else GRID_SIZE
        for r in range(GRID_SIZE):
            line = solution[r]
            if not isinstance(line, list) or len(line) != GRID_SIZE:
                length = len(line) if isinstance(line, list) else 0
                add("solution", f"solution row {r} length {length}, expected {GRID_SIZE}.")
                solution_ints = False
                continue
            for c in range(GRID_SIZE):
                value = line[c]
                if not _is_int(value) or value < 1 or value > max_value:
                    add("solution", f"solution value out of range at row {r}, col {c}.")
                    solution_ints = solution_ints and _is_int(value)
                    continue
                symbol = rows[r][c] if r < len(rows) and c < len(rows[r]) else None
                if not symbol:
                    add("solution", f"missing template symbol at row {r}, col {c}.")
                    continue
                expected = symbol_list.index(symbol) + 1 if symbol in symbol_set else 0
                if expected != value:
                    add("solution", f"solution mismatch at row {r}, col {c}.")

    if box_constrained and solution_ints and _is_grid(solution):
        grid = np.asarray(solution)
        for box_row in range(BOX_SIZE):
            for box_col in range(BOX_SIZE):
                box = grid[
                    box_row * BOX_SIZE:(box_row + 1) * BOX_SIZE,
                    box_col * BOX_SIZE:(box_col + 1) * BOX_SIZE,
                ]
                if np.unique(box).size != GRID_SIZE:
                    add("box", f"3x3 box ({box_row + 1}, {box_col + 1}) has duplicate values.")

    # --- vocabulary ---
    vocabulary = entry.get("vocabulary")
    if not isinstance(vocabulary, list):
        add("vocabulary", "vocabulary is missing or not an array.")
    else:
        for index, word in enumerate(vocabulary):
            if not isinstance(word, dict):
                add("vocabulary", f"vocabulary entry {index} is not an object.")
                continue
            for key in ("word", "reading", "meaning"):
                if not isinstance(word.get(key), str):
                    add("vocabulary", f"vocabulary entry {index} missing {key}.")
            jlpt = word.get("jlpt")
            if not _is_int(jlpt) or not JLPT_MIN <= jlpt <= JLPT_MAX:
                add("vocabulary", f"vocabulary entry {index} jlpt out of range.")

    if box_free:
        out.extend(_validate_sentences(label, entry, row_strings, col_strings, grid_ok, pools))

    return out


def _validate_sentences(
    label: str,
    entry: dict,
    row_strings: List[str],
    col_strings: List[str],
    grid_ok: bool,
    pools: Optional[SentencePools],
) -> List[Violation]:
    out: List[Violation] = []

    def add(kind: str, message: str) -> None:
        out.append(Violation(label, kind, message))

    if pools is None:
        add("pools", "sentence pools unavailable for box-free validation.")
        return out

    hints = entry.get("sentenceHints")
    if not isinstance(hints, dict):
        add("hints", "sentenceHints is missing for expert puzzle.")
    else:
        for key, pool, lines in (
            ("rows", pools.row_set, row_strings),
            ("columns", pools.column_set, col_strings),
        ):
            hint_lines = hints.get(key)
            if not isinstance(hint_lines, list) or len(hint_lines) != GRID_SIZE:
                add("hints", f"sentenceHints.{key} must have {GRID_SIZE} entries.")
            elif any(not isinstance(h, str) or len(h) == 0 for h in hint_lines):
                add("hints", f"sentenceHints.{key} must be non-empty strings.")
            if isinstance(hint_lines, list):
                for index, hint in enumerate(hint_lines):
                    if not isinstance(hint, str):
                        continue
                    if hint not in pool:
                        add("pool", f"sentenceHints.{key}[{index}] not found in {key} sentence pool.")
                    if index >= len(lines) or hint != lines[index]:
                        add("hints", f"sentenceHints.{key}[{index}] does not match template {key[:-1]}.")

    if not grid_ok:
        return out

    for index, sentence in enumerate(row_strings):
        if sentence not in pools.row_set:
            add("pool", f"template row {index} not found in rows sentence pool.")
    for index, sentence in enumerate(col_strings):
        if sentence not in pools.column_set:
            add("pool", f"template column {index} not found in columns sentence pool.")

    row_set = set(row_strings)
    col_set = set(col_strings)
    if len(row_set) != len(row_strings):
        add("uniqueness", "expert rows must form 9 unique sentences.")
    if len(col_set) != len(col_strings):
        add("uniqueness", "expert columns must form 9 unique sentences.")
    if row_set & col_set:
        add("disjoint", "expert row/column sentences must be distinct.")
    return out


def validate_corpus(
    entries: Iterable[Tuple[str, Any]],
    pools: Optional[SentencePools] = None,
    reveal_count: Optional[int] = None,
) -> ValidationReport:
    """Validate (file_name, raw_entry) pairs, including cross-record checks.

    Returns:
        ValidationReport; an empty corpus is reported as a violation
    """
    report = ValidationReport()
    seen_ids = set()
    seen_signatures = set()
    for file_name, entry in entries:
        report.puzzle_count += 1
        entry_id = entry.get("id") if isinstance(entry, dict) else None
        label = f"{file_name}#{entry_id}"
        report.violations.extend(validate_record(entry, label, pools, reveal_count))
        if not isinstance(entry, dict):
            continue

        if _is_int(entry_id):
            if entry_id in seen_ids:
                report.violations.append(Violation(label, "id", "duplicate puzzle id."))
            else:
                seen_ids.add(entry_id)

        symbols, template = entry.get("symbols"), entry.get("template")
        if (
            isinstance(symbols, list) and isinstance(template, list)
            and all(isinstance(s, str) for s in symbols + template)
        ):
            signature = build_signature(symbols, template)
            if signature in seen_signatures:
                report.violations.append(Violation(
                    label, "signature", "duplicates another puzzle's symbols/template signature."
                ))
            else:
                seen_signatures.add(signature)

    if report.puzzle_count == 0:
        report.violations.append(Violation("corpus", "empty", "no puzzles found."))
    return report


def validate_files(
    paths: Sequence[Path],
    pools: Optional[SentencePools] = None,
    reveal_count: Optional[int] = None,
) -> ValidationReport:
    """Load and validate corpus files together."""
    def entries():
        for path in paths:
            for entry in load_puzzle_file(path):
                yield Path(path).name, entry

    return validate_corpus(entries(), pools, reveal_count)


def validate_records(
    records: Sequence[PuzzleRecord],
    file_name: str,
    pools: Optional[SentencePools] = None,
    reveal_count: Optional[int] = None,
) -> ValidationReport:
    """Validate in-memory records through their persisted JSON shape."""
    return validate_corpus(((file_name, r.to_json()) for r in records), pools, reveal_count)
