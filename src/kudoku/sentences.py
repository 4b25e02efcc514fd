"""sentences.py - Sentence pools for the box-free tier.

Provides:
- load_sentence_pools: strict loader (fatal on missing/empty/mis-shaped pools)
- validate_sentence_pools: exhaustive pool diagnostics
- build_sentence_pools: extract 9-character sentences from a local
  tab-separated corpus dump and split them into disjoint pools
"""
from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import SENTENCE_JAPANESE_RATIO, SENTENCE_LENGTH, SENTENCE_POOL_SIZE
from .errors import MalformedInputError
from .rng import Rng, shuffle
from .symbols import is_japanese_char, japanese_ratio, normalize_japanese
from .types import SentencePools
from .validate import Violation

ROWS_FILE = "rows.json"
COLUMNS_FILE = "columns.json"


def _load_pool(path: Path, label: str) -> List[str]:
    if not path.exists():
        raise MalformedInputError(f"Sentence pool {label} is missing: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"Sentence pool {label} is not valid JSON: {e}") from e
    if not isinstance(data, list) or len(data) == 0:
        raise MalformedInputError(f"Sentence pool {label} is missing or empty.")
    if any(not isinstance(entry, str) or len(entry) == 0 for entry in data):
        raise MalformedInputError(f"Sentence pool {label} must contain only non-empty strings.")
    return data


def read_raw_pools(sentence_dir: Path) -> Tuple[Any, Any]:
    """Parsed rows.json/columns.json without shape checks (for diagnostics).

    Raises:
        MalformedInputError: If a file is missing or not valid JSON
    """
    out = []
    for name in (ROWS_FILE, COLUMNS_FILE):
        path = Path(sentence_dir) / name
        if not path.exists():
            raise MalformedInputError(f"Sentence pool file is missing: {path}")
        try:
            with path.open("r", encoding="utf-8") as f:
                out.append(json.load(f))
        except json.JSONDecodeError as e:
            raise MalformedInputError(f"Sentence pool file {name} is not valid JSON: {e}") from e
    return out[0], out[1]


def pools_present(sentence_dir: Path) -> bool:
    sentence_dir = Path(sentence_dir)
    return (sentence_dir / ROWS_FILE).exists() or (sentence_dir / COLUMNS_FILE).exists()


def load_sentence_pools(sentence_dir: Path) -> SentencePools:
    """Load rows.json and columns.json from a directory.

    Raises:
        MalformedInputError: If either pool is missing, empty or not a list of
            non-empty strings
    """
    sentence_dir = Path(sentence_dir)
    rows = _load_pool(sentence_dir / ROWS_FILE, "rows")
    columns = _load_pool(sentence_dir / COLUMNS_FILE, "columns")
    return SentencePools(tuple(rows), tuple(columns))


def validate_sentence_pools(
    rows: Any,
    columns: Any,
    expected_count: Optional[int] = SENTENCE_POOL_SIZE,
    expected_length: int = SENTENCE_LENGTH,
) -> List[Violation]:
    """Check pool sizes, entry shape, alphabet, and duplicates within/across pools.

    Args:
        rows: Parsed rows pool (any JSON value)
        columns: Parsed columns pool (any JSON value)
        expected_count: Required entries per pool; None skips the count check
        expected_length: Required code points per entry

    Returns:
        All violations; an entry of the second pool that also appears in the
        first yields exactly one "disjoint" violation
    """
    violations: List[Violation] = []
    seen_global: Dict[str, str] = {}
    for label, entries in (("rows", rows), ("columns", columns)):
        if not isinstance(entries, list):
            violations.append(Violation(label, "shape", "is not an array."))
            continue
        if expected_count is not None and len(entries) != expected_count:
            violations.append(Violation(
                label, "count", f"has {len(entries)} entries; expected {expected_count}."
            ))
        seen_local = set()
        for index, entry in enumerate(entries):
            entry_label = f"{label}[{index}]"
            if not isinstance(entry, str):
                violations.append(Violation(entry_label, "shape", "is not a string."))
                continue
            if len(entry) != expected_length:
                violations.append(Violation(
                    entry_label, "length", f"length {len(entry)}, expected {expected_length}."
                ))
            if not all(is_japanese_char(ch) for ch in entry):
                violations.append(Violation(entry_label, "alphabet", "contains non-Japanese character."))
            if entry in seen_local:
                violations.append(Violation(entry_label, "duplicate", f"is a duplicate within {label}."))
            else:
                seen_local.add(entry)
            owner = seen_global.get(entry)
            if owner is not None and owner != label:
                violations.append(Violation(entry_label, "disjoint", f"duplicates entry from the {owner} pool."))
            elif owner is None:
                seen_global[entry] = label
    return violations


def extract_sentence(line: str) -> Optional[str]:
    """Pick the most Japanese tab field (>= 50%), normalize, keep 9-char results."""
    best = ""
    best_score = 0.0
    for field in line.split("\t"):
        score = japanese_ratio(field)
        if score > best_score:
            best_score = score
            best = field
    if best_score < SENTENCE_JAPANESE_RATIO:
        return None
    normalized = normalize_japanese(best)
    if len(normalized) != SENTENCE_LENGTH:
        return None
    return normalized


def build_sentence_pools(lines: Iterable[str], rng: Rng, target: int = SENTENCE_POOL_SIZE) -> SentencePools:
    """Build disjoint row/column pools from corpus lines.

    Args:
        lines: Tab-separated corpus lines (e.g. an English/Japanese parallel dump)
        rng: Seeded generator for the split
        target: Entries per pool

    Raises:
        MalformedInputError: If fewer than 2 * target unique sentences exist
    """
    unique: Dict[str, None] = {}
    for line in lines:
        line = line.rstrip("\n")
        if not line:
            continue
        sentence = extract_sentence(line)
        if sentence is not None:
            unique.setdefault(sentence, None)

    needed = target * 2
    if len(unique) < needed:
        raise MalformedInputError(
            f"Only found {len(unique)} unique {SENTENCE_LENGTH}-char sentences; need {needed}."
        )
    ordered = shuffle(list(unique), rng)
    return SentencePools(tuple(ordered[:target]), tuple(ordered[target:needed]))


def write_sentence_pools(pools: SentencePools, sentence_dir: Path) -> None:
    sentence_dir = Path(sentence_dir)
    sentence_dir.mkdir(parents=True, exist_ok=True)
    for name, entries in ((ROWS_FILE, pools.rows), (COLUMNS_FILE, pools.columns)):
        with (sentence_dir / name).open("w", encoding="utf-8", newline="\n") as f:
            json.dump(list(entries), f, ensure_ascii=False, indent=2)
            f.write("\n")
