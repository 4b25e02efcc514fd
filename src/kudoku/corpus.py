"""corpus.py - Persisted corpus I/O and title normalization.

Corpus files are data/<difficulty>.json: one JSON array per tier, sorted by
ascending id, indent 2, UTF-8 with non-ASCII kept, trailing newline.
"""
from __future__ import annotations
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from .errors import MalformedInputError
from .types import PuzzleRecord

_GENERATED_SUFFIX = re.compile(r"\s+Generated\s+\d+(?:\s+Generated\s+\d+)*$")


def corpus_path(data_dir: Path, difficulty: str) -> Path:
    return Path(data_dir) / f"{difficulty}.json"


def discover_corpus_files(data_dir: Path) -> List[Path]:
    """All *.json files in data_dir, sorted by name.

    Raises:
        FileNotFoundError: If data_dir does not exist
    """
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        raise FileNotFoundError(f"Corpus directory not found: {data_dir}")
    return sorted(p for p in data_dir.iterdir() if p.suffix == ".json")


def load_puzzle_file(path: Path) -> List[Any]:
    """Load a corpus file as a list of raw entries (a lone object is wrapped).

    Raises:
        MalformedInputError: If the file is missing or not valid JSON
    """
    path = Path(path)
    if not path.exists():
        raise MalformedInputError(f"Puzzle file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"Puzzle file {path.name} is not valid JSON: {e}") from e
    return data if isinstance(data, list) else [data]


def load_records(path: Path) -> List[PuzzleRecord]:
    """Strictly parse every entry of a corpus file into PuzzleRecords."""
    path = Path(path)
    records = []
    for index, entry in enumerate(load_puzzle_file(path)):
        entry_id = entry.get("id", index) if isinstance(entry, dict) else index
        records.append(PuzzleRecord.from_json(entry, label=f"{path.name}#{entry_id}"))
    return records


def write_puzzle_file(path: Path, puzzles: Sequence[Union[PuzzleRecord, Dict[str, Any]]]) -> Path:
    """Write records sorted by ascending id.

    Notes:
        - Creates the parent directory if needed
        - Overwrites the whole file (no partial updates)
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    entries = [p.to_json() if isinstance(p, PuzzleRecord) else p for p in puzzles]
    entries.sort(key=lambda e: e["id"])
    with path.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(entries, f, ensure_ascii=False, indent=2)
        f.write("\n")
    return path


def strip_generated_suffix(title: Any) -> str:
    """Remove trailing ' Generated <n>' chains; non-strings become ''."""
    if not isinstance(title, str):
        return ""
    return _GENERATED_SUFFIX.sub("", title).strip()


def normalize_title(title: Any, puzzle_id: int) -> str:
    """Canonical title for a record.

    - Generated titles collapse to '<base> Generated <id>'
    - Empty titles become 'Puzzle <id>'
    """
    base = strip_generated_suffix(title)
    if isinstance(title, str) and "Generated" in title:
        return f"{base} Generated {puzzle_id}" if base else f"Generated {puzzle_id}"
    return base or f"Puzzle {puzzle_id}"
