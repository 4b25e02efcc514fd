"""kudoku - Deterministic kanji puzzle corpus pipeline.

Generates, deduplicates and validates a corpus of 9x9 Latin-square puzzles
whose symbols are Japanese characters, and selects puzzles at runtime with a
skip-weighted shuffle bag.

Architecture:
- Seeded: every random draw comes from a label-seeded mulberry32 stream
- Unique: one global signature index across all tiers
- Checked: an independent validator re-derives every invariant from disk
- Tiered: easy/medium/hard keep 3x3 boxes; expert grids are sentence word
  squares with no box constraint

Modules:
- config: Version guard, constants, environment toggles
- types: Canonical dataclasses (PuzzleRecord, SentencePools, IdRange)
- generate: Per-tier generation loops and maintenance rewrites
- validate: Corpus validator
- selection: Shuffle bag and skip scores
- receipts: JSON run receipts per stage
- harness: CLI runner
"""
from __future__ import annotations

# Version
__version__ = "0.1.0"

from .types import IdRange, PermutationSpec, PuzzleRecord, SentencePools
from .errors import ExhaustionError, MalformedInputError, RangeExhaustedError
from .receipts import write_stage_receipt, make_env_payload
from . import config

__all__ = [
    "IdRange",
    "PermutationSpec",
    "PuzzleRecord",
    "SentencePools",
    "ExhaustionError",
    "MalformedInputError",
    "RangeExhaustedError",
    "write_stage_receipt",
    "make_env_payload",
    "config",
]
