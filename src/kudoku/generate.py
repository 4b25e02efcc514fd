"""generate.py - Corpus generation loops and maintenance rewrites.

Generation order:
1. Box-free tier (word squares from the sentence pools), so its signatures
   enter the global index first
2. Box-constrained tiers easy/medium/hard (seed puzzles permuted and
   re-symbolized)

Each tier draws from its own rng stream seeded by the difficulty name, so a
tier's output does not depend on which other tiers ran. Dedup and ID state
live in an explicit CorpusState.
"""
from __future__ import annotations
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from .config import (
    BOX_CONSTRAINED_DIFFICULTIES,
    BOX_FREE_DIFFICULTY,
    DIFFICULTIES,
    GRID_SIZE,
    PROGRESS_EVERY,
    REVEAL_TARGETS,
    RETRY_BASE,
    RETRY_MULTIPLIER,
    box_free_reveal_count,
    regenerate_all as regenerate_all_from_env,
    target_per_difficulty,
)
from .corpus import corpus_path, load_records, normalize_title, strip_generated_suffix, write_puzzle_file
from .errors import ExhaustionError, MalformedInputError
from .ids import IdAllocator
from .permute import BASE_GRID, apply_symbols, build_permutation, permute_grid
from .reveal import build_reveal_mask, fixed_subset_mask, fixed_target_mask
from .rng import Rng, rng_for, shuffle
from .signatures import SignatureIndex, build_signature
from .symbols import column_strings, solution_from_template, symbols_from_template
from .types import PuzzleRecord, SentencePools
from .wordsquare import WordSquareBuilder


@dataclass
class CorpusState:
    """Dedup index and ID cursors threaded through one generation run.

    Attributes:
        signatures: Global signature index (all tiers)
        id_cursors: One IdAllocator per difficulty already started
    """

    signatures: SignatureIndex = field(default_factory=SignatureIndex)
    id_cursors: Dict[str, IdAllocator] = field(default_factory=dict)

    def allocator(self, difficulty: str, existing_ids: Iterable[int] = ()) -> IdAllocator:
        if difficulty not in self.id_cursors:
            self.id_cursors[difficulty] = IdAllocator(difficulty, existing_ids)
        return self.id_cursors[difficulty]


def _retry_budget(remaining: int, retry_base: int, retry_multiplier: int) -> int:
    return retry_base + retry_multiplier * remaining


def _register_existing(state: CorpusState, records: Sequence[PuzzleRecord]) -> None:
    for record in records:
        if not state.signatures.register(build_signature(record.symbols, record.template)):
            raise MalformedInputError(
                f"Duplicate puzzle signature detected across difficulties: {record.id}."
            )


def _report_progress(difficulty: str, count: int, target: int) -> None:
    if count % PROGRESS_EVERY == 0:
        print(f"[generate] {difficulty}: {count}/{target}", file=sys.stderr)


def check_seeds(difficulty: str, seeds: Sequence[PuzzleRecord]) -> None:
    """Seed puzzles must exist and each carry a full 9-symbol set.

    Raises:
        MalformedInputError: On an empty seed pool or a bad symbol count
    """
    if not seeds:
        raise MalformedInputError(f"No base puzzles found for {difficulty}.")
    for seed in seeds:
        if len(seed.symbols) != GRID_SIZE:
            raise MalformedInputError(
                f"Base puzzle {seed.id} for {difficulty} has {len(seed.symbols)} symbols, "
                f"expected {GRID_SIZE}."
            )


def generate_box_constrained(
    difficulty: str,
    seeds: Sequence[PuzzleRecord],
    state: CorpusState,
    target: int,
    regenerate_all: bool = False,
    retry_base: int = RETRY_BASE,
    retry_multiplier: int = RETRY_MULTIPLIER,
) -> List[PuzzleRecord]:
    """Extend (or rebuild) one box-constrained tier up to `target` records.

    Args:
        difficulty: easy, medium or hard
        seeds: Persisted records of this tier (base pool, round-robin)
        state: Shared corpus state
        target: Desired record count for the tier
        regenerate_all: Discard existing records instead of extending them

    Returns:
        Records sorted by id

    Raises:
        MalformedInputError: Bad seeds or a cross-tier signature collision
        ExhaustionError: Retry budget exceeded
        RangeExhaustedError: Tier ID range used up
    """
    check_seeds(difficulty, seeds)

    existing: List[PuzzleRecord] = []
    if not regenerate_all:
        existing = [replace(s, title=normalize_title(s.title, s.id)) for s in seeds]
    _register_existing(state, existing)

    allocator = state.allocator(difficulty, (r.id for r in existing))
    rng = rng_for(difficulty)
    target_reveals = REVEAL_TARGETS[difficulty]

    budget = _retry_budget(max(0, target - len(existing)), retry_base, retry_multiplier)
    discarded = 0
    seed_index = 0

    while len(existing) < target:
        allocator.check_available()
        if discarded > budget:
            raise ExhaustionError(
                f"Failed to generate enough unique puzzles for {difficulty}: "
                f"{len(existing)}/{target} after {discarded} discarded candidates."
            )

        base = seeds[seed_index % len(seeds)]
        seed_index += 1

        perm = build_permutation(difficulty, rng)
        symbols = tuple(shuffle(base.symbols, rng))
        solution = permute_grid(BASE_GRID, perm.rows, perm.cols)
        template = apply_symbols(solution, symbols)

        if not state.signatures.register(build_signature(symbols, template)):
            discarded += 1
            continue

        revealed = fixed_target_mask(solution, symbols, target_reveals, rng)
        puzzle_id = allocator.allocate()
        existing.append(PuzzleRecord(
            id=puzzle_id,
            difficulty=difficulty,
            title=f"{strip_generated_suffix(base.title) or 'Puzzle'} Generated {puzzle_id}",
            symbols=symbols,
            template=template,
            revealed=revealed,
            solution=solution,
            vocabulary=base.vocabulary,
            description=base.description,
        ))
        _report_progress(difficulty, len(existing), target)

    return sorted(existing, key=lambda r: r.id)


def box_free_square(builder: WordSquareBuilder, pools: SentencePools, rng: Rng) -> Optional[List[str]]:
    """Draw one word square and keep it only if it is a usable box-free grid.

    Rejects squares whose columns are not column-pool members, whose rows or
    columns repeat, or whose row and column sentences overlap.
    """
    rows = builder.build(rng)
    if rows is None:
        return None
    columns = column_strings(rows)
    if not all(column in pools.column_set for column in columns):
        return None
    row_set, column_set = set(rows), set(columns)
    if len(row_set) != len(rows) or len(column_set) != len(columns):
        return None
    if row_set & column_set:
        return None
    return rows


def generate_box_free(
    state: CorpusState,
    pools: SentencePools,
    existing: Sequence[PuzzleRecord] = (),
    target: int = 0,
    regenerate_all: bool = False,
    reveal_count: Optional[int] = None,
    retry_base: int = RETRY_BASE,
    retry_multiplier: int = RETRY_MULTIPLIER,
) -> List[PuzzleRecord]:
    """Extend (or rebuild) the box-free tier from sentence-pool word squares.

    Args:
        state: Shared corpus state
        pools: Row/column sentence pools
        existing: Persisted box-free records
        target: Desired record count
        regenerate_all: Discard existing records instead of extending them
        reveal_count: Fixed-subset reveal count (default from config)

    Returns:
        Records sorted by id

    Notes:
        - Reveal masks use a per-record stream rng_for("expert", id), the same
          one regenerate_reveals uses, so a maintenance pass reproduces them
    """
    difficulty = BOX_FREE_DIFFICULTY
    if reveal_count is None:
        reveal_count = box_free_reveal_count()

    records: List[PuzzleRecord] = [] if regenerate_all else list(existing)
    _register_existing(state, records)

    allocator = state.allocator(difficulty, (r.id for r in records))
    rng = rng_for(difficulty)
    builder = WordSquareBuilder(pools.rows, pools.columns)

    budget = _retry_budget(max(0, target - len(records)), retry_base, retry_multiplier)
    discarded = 0

    while len(records) < target:
        allocator.check_available()
        if discarded > budget:
            raise ExhaustionError(
                f"Failed to generate {target} {difficulty} puzzles: "
                f"{len(records)}/{target} after {discarded} discarded candidates."
            )

        rows = box_free_square(builder, pools, rng)
        if rows is None:
            discarded += 1
            continue

        template = tuple(rows)
        symbols = symbols_from_template(template)
        if not state.signatures.register(build_signature(symbols, template)):
            discarded += 1
            continue

        solution = solution_from_template(template, symbols)
        puzzle_id = allocator.allocate()
        revealed = fixed_subset_mask(solution, reveal_count, rng_for(difficulty, puzzle_id))
        records.append(PuzzleRecord(
            id=puzzle_id,
            difficulty=difficulty,
            title=f"Expert Sentence Grid {puzzle_id}",
            symbols=symbols,
            template=template,
            revealed=revealed,
            solution=solution,
            vocabulary=(),
            sentence_hints={"rows": list(rows), "columns": column_strings(rows)},
        ))
        _report_progress(difficulty, len(records), target)

    return sorted(records, key=lambda r: r.id)


def generate_corpus(
    data_dir: Path,
    pools: Optional[SentencePools] = None,
    target: Optional[int] = None,
    regenerate_all: Optional[bool] = None,
    reveal_count: Optional[int] = None,
    difficulties: Sequence[str] = DIFFICULTIES,
    retry_base: int = RETRY_BASE,
    retry_multiplier: int = RETRY_MULTIPLIER,
) -> Dict[str, List[PuzzleRecord]]:
    """Generate every requested tier and write <difficulty>.json files.

    Args:
        data_dir: Corpus directory (seed files are read from here)
        pools: Sentence pools; required when the box-free tier is requested
        target: Records per tier (default TARGET_PER_DIFFICULTY)
        regenerate_all: Default REGENERATE_ALL env toggle
        reveal_count: Box-free reveal count (default BOX_FREE_REVEAL_COUNT)
        difficulties: Tiers to generate

    Returns:
        {difficulty: records}

    Notes:
        - All inputs are loaded and checked before any tier is generated
        - A missing box-free file counts as an empty tier
    """
    data_dir = Path(data_dir)
    if target is None:
        target = target_per_difficulty()
    if regenerate_all is None:
        regenerate_all = regenerate_all_from_env()
    unknown = [d for d in difficulties if d not in DIFFICULTIES]
    if unknown:
        raise ValueError(f"Unknown difficulties: {', '.join(unknown)}")

    seeds: Dict[str, List[PuzzleRecord]] = {}
    for difficulty in BOX_CONSTRAINED_DIFFICULTIES:
        if difficulty in difficulties:
            seeds[difficulty] = load_records(corpus_path(data_dir, difficulty))
            check_seeds(difficulty, seeds[difficulty])

    box_free_existing: List[PuzzleRecord] = []
    if BOX_FREE_DIFFICULTY in difficulties:
        if pools is None:
            raise MalformedInputError("Sentence pools are required to generate the box-free tier.")
        path = corpus_path(data_dir, BOX_FREE_DIFFICULTY)
        if path.exists():
            box_free_existing = load_records(path)

    state = CorpusState()
    results: Dict[str, List[PuzzleRecord]] = {}

    if BOX_FREE_DIFFICULTY in difficulties:
        results[BOX_FREE_DIFFICULTY] = generate_box_free(
            state, pools, box_free_existing, target, regenerate_all, reveal_count,
            retry_base, retry_multiplier,
        )
        write_puzzle_file(corpus_path(data_dir, BOX_FREE_DIFFICULTY), results[BOX_FREE_DIFFICULTY])

    for difficulty in BOX_CONSTRAINED_DIFFICULTIES:
        if difficulty not in difficulties:
            continue
        results[difficulty] = generate_box_constrained(
            difficulty, seeds[difficulty], state, target, regenerate_all,
            retry_base, retry_multiplier,
        )
        write_puzzle_file(corpus_path(data_dir, difficulty), results[difficulty])

    print(f"[generate] Generated puzzles to target counts ({target} per tier).", file=sys.stderr)
    return results


# ============================================================================
# Maintenance rewrites
# ============================================================================
def regenerate_reveals(
    records: Sequence[PuzzleRecord], reveal_count: Optional[int] = None
) -> List[PuzzleRecord]:
    """Recompute reveal masks with a per-record stream rng_for(difficulty, id).

    Returns:
        New records; inputs are untouched
    """
    out = []
    for record in records:
        mask = build_reveal_mask(
            np.asarray(record.solution),
            record.symbols,
            record.difficulty,
            rng_for(record.difficulty, record.id),
            reveal_count,
        )
        out.append(replace(record, revealed=mask))
    return out


def normalize_titles(records: Sequence[PuzzleRecord]) -> List[PuzzleRecord]:
    """Collapse 'Generated' suffix chains and fill empty titles."""
    return [replace(r, title=normalize_title(r.title, r.id)) for r in records]
