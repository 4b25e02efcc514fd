"""harness.py - CLI runner for the puzzle corpus pipeline.

Stages:
    generate          Extend (or rebuild) every tier to the target size, then validate
    validate          Validate all corpus files together
    validate-pools    Diagnose the row/column sentence pools
    build-pools       Build sentence pools from a tab-separated corpus dump
    update-reveals    Recompute reveal masks for one tier
    normalize-titles  Collapse 'Generated' title chains in every tier

Usage:
    python -m kudoku.harness --stage generate --data-dir data/ --target 100
    python -m kudoku.harness --stage validate --data-dir data/
    python -m kudoku.harness --stage build-pools --source jpn_sentences.tsv

Every violation prints one line to stderr; any violation or fatal error exits 1.
"""
from __future__ import annotations
import argparse
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from . import receipts
from .config import (
    BOX_FREE_DIFFICULTY,
    DIFFICULTIES,
    SENTENCE_POOL_SIZE,
    box_free_reveal_count,
    regenerate_all,
    target_per_difficulty,
)
from .corpus import corpus_path, discover_corpus_files, load_records, write_puzzle_file
from .errors import ExhaustionError, MalformedInputError
from .generate import generate_corpus, normalize_titles, regenerate_reveals
from .rng import rng_for
from .sentences import (
    build_sentence_pools,
    load_sentence_pools,
    pools_present,
    read_raw_pools,
    validate_sentence_pools,
    write_sentence_pools,
)
from .types import PuzzleRecord, SentencePools
from .validate import ValidationReport, Violation, validate_files, validate_records


def report_violations(tag: str, violations: Sequence[Violation]) -> None:
    for violation in violations:
        print(f"[{tag}] {violation}", file=sys.stderr)


def _emit_receipt(args: argparse.Namespace, stage: str, payload: Dict[str, Any]) -> None:
    if not args.receipts:
        return
    payload = dict(payload, stage=stage, env=receipts.make_env_payload())
    path = receipts.write_stage_receipt(stage, payload, out_dir=str(args.receipts_dir))
    print(f"[{stage}] Receipt written to {path}", file=sys.stderr)


def _optional_pools(sentence_dir: Path) -> Optional[SentencePools]:
    """Pools when present on disk; malformed pools are still fatal."""
    if not pools_present(sentence_dir):
        return None
    return load_sentence_pools(sentence_dir)


def _env_value(stage: str, reader: Callable[[], Any]) -> Any:
    """Read an environment toggle; a malformed value is fatal for the stage."""
    try:
        return reader()
    except ValueError as e:
        print(f"[{stage}] FATAL: {e}", file=sys.stderr)
        sys.exit(1)


def _reveal_count(args: argparse.Namespace) -> int:
    if args.reveal_count is not None:
        return args.reveal_count
    return _env_value(args.stage, box_free_reveal_count)


def run_stage_generate(args: argparse.Namespace) -> None:
    """Generate all requested tiers, then validate the written corpus.

    Notes:
        - Sentence pools are required only when the box-free tier is requested
        - Fatal errors (exhaustion, malformed seeds/pools) exit 1 with no partial write
          of the failing tier
    """
    difficulties = args.difficulties or list(DIFFICULTIES)
    target = args.target if args.target is not None else _env_value("generate", target_per_difficulty)
    regen = args.regenerate_all or regenerate_all()
    reveal_count = _reveal_count(args)

    print(
        f"[generate] target={target} regenerate_all={regen} tiers={','.join(difficulties)}",
        file=sys.stderr,
    )
    try:
        pools = load_sentence_pools(args.sentence_dir) if BOX_FREE_DIFFICULTY in difficulties else None
        results = generate_corpus(
            args.data_dir, pools, target, regen, reveal_count, difficulties
        )
    except (ExhaustionError, MalformedInputError) as e:
        print(f"[generate] FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    paths = [corpus_path(args.data_dir, d) for d in results]
    report = validate_files(paths, pools, reveal_count)
    report_violations("generate", report.violations)
    _emit_receipt(args, "generate", {
        "target": target,
        "regenerate_all": regen,
        "counts": {d: len(records) for d, records in results.items()},
        "files": receipts.file_digests(paths),
        "violations": len(report.violations),
    })
    if not report.ok:
        print(f"[generate] Validation failed with {len(report.violations)} issue(s).", file=sys.stderr)
        sys.exit(1)


def run_stage_validate(args: argparse.Namespace) -> None:
    """Validate every corpus file in data_dir as one corpus."""
    try:
        files = discover_corpus_files(args.data_dir)
        pools = _optional_pools(args.sentence_dir)
        report = validate_files(files, pools, _reveal_count(args))
    except (FileNotFoundError, MalformedInputError) as e:
        print(f"[validate] FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    report_violations("validate", report.violations)
    _emit_receipt(args, "validate", {
        "puzzles": report.puzzle_count,
        "files": receipts.file_digests(files),
        "violations": len(report.violations),
    })
    if not report.ok:
        print(f"[validate] Validation failed with {len(report.violations)} issue(s).", file=sys.stderr)
        sys.exit(1)
    print(f"[validate] Validated {report.puzzle_count} puzzles across {len(files)} files.", file=sys.stderr)


def run_stage_validate_pools(args: argparse.Namespace) -> None:
    try:
        rows, columns = read_raw_pools(args.sentence_dir)
    except MalformedInputError as e:
        print(f"[pools] FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    violations = validate_sentence_pools(rows, columns, expected_count=args.pool_size)
    report_violations("pools", violations)
    _emit_receipt(args, "validate-pools", {
        "rows": len(rows) if isinstance(rows, list) else None,
        "columns": len(columns) if isinstance(columns, list) else None,
        "violations": len(violations),
    })
    if violations:
        print(f"[pools] Sentence validation failed with {len(violations)} issue(s).", file=sys.stderr)
        sys.exit(1)
    print(f"[pools] Sentence pools validated: {len(rows)} rows, {len(columns)} columns.", file=sys.stderr)


def run_stage_build_pools(args: argparse.Namespace) -> None:
    """Build rows.json/columns.json from a local tab-separated sentence dump."""
    if args.source is None:
        print("[pools] FATAL: --source is required for build-pools", file=sys.stderr)
        sys.exit(1)
    try:
        with Path(args.source).open("r", encoding="utf-8") as f:
            pools = build_sentence_pools(f, rng_for("sentences"), target=args.pool_size)
    except (OSError, MalformedInputError) as e:
        print(f"[pools] FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    violations = validate_sentence_pools(list(pools.rows), list(pools.columns), expected_count=args.pool_size)
    if violations:
        report_violations("pools", violations)
        sys.exit(1)
    write_sentence_pools(pools, args.sentence_dir)
    _emit_receipt(args, "build-pools", {
        "rows": len(pools.rows),
        "columns": len(pools.columns),
        "source": receipts.file_digests([Path(args.source)]),
    })
    print(f"[pools] Wrote {len(pools.rows)} rows and {len(pools.columns)} columns to {args.sentence_dir}", file=sys.stderr)


def _rewrite_tier(
    args: argparse.Namespace,
    stage: str,
    difficulty: str,
    records: List[PuzzleRecord],
    pools: Optional[SentencePools],
) -> None:
    """Re-validate rewritten records and write them only when clean."""
    path = corpus_path(args.data_dir, difficulty)
    report: ValidationReport = validate_records(records, path.name, pools, _reveal_count(args))
    if not report.ok:
        report_violations(stage, report.violations)
        print(f"[{stage}] Refusing to write {path.name}: {len(report.violations)} issue(s).", file=sys.stderr)
        sys.exit(1)
    write_puzzle_file(path, records)
    print(f"[{stage}] Updated {len(records)} puzzles in {path.name}", file=sys.stderr)


def run_stage_update_reveals(args: argparse.Namespace) -> None:
    difficulties = args.difficulties or [BOX_FREE_DIFFICULTY]
    try:
        pools = _optional_pools(args.sentence_dir)
        loaded = {d: load_records(corpus_path(args.data_dir, d)) for d in difficulties}
    except MalformedInputError as e:
        print(f"[update-reveals] FATAL: {e}", file=sys.stderr)
        sys.exit(1)
    for difficulty, records in loaded.items():
        _rewrite_tier(args, "update-reveals", difficulty, regenerate_reveals(records, _reveal_count(args)), pools)


def run_stage_normalize_titles(args: argparse.Namespace) -> None:
    difficulties = args.difficulties or list(DIFFICULTIES)
    try:
        pools = _optional_pools(args.sentence_dir)
        loaded = {
            d: load_records(corpus_path(args.data_dir, d))
            for d in difficulties
            if corpus_path(args.data_dir, d).exists()
        }
    except MalformedInputError as e:
        print(f"[normalize-titles] FATAL: {e}", file=sys.stderr)
        sys.exit(1)
    for difficulty, records in loaded.items():
        _rewrite_tier(args, "normalize-titles", difficulty, normalize_titles(records), pools)


# Stage registry (extend-only)
STAGE_RUNNERS = {
    "generate": run_stage_generate,
    "validate": run_stage_validate,
    "validate-pools": run_stage_validate_pools,
    "build-pools": run_stage_build_pools,
    "update-reveals": run_stage_update_reveals,
    "normalize-titles": run_stage_normalize_titles,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Kanji puzzle corpus pipeline (deterministic)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extend every tier to 100 puzzles and validate
  python -m kudoku.harness --stage generate --data-dir data/ --target 100

  # Rebuild from seeds
  REGENERATE_ALL=1 python -m kudoku.harness --stage generate --data-dir data/
        """,
    )
    parser.add_argument(
        "--stage",
        choices=sorted(STAGE_RUNNERS),
        required=True,
        help="Stage to run",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path("data"),
        help="Directory containing <difficulty>.json corpus files (default: data/)",
    )
    parser.add_argument(
        "--sentence-dir",
        type=Path,
        default=Path("data") / "sentences",
        help="Directory containing rows.json and columns.json (default: data/sentences/)",
    )
    parser.add_argument(
        "--difficulty",
        dest="difficulties",
        action="append",
        choices=DIFFICULTIES,
        default=None,
        help="Restrict to a tier (repeatable; default depends on the stage)",
    )
    parser.add_argument(
        "--target",
        type=int,
        default=None,
        help="Puzzles per tier (default: TARGET_PER_DIFFICULTY or 10000)",
    )
    parser.add_argument(
        "--regenerate-all",
        action="store_true",
        help="Discard existing records and rebuild from seeds (or REGENERATE_ALL=1)",
    )
    parser.add_argument(
        "--reveal-count",
        type=int,
        default=None,
        help="Box-free reveal count (default: BOX_FREE_REVEAL_COUNT or 9)",
    )
    parser.add_argument(
        "--source",
        type=Path,
        default=None,
        help="Tab-separated sentence corpus for build-pools",
    )
    parser.add_argument(
        "--pool-size",
        type=int,
        default=SENTENCE_POOL_SIZE,
        help=f"Entries per sentence pool (default: {SENTENCE_POOL_SIZE})",
    )
    parser.add_argument(
        "--receipts",
        action="store_true",
        default=True,
        help="Write receipts/<stage>.json (default: enabled)",
    )
    parser.add_argument(
        "--no-receipts",
        dest="receipts",
        action="store_false",
        help="Disable receipt writing",
    )
    parser.add_argument(
        "--receipts-dir",
        type=Path,
        default=Path("receipts"),
        help="Receipt output directory (default: receipts/)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for harness."""
    args = build_parser().parse_args(argv)

    if args.target is not None and args.target <= 0:
        print(f"Error: --target must be > 0, got {args.target}", file=sys.stderr)
        sys.exit(1)
    if args.reveal_count is not None and args.reveal_count < 0:
        print(f"Error: --reveal-count must be >= 0, got {args.reveal_count}", file=sys.stderr)
        sys.exit(1)

    print(f"[harness] Running stage {args.stage} on {args.data_dir}", file=sys.stderr)
    STAGE_RUNNERS[args.stage](args)
    print("[harness] Stage complete", file=sys.stderr)


if __name__ == "__main__":
    main()
