"""receipts.py - Run receipts per harness stage.

Receipts are JSON files written to receipts/<stage>.json. Each stage records
what it read and wrote (counts, per-file SHA256) next to the runtime
environment, so two runs can be compared byte for byte.
"""
from __future__ import annotations
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Iterable
from . import config
from .utils.hash_utils import hash_file, hash_json_canonical


def write_stage_receipt(stage: str, payload: Dict[str, Any], out_dir: str = "receipts") -> Path:
    """Write the receipt for a stage.

    Args:
        stage: Stage name ('generate', 'validate', ...)
        payload: JSON-serializable receipt data
        out_dir: Output directory (default: 'receipts')

    Returns:
        Path to written receipt file

    Notes:
        - Creates the directory if needed
        - Writes with sorted keys, Unix newlines
        - Overwrites the previous receipt for the same stage
    """
    receipt_dir = Path(out_dir)
    receipt_dir.mkdir(parents=True, exist_ok=True)

    receipt_path = receipt_dir / f"{stage}.json"
    with receipt_path.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(
            payload,
            f,
            sort_keys=True,
            ensure_ascii=False,
            separators=(",", ":"),
            indent=2,
        )
        f.write("\n")

    return receipt_path


def file_digests(paths: Iterable[Path]) -> Dict[str, str]:
    """{file name: sha256} for every existing path."""
    return {Path(p).name: hash_file(p) for p in paths if Path(p).exists()}


def make_env_payload() -> Dict[str, Any]:
    """Runtime versions, tier constants and environment toggles.

    Returns:
        Dict embedded under "env" in every stage receipt
    """
    import numpy

    constants = {
        "ID_RANGES": {d: list(r) for d, r in config.ID_RANGES.items()},
        "REVEAL_TARGETS": dict(config.REVEAL_TARGETS),
        "RETRY_BASE": config.RETRY_BASE,
        "RETRY_MULTIPLIER": config.RETRY_MULTIPLIER,
        "SENTENCE_POOL_SIZE": config.SENTENCE_POOL_SIZE,
        "MAX_SKIP_SCORE": config.MAX_SKIP_SCORE,
    }
    return {
        "runtime": {
            "python_min": ".".join(str(v) for v in config.REQUIRED_VERSIONS["python_min"]),
            "python_full": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
            "numpy": numpy.__version__,
        },
        "dtypes": {
            "GRID_DTYPE": str(numpy.dtype(config.GRID_DTYPE)),
            "MASK_DTYPE": str(numpy.dtype(config.MASK_DTYPE)),
        },
        "constants": constants,
        "constants_sha256": hash_json_canonical(constants),
        "env": {
            "TARGET_PER_DIFFICULTY": os.getenv("TARGET_PER_DIFFICULTY"),
            "REGENERATE_ALL": os.getenv("REGENERATE_ALL"),
            "BOX_FREE_REVEAL_COUNT": os.getenv("BOX_FREE_REVEAL_COUNT"),
        },
    }
