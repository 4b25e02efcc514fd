"""hash_utils.py - Label seeding and byte-stable hashing for receipts.

Provides:
- hash_label: 32-bit FNV-1a fold used to seed every randomized step
- SHA256 hashing of bytes, files and canonical JSON for receipts

All hashes are stable across runs, processes and platforms.
"""
from __future__ import annotations
import hashlib
import json
from pathlib import Path
from typing import Any

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
UINT32_MASK = 0xFFFFFFFF


def hash_label(label: str) -> int:
    """Fold a label into a 32-bit seed (FNV-1a over UTF-16 code units).

    Args:
        label: Human-readable label (difficulty name, "expert#31001", ...)

    Returns:
        Unsigned 32-bit integer

    Notes:
        - Iterates UTF-16 code units so astral characters hash as surrogate
          pairs, matching seeds produced by the browser runtime
    """
    h = FNV_OFFSET_BASIS
    data = label.encode("utf-16-le")
    for i in range(0, len(data), 2):
        h ^= data[i] | (data[i + 1] << 8)
        h = (h * FNV_PRIME) & UINT32_MASK
    return h


def sha256_bytes(b: bytes) -> str:
    """Compute SHA256 hex digest of bytes."""
    return hashlib.sha256(b).hexdigest()


def hash_file(path: Path) -> str:
    """SHA256 hex digest of a file's raw bytes."""
    with Path(path).open("rb") as f:
        return sha256_bytes(f.read())


def hash_json_canonical(obj: Any) -> str:
    """SHA256 of compact sorted-key JSON; receipts use it to fingerprint tier constants."""
    text = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return sha256_bytes(text.encode("utf-8"))
