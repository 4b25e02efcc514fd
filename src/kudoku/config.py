"""config.py - Version guard, constants, dtypes, environment toggles.

Enforces:
- Supported runtime (Python 3.9+, numpy 1.x or newer)
- Fixed dtypes and grid constants shared by generation and validation
"""
from __future__ import annotations
import os
import sys
import numpy as np


# ============================================================================
# Version requirements
# ============================================================================
REQUIRED_VERSIONS = {
    "python_min": (3, 9),
    "numpy_major_min": 1,
}


def _assert_versions() -> None:
    """Assert the runtime satisfies the minimum supported versions."""
    py_ver = sys.version_info
    req_py = REQUIRED_VERSIONS["python_min"]
    if (py_ver.major, py_ver.minor) < req_py:
        raise RuntimeError(
            f"Python must be >= {req_py[0]}.{req_py[1]}, "
            f"got {py_ver.major}.{py_ver.minor}.{py_ver.micro}"
        )

    np_major = int(np.__version__.split(".")[0])
    if np_major < REQUIRED_VERSIONS["numpy_major_min"]:
        raise RuntimeError(
            f"numpy major version must be >= {REQUIRED_VERSIONS['numpy_major_min']}, "
            f"got {np.__version__}"
        )


_assert_versions()


# ============================================================================
# Grid constants
# ============================================================================
GRID_SIZE = 9
BOX_SIZE = 3
CELL_COUNT = GRID_SIZE * GRID_SIZE

GRID_DTYPE = np.int32  # solution values 1..81
MASK_DTYPE = np.bool_  # reveal masks


# ============================================================================
# Difficulty tiers
# ============================================================================
DIFFICULTIES = ("easy", "medium", "hard", "expert")
BOX_CONSTRAINED_DIFFICULTIES = ("easy", "medium", "hard")
BOX_FREE_DIFFICULTY = "expert"

# Inclusive [min, max] per tier; tier k max + 1 == tier k+1 min
ID_RANGES = {
    "easy": (1001, 11000),
    "medium": (11001, 21000),
    "hard": (21001, 31000),
    "expert": (31001, 41000),
}

# Fixed-target reveal totals (larger = easier)
REVEAL_TARGETS = {
    "easy": 45,
    "medium": 36,
    "hard": 30,
}

# Fixed-subset reveal policy: distinct symbol values revealed once each
DEFAULT_BOX_FREE_REVEAL_COUNT = 9

# Box-free symbol arity bounds (symbols derived from the template)
BOX_FREE_MIN_SYMBOLS = 1
BOX_FREE_MAX_SYMBOLS = CELL_COUNT


# ============================================================================
# Retry budget
# ============================================================================
# A tier may discard up to RETRY_BASE + RETRY_MULTIPLIER * remaining candidates
# before the symbol/permutation space is declared exhausted.
RETRY_BASE = 1000
RETRY_MULTIPLIER = 200

DEFAULT_TARGET_PER_DIFFICULTY = 10000
PROGRESS_EVERY = 100


# ============================================================================
# Sentence pools
# ============================================================================
SENTENCE_POOL_SIZE = 40000
SENTENCE_LENGTH = GRID_SIZE
SENTENCE_JAPANESE_RATIO = 0.5  # min share of Japanese chars in a source field


# ============================================================================
# Character classes (code point ranges, inclusive)
# ============================================================================
KANA_RANGES = (
    (0x3040, 0x309F),  # hiragana
    (0x30A0, 0x30FF),  # katakana
)

KANJI_RANGES = (
    (0x3400, 0x4DBF),
    (0x4E00, 0x9FFF),
    (0xF900, 0xFAFF),
    (0x20000, 0x2A6DF),
    (0x2A700, 0x2B73F),
    (0x2B740, 0x2B81F),
    (0x2B820, 0x2CEAF),
    (0x2CEB0, 0x2EBEF),
)

EXTRA_JAPANESE = frozenset((0x3005, 0x3007, 0x303B))  # 々 〇 〻


# ============================================================================
# Runtime selection
# ============================================================================
MAX_SKIP_SCORE = 100
SKIP_SCORE_KEY = "kudoku.skipScores"


# ============================================================================
# Environment toggles
# ============================================================================
def target_per_difficulty() -> int:
    """Read TARGET_PER_DIFFICULTY (default 10000).

    Raises:
        ValueError: If the variable is set but not a positive integer
    """
    raw = os.getenv("TARGET_PER_DIFFICULTY", str(DEFAULT_TARGET_PER_DIFFICULTY))
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"TARGET_PER_DIFFICULTY must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"TARGET_PER_DIFFICULTY must be positive, got {value}")
    return value


def regenerate_all() -> bool:
    """REGENERATE_ALL=1 selects regenerate-all mode; anything else extends."""
    return os.getenv("REGENERATE_ALL") == "1"


def box_free_reveal_count() -> int:
    """Read BOX_FREE_REVEAL_COUNT (default DEFAULT_BOX_FREE_REVEAL_COUNT).

    Raises:
        ValueError: If the variable is set but not a non-negative integer
    """
    raw = os.getenv("BOX_FREE_REVEAL_COUNT")
    if raw is None or raw == "":
        return DEFAULT_BOX_FREE_REVEAL_COUNT
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"BOX_FREE_REVEAL_COUNT must be an integer, got {raw!r}") from e
    if value < 0:
        raise ValueError(f"BOX_FREE_REVEAL_COUNT must be >= 0, got {value}")
    return value


def is_box_free(difficulty: str) -> bool:
    return difficulty == BOX_FREE_DIFFICULTY
