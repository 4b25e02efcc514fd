"""errors.py - Fatal error taxonomy for generation and loading.

Invariant violations are not exceptions: the validator accumulates them.
Duplicate candidates are not exceptions either: generation retries them.
"""
from __future__ import annotations


class ExhaustionError(RuntimeError):
    """No further unique candidates fit the retry budget or ID range."""


class RangeExhaustedError(ExhaustionError):
    """The next ID would fall outside the difficulty's range."""


class MalformedInputError(ValueError):
    """A pool, seed or corpus file is missing, empty or structurally wrong."""
