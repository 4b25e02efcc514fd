"""signatures.py - Canonical puzzle identity and the global dedup index."""
from __future__ import annotations
from typing import Iterable, Sequence, Set


def build_signature(symbols: Sequence[str], template: Sequence[str]) -> str:
    """Signature = symbols joined by '|' + '::' + template rows joined by '|'."""
    return f"{'|'.join(symbols)}::{'|'.join(template)}"


class SignatureIndex:
    """Set of signatures already emitted anywhere in the corpus.

    Scoped globally (not per difficulty): the corpus is unique across tiers.
    """

    def __init__(self, signatures: Iterable[str] = ()):
        self._seen: Set[str] = set(signatures)

    def register(self, signature: str) -> bool:
        """Insert a signature; False if it was already present."""
        if signature in self._seen:
            return False
        self._seen.add(signature)
        return True

    def __contains__(self, signature: str) -> bool:
        return signature in self._seen

    def __len__(self) -> int:
        return len(self._seen)
