"""wordsquare.py - Box-free grids built from sentence pools.

A box-free grid is a 9x9 word square: every row is a row-pool sentence and
every column (top-to-bottom) is a column-pool sentence. Search fills rows top
to bottom while walking one column-trie cursor per column position.

Candidate order is insertion-ordered before shuffling so the same rng stream
always yields the same square.
"""
from __future__ import annotations
from typing import Dict, List, Optional, Sequence

from .config import GRID_SIZE
from .rng import Rng, shuffle


class TrieNode:
    __slots__ = ("children", "is_word")

    def __init__(self):
        self.children: Dict[str, "TrieNode"] = {}
        self.is_word = False


def build_column_trie(columns: Sequence[str]) -> TrieNode:
    root = TrieNode()
    for sentence in columns:
        node = root
        for ch in sentence:
            node = node.children.setdefault(ch, TrieNode())
        node.is_word = True
    return root


def build_row_index(rows: Sequence[str]) -> List[Dict[str, List[int]]]:
    """index[c][ch] = row-pool indices whose character at position c is ch."""
    index: List[Dict[str, List[int]]] = [{} for _ in range(GRID_SIZE)]
    for i, sentence in enumerate(rows):
        for c in range(GRID_SIZE):
            index[c].setdefault(sentence[c], []).append(i)
    return index


class WordSquareBuilder:
    """Backtracking word-square search over fixed pools.

    Attributes:
        rows: Row-pool sentences (length 9 each)
        row_index: Position/character index over rows
        column_trie: Trie over column-pool sentences
    """

    def __init__(self, rows: Sequence[str], columns: Sequence[str]):
        self.rows = [s for s in rows if len(s) == GRID_SIZE]
        self.row_index = build_row_index(self.rows)
        self.column_trie = build_column_trie(columns)

    def _candidates(self, cursors: List[TrieNode]) -> List[int]:
        """Smallest candidate row set over all column positions."""
        best: Optional[Dict[int, None]] = None
        for c in range(GRID_SIZE):
            node = cursors[c]
            if not node.children:
                return []
            found: Dict[int, None] = {}
            for ch in node.children:
                for idx in self.row_index[c].get(ch, ()):
                    found[idx] = None
            if best is None or len(found) < len(best):
                best = found
        return list(best) if best else []

    def build(self, rng: Rng) -> Optional[List[str]]:
        """Search for one square; None when the pools admit none from here.

        Returns:
            List of 9 row sentences, or None
        """
        chosen: List[str] = []
        used = set()
        cursors: List[TrieNode] = [self.column_trie] * GRID_SIZE

        def backtrack(depth: int) -> bool:
            if depth == GRID_SIZE:
                return all(node.is_word for node in cursors)
            for row_idx in shuffle(self._candidates(cursors), rng):
                if row_idx in used:
                    continue
                sentence = self.rows[row_idx]
                next_nodes = []
                for c in range(GRID_SIZE):
                    nxt = cursors[c].children.get(sentence[c])
                    if nxt is None:
                        break
                    next_nodes.append(nxt)
                else:
                    saved = cursors[:]
                    chosen.append(sentence)
                    used.add(row_idx)
                    cursors[:] = next_nodes
                    if backtrack(depth + 1):
                        return True
                    chosen.pop()
                    used.discard(row_idx)
                    cursors[:] = saved
            return False

        return chosen if backtrack(0) else None
