"""Shared fixtures: seed puzzles per tier and a tiny sentence-pool pair.

The sentence pools are the base Latin square rendered with nine kanji: its
rows form rows.json and its columns (top-to-bottom) form columns.json. Rows
and columns never coincide, and exactly nine word squares exist over them
(the cyclic relabelings of the square).
"""
import pytest

from kudoku.corpus import corpus_path, write_puzzle_file
from kudoku.permute import BASE_GRID, apply_symbols
from kudoku.reveal import fixed_target_mask
from kudoku.rng import rng_for
from kudoku.sentences import write_sentence_pools
from kudoku.types import PuzzleRecord, SentencePools

EASY_SYMBOLS = ("日", "月", "火", "水", "木", "金", "土", "あ", "イ")
MEDIUM_SYMBOLS = ("山", "川", "田", "人", "口", "目", "耳", "う", "エ")
HARD_SYMBOLS = ("春", "夏", "秋", "冬", "東", "西", "南", "お", "カ")
POOL_KANJI = ("一", "二", "三", "四", "五", "六", "七", "八", "九")

TIER_SEEDS = {
    "easy": (1001, EASY_SYMBOLS),
    "medium": (11001, MEDIUM_SYMBOLS),
    "hard": (21001, HARD_SYMBOLS),
}


def _make_seed(difficulty, puzzle_id, symbols, title="Seasons"):
    symbols = tuple(symbols)
    solution = BASE_GRID.copy()
    return PuzzleRecord(
        id=puzzle_id,
        difficulty=difficulty,
        title=title,
        symbols=symbols,
        template=apply_symbols(solution, symbols),
        revealed=fixed_target_mask(solution, symbols, 45, rng_for("seed", puzzle_id)),
        solution=solution,
        vocabulary=({"word": "日月", "reading": "じつげつ", "meaning": "sun and moon", "jlpt": 1},),
        description="Seed puzzle",
    )


@pytest.fixture
def make_seed():
    return _make_seed


@pytest.fixture
def seed_dir(tmp_path):
    """Corpus directory holding one seed puzzle per box-constrained tier."""
    data_dir = tmp_path / "data"
    for difficulty, (puzzle_id, symbols) in TIER_SEEDS.items():
        write_puzzle_file(corpus_path(data_dir, difficulty), [_make_seed(difficulty, puzzle_id, symbols)])
    return data_dir


@pytest.fixture
def latin_pools():
    rows = apply_symbols(BASE_GRID, POOL_KANJI)
    columns = tuple("".join(row[c] for row in rows) for c in range(9))
    return SentencePools(tuple(rows), columns)


@pytest.fixture
def sentence_dir(tmp_path, latin_pools):
    path = tmp_path / "sentences"
    write_sentence_pools(latin_pools, path)
    return path

