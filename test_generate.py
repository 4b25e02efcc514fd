#!/usr/bin/env python3
"""
Corpus generation

1. end-to-end: one easy seed, regenerate-all, target 3 -> ids 1001..1003, valid
2. incremental re-run over a full tier rewrites nothing
3. same inputs -> byte-identical files
4. global uniqueness across all four tiers
5. exhaustion and malformed seeds are fatal
6. maintenance rewrites (reveals, titles)
"""
import numpy as np
import pytest

from kudoku.config import box_free_reveal_count, target_per_difficulty, regenerate_all
from kudoku.corpus import corpus_path, load_records, normalize_title, write_puzzle_file
from kudoku.errors import ExhaustionError, MalformedInputError
from kudoku.generate import (
    CorpusState,
    check_seeds,
    generate_box_constrained,
    generate_box_free,
    generate_corpus,
    normalize_titles,
    regenerate_reveals,
)
from kudoku.signatures import build_signature
from kudoku.validate import validate_files

EASY_SYMBOLS = ("日", "月", "火", "水", "木", "金", "土", "あ", "イ")


def corpus_files(data_dir):
    return sorted(data_dir.glob("*.json"))


# ============================================================================
# End-to-end
# ============================================================================
def test_three_record_scenario_and_idempotent_rerun(tmp_path, make_seed):
    data_dir = tmp_path / "data"
    path = corpus_path(data_dir, "easy")
    write_puzzle_file(path, [make_seed("easy", 1001, EASY_SYMBOLS)])

    results = generate_corpus(data_dir, target=3, regenerate_all=True, difficulties=("easy",))
    assert [r.id for r in results["easy"]] == [1001, 1002, 1003]
    assert [r.title for r in results["easy"]] == [
        "Seasons Generated 1001", "Seasons Generated 1002", "Seasons Generated 1003"
    ]
    report = validate_files([path])
    assert report.ok, [str(v) for v in report.violations]

    first = path.read_bytes()
    generate_corpus(data_dir, target=3, regenerate_all=False, difficulties=("easy",))
    assert path.read_bytes() == first


def test_incremental_extends_after_existing(tmp_path, make_seed):
    data_dir = tmp_path / "data"
    seed = make_seed("easy", 1001, EASY_SYMBOLS, title="Seasons Generated 9 Generated 12")
    write_puzzle_file(corpus_path(data_dir, "easy"), [seed])

    records = generate_corpus(data_dir, target=4, regenerate_all=False, difficulties=("easy",))["easy"]
    assert [r.id for r in records] == [1001, 1002, 1003, 1004]
    assert records[0].title == "Seasons Generated 1001"
    assert records[1].title == "Seasons Generated 1002"
    assert records[1].vocabulary == seed.vocabulary
    assert records[1].description == "Seed puzzle"
    assert len({build_signature(r.symbols, r.template) for r in records}) == 4


def test_generation_is_deterministic(tmp_path, seed_dir, latin_pools):
    other = tmp_path / "other"
    other.mkdir()
    for path in corpus_files(seed_dir):
        (other / path.name).write_bytes(path.read_bytes())

    generate_corpus(seed_dir, latin_pools, target=5, regenerate_all=True)
    generate_corpus(other, latin_pools, target=5, regenerate_all=True)
    for path in corpus_files(seed_dir):
        assert path.read_bytes() == (other / path.name).read_bytes()


def test_all_tiers_unique_and_valid(seed_dir, latin_pools):
    results = generate_corpus(seed_dir, latin_pools, target=6, regenerate_all=False)
    assert set(results) == {"easy", "medium", "hard", "expert"}
    signatures = [build_signature(r.symbols, r.template) for rs in results.values() for r in rs]
    assert len(signatures) == len(set(signatures)) == 24
    assert [r.id for r in results["expert"]] == list(range(31001, 31007))
    assert [r.id for r in results["hard"]] == list(range(21001, 21007))

    report = validate_files(corpus_files(seed_dir), latin_pools)
    assert report.ok, [str(v) for v in report.violations]

    for record in results["easy"]:
        assert int(np.asarray(record.revealed).sum()) == 45
        solution = np.asarray(record.solution)
        for r in range(9):
            for c in range(9):
                assert record.symbols[solution[r, c] - 1] == record.template[r][c]


# ============================================================================
# Box-free tier
# ============================================================================
def test_box_free_records_carry_sentence_hints(latin_pools):
    records = generate_box_free(CorpusState(), latin_pools, target=2, reveal_count=3)
    for record in records:
        assert record.title == f"Expert Sentence Grid {record.id}"
        assert record.sentence_hints["rows"] == list(record.template)
        assert int(np.asarray(record.revealed).sum()) == 3
        assert record.vocabulary == ()


def test_box_free_exhaustion(latin_pools):
    # only nine distinct word squares exist over the fixture pools
    with pytest.raises(ExhaustionError):
        generate_box_free(CorpusState(), latin_pools, target=10, retry_base=30, retry_multiplier=5)


def test_generate_corpus_requires_pools_for_box_free(seed_dir):
    with pytest.raises(MalformedInputError):
        generate_corpus(seed_dir, None, target=2, regenerate_all=True)


# ============================================================================
# Fatal seed problems
# ============================================================================
def test_check_seeds(make_seed):
    with pytest.raises(MalformedInputError, match="No base puzzles"):
        check_seeds("easy", [])
    bad = make_seed("easy", 1001, EASY_SYMBOLS)
    object.__setattr__(bad, "symbols", EASY_SYMBOLS[:8])
    with pytest.raises(MalformedInputError, match="8 symbols"):
        check_seeds("easy", [bad])


def test_missing_seed_file_is_fatal(tmp_path):
    with pytest.raises(MalformedInputError):
        generate_corpus(tmp_path, target=1, difficulties=("medium",))


def test_cross_tier_signature_collision_is_fatal(tmp_path, make_seed):
    data_dir = tmp_path / "data"
    write_puzzle_file(corpus_path(data_dir, "easy"), [make_seed("easy", 1001, EASY_SYMBOLS)])
    write_puzzle_file(corpus_path(data_dir, "medium"), [make_seed("medium", 11001, EASY_SYMBOLS)])
    with pytest.raises(MalformedInputError, match="across difficulties"):
        generate_corpus(data_dir, target=1, regenerate_all=False, difficulties=("easy", "medium"))


def test_box_constrained_exhaustion(make_seed):
    state = CorpusState()
    seeds = [make_seed("easy", 1001, EASY_SYMBOLS)]
    with pytest.raises(ExhaustionError):
        # a negative budget is already exceeded on the first pass
        generate_box_constrained("easy", seeds, state, target=10 ** 6, retry_base=-1, retry_multiplier=0)


# ============================================================================
# Maintenance rewrites and environment
# ============================================================================
def test_regenerate_reveals_reproduces_generated_masks(latin_pools):
    records = generate_box_free(CorpusState(), latin_pools, target=3)
    again = regenerate_reveals(records)
    for old, new in zip(records, again):
        assert np.array_equal(old.revealed, new.revealed)
        assert new.id == old.id and new.template == old.template

    fewer = regenerate_reveals(records, reveal_count=2)
    assert all(int(np.asarray(r.revealed).sum()) == 2 for r in fewer)


def test_normalize_titles(make_seed):
    seed = make_seed("easy", 1005, EASY_SYMBOLS, title="Foo Generated 1 Generated 2")
    assert normalize_titles([seed])[0].title == "Foo Generated 1005"
    assert seed.title == "Foo Generated 1 Generated 2"
    assert normalize_title("", 7) == "Puzzle 7"
    assert normalize_title("Plain", 7) == "Plain"
    assert normalize_title(" Generated 3", 7) == "Generated 7"
    assert normalize_title(None, 7) == "Puzzle 7"


def test_load_records_round_trip(tmp_path, make_seed):
    seed = make_seed("easy", 1001, EASY_SYMBOLS)
    path = write_puzzle_file(tmp_path / "easy.json", [seed])
    loaded = load_records(path)[0]
    assert loaded.to_json() == seed.to_json()
    assert path.read_text(encoding="utf-8").endswith("]\n")
    assert "日" in path.read_text(encoding="utf-8")


def test_environment_toggles(monkeypatch):
    monkeypatch.delenv("TARGET_PER_DIFFICULTY", raising=False)
    monkeypatch.delenv("REGENERATE_ALL", raising=False)
    assert target_per_difficulty() == 10000
    assert regenerate_all() is False

    monkeypatch.setenv("TARGET_PER_DIFFICULTY", "2")
    monkeypatch.setenv("REGENERATE_ALL", "1")
    assert target_per_difficulty() == 2
    assert regenerate_all() is True

    monkeypatch.setenv("TARGET_PER_DIFFICULTY", "many")
    with pytest.raises(ValueError):
        target_per_difficulty()

    monkeypatch.setenv("BOX_FREE_REVEAL_COUNT", "nine")
    with pytest.raises(ValueError, match="BOX_FREE_REVEAL_COUNT"):
        box_free_reveal_count()
