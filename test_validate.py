#!/usr/bin/env python3
"""
Corpus validator

Every check runs on raw JSON and accumulates; records are labelled
<file>#<id>. Broken records are built by editing a valid record's JSON.
"""
import copy

import pytest

from kudoku.generate import CorpusState, generate_box_free
from kudoku.validate import Violation, validate_corpus, validate_files, validate_record, validate_records


def kinds(report):
    return {v.kind for v in report.violations}


@pytest.fixture
def easy_entry(make_seed):
    return make_seed("easy", 1001, ("日", "月", "火", "水", "木", "金", "土", "あ", "イ")).to_json()


@pytest.fixture
def expert_records(latin_pools):
    return generate_box_free(CorpusState(), latin_pools, target=3)


def test_valid_seed_passes(easy_entry):
    report = validate_corpus([("easy.json", easy_entry)])
    assert report.ok, [str(v) for v in report.violations]
    assert report.puzzle_count == 1


def test_empty_corpus_is_a_violation():
    report = validate_corpus([])
    assert not report.ok
    assert kinds(report) == {"empty"}


def test_violation_label_and_str():
    v = Violation("easy.json#1001", "id", "duplicate puzzle id.")
    assert str(v) == "easy.json#1001 duplicate puzzle id."


def test_solution_mismatch_is_reported_with_label(easy_entry):
    entry = copy.deepcopy(easy_entry)
    entry["solution"][0][0], entry["solution"][0][1] = entry["solution"][0][1], entry["solution"][0][0]
    report = validate_corpus([("easy.json", entry)])
    mismatches = report.by_kind("solution")
    assert len(mismatches) == 2
    assert all(v.label == "easy.json#1001" for v in mismatches)


def test_hidden_kana_is_reported(easy_entry):
    entry = copy.deepcopy(easy_entry)
    r, c = next((r, c) for r in range(9) for c in range(9) if entry["template"][r][c] == "あ")
    entry["revealed"][r][c] = False
    report = validate_corpus([("easy.json", entry)])
    assert [v.message for v in report.by_kind("reveal")] == [f"kana not revealed at row {r}, col {c}."]


def test_id_outside_tier_range(easy_entry):
    entry = dict(easy_entry, id=11001)
    report = validate_corpus([("easy.json", entry)])
    assert kinds(report) == {"id"}


def test_duplicate_id_and_signature(easy_entry, make_seed):
    other = make_seed("easy", 1002, ("日", "月", "火", "水", "木", "金", "土", "あ", "イ")).to_json()
    same_id = make_seed("easy", 1001, ("月", "日", "火", "水", "木", "金", "土", "あ", "イ")).to_json()
    report = validate_corpus([("easy.json", easy_entry), ("easy.json", other), ("easy.json", same_id)])
    assert [v.label for v in report.by_kind("signature")] == ["easy.json#1002"]
    assert [v.label for v in report.by_kind("id")] == ["easy.json#1001"]


def test_violations_accumulate_across_fields(easy_entry):
    entry = copy.deepcopy(easy_entry)
    entry["difficulty"] = "impossible"
    entry["title"] = ""
    entry["symbols"] = entry["symbols"][:8]
    entry["vocabulary"] = [{"word": "日", "reading": "ひ", "meaning": "sun", "jlpt": 7}]
    report = validate_corpus([("easy.json", entry)])
    assert {"difficulty", "title", "symbols", "template", "vocabulary"} <= kinds(report)


def test_box_violation_without_row_or_column_duplicates(easy_entry):
    # value(r, c) = (r + c) mod 9 + 1 is a Latin square with broken boxes
    symbols = easy_entry["symbols"]
    solution = [[(r + c) % 9 + 1 for c in range(9)] for r in range(9)]
    entry = dict(
        easy_entry,
        solution=solution,
        template=["".join(symbols[v - 1] for v in row) for row in solution],
        revealed=[[True] * 9 for _ in range(9)],
    )
    report = validate_corpus([("easy.json", entry)])
    assert kinds(report) == {"box"}


def test_row_duplicate_symbols(easy_entry):
    entry = copy.deepcopy(easy_entry)
    row = entry["template"][0]
    entry["template"][0] = row[1] + row[1:]
    report = validate_corpus([("easy.json", entry)])
    assert "uniqueness" in kinds(report)


def test_malformed_shapes_do_not_raise():
    violations = validate_record({"id": True, "template": "x", "revealed": [[1]], "solution": None}, "f#1")
    assert {v.kind for v in violations} >= {"difficulty", "id", "template", "reveal", "solution"}
    assert validate_record([], "f#None")[0].kind == "shape"

    listed = validate_record({"id": 1001, "difficulty": ["easy"]}, "easy.json#1001")
    assert "difficulty is not a string." in [v.message for v in listed]
    assert not any("outside the expected range" in v.message for v in listed)


# ============================================================================
# Box-free records
# ============================================================================
def test_generated_box_free_records_pass(expert_records, latin_pools):
    report = validate_records(expert_records, "expert.json", latin_pools)
    assert report.ok, [str(v) for v in report.violations]


def test_box_free_without_pools(expert_records):
    report = validate_records(expert_records, "expert.json", None)
    assert kinds(report) == {"pools"}


def test_box_free_tampered_hints(expert_records, latin_pools):
    entry = expert_records[0].to_json()
    entry["sentenceHints"]["rows"] = list(reversed(entry["sentenceHints"]["rows"]))
    report = validate_corpus([("expert.json", entry)], latin_pools)
    assert kinds(report) == {"hints"}


def test_box_free_reveal_count_mismatch(expert_records, latin_pools):
    report = validate_records(expert_records, "expert.json", latin_pools, reveal_count=5)
    assert kinds(report) == {"reveal"}


def test_box_free_rows_must_come_from_pool(expert_records, latin_pools):
    entry = expert_records[0].to_json()
    entry["template"] = entry["template"][1:] + entry["template"][:1]
    report = validate_corpus([("expert.json", entry)], latin_pools)
    assert "pool" in kinds(report)


def test_validate_files_reads_every_file(seed_dir):
    paths = sorted(seed_dir.glob("*.json"))
    report = validate_files(paths)
    assert report.ok, [str(v) for v in report.violations]
    assert report.puzzle_count == 3


def test_box_free_non_string_hint_is_reported(expert_records, latin_pools):
    entry = expert_records[0].to_json()
    entry["sentenceHints"]["rows"][0] = ["not", "a", "string"]
    report = validate_corpus([("expert.json", entry)], latin_pools)
    assert kinds(report) == {"hints"}
    assert "sentenceHints.rows must be non-empty strings." in [v.message for v in report.violations]


# ============================================================================
# Box-free row/column sentence checks
# ============================================================================
def messages(report):
    return [(v.kind, v.message) for v in report.violations]


def test_box_free_repeated_row(expert_records, latin_pools):
    entry = expert_records[0].to_json()
    entry["template"][1] = entry["template"][0]
    report = validate_corpus([("expert.json", entry)], latin_pools)
    assert ("uniqueness", "expert rows must form 9 unique sentences.") in messages(report)


def test_box_free_repeated_column(expert_records, latin_pools):
    entry = expert_records[0].to_json()
    entry["template"] = [row[0] + row[0] + row[2:] for row in entry["template"]]
    report = validate_corpus([("expert.json", entry)], latin_pools)
    assert ("uniqueness", "expert columns must form 9 unique sentences.") in messages(report)


def test_box_free_row_equal_to_column(expert_records, latin_pools):
    entry = expert_records[0].to_json()
    first_column = "".join(row[0] for row in entry["template"])
    # row 0 keeps its first character, so column 0 is unchanged
    entry["template"][0] = first_column
    report = validate_corpus([("expert.json", entry)], latin_pools)
    assert ("disjoint", "expert row/column sentences must be distinct.") in messages(report)
