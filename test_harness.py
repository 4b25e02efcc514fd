#!/usr/bin/env python3
"""
Harness stages and receipts

Each stage runs through main(argv); failures surface as SystemExit(1).
"""
import json

import pytest

from kudoku.corpus import corpus_path, load_puzzle_file
from kudoku.harness import STAGE_RUNNERS, main
from kudoku.receipts import make_env_payload, write_stage_receipt
from kudoku.utils.hash_utils import hash_json_canonical


def run(*argv):
    main(list(argv))


def test_stage_registry():
    assert set(STAGE_RUNNERS) == {
        "generate", "validate", "validate-pools", "build-pools", "update-reveals", "normalize-titles"
    }


def test_generate_then_validate(tmp_path, seed_dir, sentence_dir):
    receipts_dir = tmp_path / "receipts"
    run("--stage", "generate", "--data-dir", str(seed_dir), "--sentence-dir", str(sentence_dir),
        "--target", "3", "--receipts-dir", str(receipts_dir))
    assert len(load_puzzle_file(corpus_path(seed_dir, "expert"))) == 3

    receipt = json.loads((receipts_dir / "generate.json").read_text(encoding="utf-8"))
    assert receipt["stage"] == "generate"
    assert receipt["counts"] == {"easy": 3, "medium": 3, "hard": 3, "expert": 3}
    assert set(receipt["files"]) == {"easy.json", "medium.json", "hard.json", "expert.json"}
    assert receipt["violations"] == 0

    run("--stage", "validate", "--data-dir", str(seed_dir), "--sentence-dir", str(sentence_dir),
        "--receipts-dir", str(receipts_dir))
    assert json.loads((receipts_dir / "validate.json").read_text(encoding="utf-8"))["puzzles"] == 12


def test_validate_fails_on_violation(seed_dir, sentence_dir, capsys):
    path = corpus_path(seed_dir, "easy")
    entries = load_puzzle_file(path)
    entries[0]["title"] = ""
    path.write_text(json.dumps(entries, ensure_ascii=False), encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        run("--stage", "validate", "--data-dir", str(seed_dir), "--sentence-dir", str(sentence_dir),
            "--no-receipts")
    assert exc.value.code == 1
    assert "easy.json#1001 missing title." in capsys.readouterr().err


def test_validate_missing_directory(tmp_path):
    with pytest.raises(SystemExit) as exc:
        run("--stage", "validate", "--data-dir", str(tmp_path / "nope"), "--no-receipts")
    assert exc.value.code == 1


def test_generate_exits_on_missing_pools(tmp_path, seed_dir):
    with pytest.raises(SystemExit) as exc:
        run("--stage", "generate", "--data-dir", str(seed_dir), "--sentence-dir", str(tmp_path / "none"),
            "--target", "2", "--no-receipts")
    assert exc.value.code == 1


def test_generate_single_tier_needs_no_pools(tmp_path, seed_dir):
    run("--stage", "generate", "--data-dir", str(seed_dir), "--sentence-dir", str(tmp_path / "none"),
        "--difficulty", "easy", "--target", "2", "--regenerate-all", "--no-receipts")
    assert [e["id"] for e in load_puzzle_file(corpus_path(seed_dir, "easy"))] == [1001, 1002]
    assert not corpus_path(seed_dir, "expert").exists()


def test_validate_pools_stage(tmp_path, sentence_dir, capsys):
    run("--stage", "validate-pools", "--sentence-dir", str(sentence_dir), "--pool-size", "9", "--no-receipts")
    with pytest.raises(SystemExit):
        run("--stage", "validate-pools", "--sentence-dir", str(sentence_dir), "--no-receipts")
    assert "has 9 entries; expected 40000" in capsys.readouterr().err


def test_build_pools_stage(tmp_path, latin_pools):
    source = tmp_path / "corpus.tsv"
    source.write_text("".join(f"en {i}\t{s}。\n" for i, s in enumerate(latin_pools.rows)), encoding="utf-8")
    out_dir = tmp_path / "built"
    run("--stage", "build-pools", "--source", str(source), "--sentence-dir", str(out_dir),
        "--pool-size", "4", "--no-receipts")
    rows = json.loads((out_dir / "rows.json").read_text(encoding="utf-8"))
    columns = json.loads((out_dir / "columns.json").read_text(encoding="utf-8"))
    assert len(rows) == len(columns) == 4
    assert not set(rows) & set(columns)


def test_update_reveals_stage(seed_dir, sentence_dir):
    run("--stage", "generate", "--data-dir", str(seed_dir), "--sentence-dir", str(sentence_dir),
        "--target", "2", "--no-receipts")
    path = corpus_path(seed_dir, "expert")
    run("--stage", "update-reveals", "--data-dir", str(seed_dir), "--sentence-dir", str(sentence_dir),
        "--reveal-count", "4", "--no-receipts")
    for entry in load_puzzle_file(path):
        assert sum(sum(row) for row in entry["revealed"]) == 4


def test_normalize_titles_stage(seed_dir, sentence_dir):
    path = corpus_path(seed_dir, "easy")
    entries = load_puzzle_file(path)
    entries[0]["title"] = "Seasons Generated 5 Generated 6"
    path.write_text(json.dumps(entries, ensure_ascii=False), encoding="utf-8")

    run("--stage", "normalize-titles", "--data-dir", str(seed_dir), "--sentence-dir", str(sentence_dir),
        "--no-receipts")
    assert load_puzzle_file(path)[0]["title"] == "Seasons Generated 1001"


def test_receipt_format(tmp_path):
    path = write_stage_receipt("validate", {"b": 1, "a": "日"}, out_dir=str(tmp_path))
    text = path.read_text(encoding="utf-8")
    assert text.endswith("}\n")
    assert text.index('"a"') < text.index('"b"')
    assert "日" in text
    env = make_env_payload()
    assert env["constants"]["ID_RANGES"]["easy"] == [1001, 11000]
    assert env["constants_sha256"] == hash_json_canonical(env["constants"])
    assert env["constants_sha256"] == make_env_payload()["constants_sha256"]


def test_malformed_environment_is_fatal(seed_dir, sentence_dir, monkeypatch, capsys):
    monkeypatch.setenv("TARGET_PER_DIFFICULTY", "many")
    with pytest.raises(SystemExit) as exc:
        run("--stage", "generate", "--data-dir", str(seed_dir), "--sentence-dir", str(sentence_dir),
            "--no-receipts")
    assert exc.value.code == 1
    assert "[generate] FATAL: TARGET_PER_DIFFICULTY must be an integer" in capsys.readouterr().err

    monkeypatch.delenv("TARGET_PER_DIFFICULTY")
    monkeypatch.setenv("BOX_FREE_REVEAL_COUNT", "nine")
    with pytest.raises(SystemExit) as exc:
        run("--stage", "validate", "--data-dir", str(seed_dir), "--sentence-dir", str(sentence_dir),
            "--no-receipts")
    assert exc.value.code == 1
    assert "[validate] FATAL: BOX_FREE_REVEAL_COUNT must be an integer" in capsys.readouterr().err
