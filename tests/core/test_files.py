from __future__ import annotations

import json

import pytest

from study_tool.core import files


def test_iter_files_respects_depth_and_order(workspace):
    root = workspace.create(
        {
            "banks": {
                "b.json": "[]",
                "A.json": "[]",
                "notes.txt": "skip",
                "nested": {"deep.json": "[]"},
            }
        }
    )

    shallow = [p.name for p in files.iter_files([root / "banks"], {"json"})]
    deep = [
        p.name
        for p in files.iter_files([root / "banks"], {"json"}, level_limit=0)
    ]

    assert shallow == ["A.json", "b.json"]
    assert sorted(deep) == ["A.json", "b.json", "deep.json"]


def test_iter_files_missing_input(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(files.iter_files([tmp_path / "missing"], {"json"}))


def test_write_json_atomic_replaces_content(tmp_path):
    target = tmp_path / "state" / "quiz_state.json"

    files.write_json_atomic(target, {"a": 1})
    files.write_json_atomic(target, {"b": "é"}, mode=0o600)

    assert files.read_json_file(target) == {"b": "é"}
    assert (target.stat().st_mode & 0o777) == 0o600
    assert [p.name for p in target.parent.iterdir()] == ["quiz_state.json"]


def test_write_json_atomic_cleans_up_on_failure(tmp_path):
    target = tmp_path / "out.json"
    target.write_text(json.dumps({"keep": True}), encoding="utf-8")

    with pytest.raises(TypeError):
        files.write_json_atomic(target, {"bad": object()})

    assert files.read_json_file(target) == {"keep": True}
    assert [p.name for p in tmp_path.iterdir()] == ["out.json"]
