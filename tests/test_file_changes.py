import json
from pathlib import Path

import pytest

from patternchat.core.errors import FileChangesParseError
from patternchat.core.file_changes import (
    FILE_CHANGES_MARKER,
    FileChange,
    apply_file_changes,
    extract_file_changes,
    parse_file_changes,
)


def _response(changes, summary="Added a feature."):
    return f"{summary}\n{FILE_CHANGES_MARKER}\n{json.dumps(changes)}\n"


def test_text_without_marker_is_all_summary():
    summary, changes = parse_file_changes("Just an answer.")
    assert summary == "Just an answer."
    assert changes == []


def test_parse_changes_in_order():
    text = _response([
        {"operation": "create", "path": "src/app.py", "content": "print('hi')\n"},
        {"operation": "update", "path": "README.md", "content": "# Readme\n"},
    ])
    summary, changes = parse_file_changes(text)
    assert summary == "Added a feature."
    assert changes == [
        FileChange("create", "src/app.py", "print('hi')\n"),
        FileChange("update", "README.md", "# Readme\n"),
    ]


def test_trailing_text_after_array_is_ignored():
    text = _response([{"operation": "create", "path": "a.txt", "content": "x"}]) + "\nThanks!"
    _, changes = parse_file_changes(text)
    assert len(changes) == 1


@pytest.mark.parametrize(
    "payload",
    [
        "not json at all",
        '[{"operation": "create", "path": "a.txt"',
        '[{"operation": "delete", "path": "a.txt"}]',
        '[{"operation": "create", "path": "/etc/passwd", "content": ""}]',
        '[{"operation": "create", "path": "../escape.txt", "content": ""}]',
        '[{"operation": "create", "path": "a.txt", "content": 5}]',
    ],
)
def test_malformed_region_raises(payload):
    with pytest.raises(FileChangesParseError):
        parse_file_changes(f"Summary\n{FILE_CHANGES_MARKER}\n{payload}")


def test_extract_degrades_to_raw_text():
    raw = f"Summary\n{FILE_CHANGES_MARKER}\n{{broken"
    result = extract_file_changes(raw)
    assert not result.ok
    assert result.summary == raw
    assert result.changes == []


def test_apply_creates_directories(tmp_path: Path):
    changes = [
        FileChange("create", "pkg/sub/mod.py", "x = 1\n"),
        FileChange("update", "notes.txt", "hello"),
    ]
    applied = apply_file_changes(tmp_path, changes)
    assert all(a.success for a in applied)
    assert (tmp_path / "pkg" / "sub" / "mod.py").read_text() == "x = 1\n"
    assert (tmp_path / "notes.txt").read_text() == "hello"


def test_apply_continues_after_a_failure(tmp_path: Path):
    (tmp_path / "blocker").write_text("i am a file")
    changes = [
        FileChange("create", "blocker/inner.txt", "cannot live under a file"),
        FileChange("create", "ok.txt", "fine"),
    ]
    applied = apply_file_changes(tmp_path, changes)
    assert [a.success for a in applied] == [False, True]
    assert applied[0].error
    assert (tmp_path / "ok.txt").read_text() == "fine"


def test_apply_rejects_escaping_paths(tmp_path: Path):
    root = tmp_path / "project"
    root.mkdir()
    applied = apply_file_changes(root, [FileChange("create", "../outside.txt", "x")])
    assert not applied[0].success
    assert "Sandbox Violation" in applied[0].error
    assert not (tmp_path / "outside.txt").exists()
