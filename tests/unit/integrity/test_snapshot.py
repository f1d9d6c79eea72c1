"""Tests for file discovery, snapshotting and integrity comparison."""

from __future__ import annotations

from pathlib import Path

import pytest

from shipgate.artifacts.state_files import sha256_file
from shipgate.config import SnapshotSettings
from shipgate.integrity.snapshot import (
    build_snapshot,
    compare_snapshot,
    discover_files,
    resolve_snapshot_path,
)


def _write(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    _write(tmp_path, "src/a.js", "a\n")
    _write(tmp_path, "src/lib/b.ts", "b\n")
    _write(tmp_path, "src/notes.txt", "ignored extension\n")
    _write(tmp_path, "src/.hidden.js", "hidden\n")
    _write(tmp_path, "src/.cache/c.js", "hidden dir\n")
    _write(tmp_path, "src/node_modules/dep/index.js", "vendored\n")
    _write(tmp_path, "README.md", "outside src\n")
    return tmp_path


def test_discover_prefers_src_and_skips_hidden_and_excluded(tree: Path) -> None:
    assert discover_files(tree, SnapshotSettings()) == ["src/a.js", "src/lib/b.ts"]


def test_discover_falls_back_to_whole_tree(tmp_path: Path) -> None:
    _write(tmp_path, "index.js", "x\n")
    _write(tmp_path, "node_modules/dep/index.js", "y\n")
    _write(tmp_path, "lib/util.py", "z\n")
    assert discover_files(tmp_path, SnapshotSettings()) == ["index.js", "lib/util.py"]


def test_discover_uses_configured_roots(tree: Path) -> None:
    _write(tree, "app/main.go", "package main\n")
    settings = SnapshotSettings(roots=("app", "missing"))
    assert discover_files(tree, settings) == ["app/main.go"]


def test_snapshot_is_deterministic(tree: Path) -> None:
    paths = discover_files(tree, SnapshotSettings())
    first = build_snapshot(tree, paths)
    second = build_snapshot(tree, paths)
    assert first == second
    assert list(first) == sorted(first)
    assert first["src/a.js"] == sha256_file(tree / "src" / "a.js")


def test_snapshot_skips_file_that_vanished(tree: Path) -> None:
    hashes = build_snapshot(tree, ["src/a.js", "src/gone.js"])
    assert list(hashes) == ["src/a.js"]


def test_compare_unchanged_tree_is_intact(tree: Path) -> None:
    hashes = build_snapshot(tree, discover_files(tree, SnapshotSettings()))
    report = compare_snapshot(tree, hashes)
    assert report.intact
    assert report.verified == ["src/a.js", "src/lib/b.ts"]
    assert report.total == 2


def test_compare_detects_modified_file(tree: Path) -> None:
    hashes = build_snapshot(tree, discover_files(tree, SnapshotSettings()))
    (tree / "src" / "a.js").write_text("a changed\n", encoding="utf-8")

    report = compare_snapshot(tree, hashes)

    assert not report.intact
    assert [m.path for m in report.modified] == ["src/a.js"]
    modified = report.modified[0]
    assert modified.expected == hashes["src/a.js"]
    assert modified.expected_prefix == hashes["src/a.js"][:8] + "..."
    assert modified.actual_prefix.endswith("...")
    assert report.verified == ["src/lib/b.ts"]


def test_compare_detects_missing_file(tree: Path) -> None:
    hashes = build_snapshot(tree, discover_files(tree, SnapshotSettings()))
    (tree / "src" / "lib" / "b.ts").unlink()

    report = compare_snapshot(tree, hashes)

    assert report.missing == ["src/lib/b.ts"]
    assert not report.modified
    assert not report.intact


def test_new_files_do_not_affect_comparison(tree: Path) -> None:
    hashes = build_snapshot(tree, discover_files(tree, SnapshotSettings()))
    _write(tree, "src/new.js", "new\n")
    assert compare_snapshot(tree, hashes).intact


def test_out_of_tree_paths_are_refused(tree: Path) -> None:
    with pytest.raises(ValueError):
        resolve_snapshot_path(tree, "../etc/passwd")
    report = compare_snapshot(tree, {"../outside.js": "0" * 64})
    assert report.missing == ["../outside.js"]
