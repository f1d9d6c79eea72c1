"""Tests for state-file writing and digests."""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING

import pytest

from shipgate.artifacts.state_files import pretty_dumps, sha256_file, write_json_atomic

if TYPE_CHECKING:
    from pathlib import Path


def test_pretty_dumps_ends_with_newline() -> None:
    text = pretty_dumps({"z": 1, "a": 2})
    assert text.endswith("}\n")
    assert text.index('"a"') < text.index('"z"')


def test_sha256_file_matches_hashlib(tmp_path: Path) -> None:
    content = b"x" * 200_000
    path = tmp_path / "blob.bin"
    path.write_bytes(content)
    assert sha256_file(path) == hashlib.sha256(content).hexdigest()


def test_sha256_file_is_deterministic_across_calls(tmp_path: Path) -> None:
    path = tmp_path / "a.js"
    path.write_text("export const a = 1;\n", encoding="utf-8")
    assert sha256_file(path) == sha256_file(path)
    assert len(sha256_file(path)) == 64


def test_sha256_file_missing_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        sha256_file(tmp_path / "nope.js")


def test_write_json_atomic_creates_parent_and_leaves_no_temp(tmp_path: Path) -> None:
    target = tmp_path / "state" / "nested" / "out.json"
    write_json_atomic(target, {"ok": True})
    write_json_atomic(target, {"ok": False})

    assert json.loads(target.read_text(encoding="utf-8")) == {"ok": False}
    assert sorted(p.name for p in target.parent.iterdir()) == ["out.json"]
