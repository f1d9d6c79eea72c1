"""Tests for the subprocess runner."""

from __future__ import annotations

import dataclasses
import sys
from pathlib import Path

import pytest

from shipgate.utils.exec import ExecError, ExecResult, run_command, split_command


def test_result_carries_only_what_callers_read(tmp_path: Path) -> None:
    result = run_command([sys.executable, "-c", "print('hi')"], cwd=tmp_path)

    assert [f.name for f in dataclasses.fields(ExecResult)] == ["argv", "returncode", "stdout", "stderr"]
    assert result.ok
    assert result.stdout == "hi\n"
    assert result.detail() == "hi"


def test_checked_failure_raises_with_stderr_detail(tmp_path: Path) -> None:
    code = "import sys; sys.stderr.write('nope'); sys.exit(4)"
    with pytest.raises(ExecError, match="exited with 4: nope") as excinfo:
        run_command([sys.executable, "-c", code], cwd=tmp_path)
    assert excinfo.value.result.returncode == 4


def test_unchecked_failure_returns_result(tmp_path: Path) -> None:
    result = run_command([sys.executable, "-c", "raise SystemExit(2)"], cwd=tmp_path, check=False)
    assert not result.ok
    assert result.returncode == 2


def test_split_command() -> None:
    assert split_command("npm audit --json") == ["npm", "audit", "--json"]
    assert split_command(["echo", 1]) == ["echo", "1"]
    assert ExecResult(argv=("gh", "pr", "create", "--title", "a b"), returncode=0, stdout="", stderr="").rendered == (
        "gh pr create --title 'a b'"
    )
