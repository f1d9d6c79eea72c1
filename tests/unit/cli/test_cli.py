"""CLI tests for verify, review and ship exit codes and output."""

from __future__ import annotations

import json
import shlex
import subprocess
import sys
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from shipgate import __version__
from shipgate import cli as cli_module
from shipgate.cli import cli
from shipgate.config import SnapshotSettings
from shipgate.integrity.snapshot import build_snapshot, discover_files
from shipgate.verify.record import save_record

runner = CliRunner()


def _python(code: str) -> str:
    return shlex.join([sys.executable, "-c", code])


def _write_config(repo: Path, *, tests: str) -> None:
    audit = _python("import json; print(json.dumps({'metadata': {'vulnerabilities': {'high': 0}}}))")
    config = {
        "gates": {
            "tests": {"command": tests},
            "lint": {"command": _python("pass")},
            "audit": {"command": audit, "format": "npm-json"},
        }
    }
    (repo / "shipgate.yaml").write_text(json.dumps(config), encoding="utf-8")


@pytest.fixture(autouse=True)
def wide_console(monkeypatch) -> None:
    monkeypatch.setattr(cli_module, "console", Console(width=400))


@pytest.fixture
def repo(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "index.js").write_text("console.log('hi');\n", encoding="utf-8")
    return tmp_path


def _saved_state(repo: Path, make_record, **gates) -> Path:
    hashes = build_snapshot(repo, discover_files(repo, SnapshotSettings()))
    state = repo / ".shipgate" / "state" / "verify-state.json"
    save_record(state, make_record(hashes, **gates))
    return state


def test_version_flag() -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_verify_passes_with_configured_gates(repo: Path) -> None:
    _write_config(repo, tests=_python("print('ok')"))
    result = runner.invoke(cli, ["verify", "--repo-root", str(repo)])

    assert result.exit_code == 0, result.output
    assert "VERIFICATION SUMMARY" in result.output
    assert "GEMINI_API_KEY not set" in result.output
    assert (repo / ".shipgate" / "state" / "verify-state.json").exists()


def test_verify_failing_gate_exits_two(repo: Path) -> None:
    _write_config(repo, tests=_python("raise SystemExit(1)"))
    result = runner.invoke(cli, ["verify", "--repo-root", str(repo)])
    assert result.exit_code == 2
    payload = json.loads((repo / ".shipgate" / "state" / "verify-state.json").read_text(encoding="utf-8"))
    assert payload["summary"]["testsPass"] is False
    assert payload["summary"]["overallPass"] is False


def test_verify_rejects_conflicting_review_flags(repo: Path) -> None:
    result = runner.invoke(cli, ["verify", "--repo-root", str(repo), "--skip-ai-review", "--require-review"])
    assert result.exit_code == 1
    assert "mutually exclusive" in result.output


def test_verify_malformed_config_exits_one(repo: Path) -> None:
    (repo / "shipgate.yaml").write_text("gates: [unclosed", encoding="utf-8")
    result = runner.invoke(cli, ["verify", "--repo-root", str(repo)])
    assert result.exit_code == 1
    assert "Malformed YAML" in result.output


def test_review_without_key_exits_one(repo: Path) -> None:
    result = runner.invoke(cli, ["review", "--repo-root", str(repo)])
    assert result.exit_code == 1
    assert "GEMINI_API_KEY" in result.output


def test_ship_without_state_exits_one(repo: Path) -> None:
    result = runner.invoke(cli, ["ship", "--repo-root", str(repo)])
    assert result.exit_code == 1
    assert "Run 'shipgate verify' first" in result.output


def test_ship_unchanged_tree_exits_zero(repo: Path, make_record) -> None:
    _saved_state(repo, make_record)
    result = runner.invoke(cli, ["ship", "--repo-root", str(repo)])
    assert result.exit_code == 0, result.output
    assert "READY TO SHIP" in result.output
    assert "Verified: 1/1" in result.output


def test_ship_modified_tree_exits_two_and_lists_file(repo: Path, make_record) -> None:
    state = _saved_state(repo, make_record)
    (repo / "src" / "index.js").write_text("console.log('changed');\n", encoding="utf-8")

    result = runner.invoke(cli, ["ship", "--repo-root", str(repo), "--state", str(state)])

    assert result.exit_code == 2
    assert "src/index.js" in result.output
    assert "Expected:" in result.output
    assert "differs from verified state" in result.output


def test_ship_failed_gate_exits_two(repo: Path, make_record) -> None:
    _saved_state(repo, make_record, tests="failed")
    result = runner.invoke(cli, ["ship", "--repo-root", str(repo)])
    assert result.exit_code == 2
    assert "Gates not passed (tests)" in result.output


def test_ship_dry_run_prints_gh_command(git_repo: Path, make_record, monkeypatch) -> None:
    subprocess.run(["git", "checkout", "-b", "feature/x"], cwd=git_repo, check=True, capture_output=True)
    _saved_state(git_repo, make_record)
    monkeypatch.setattr("shipgate.pr.open.shutil.which", lambda name: "/usr/local/bin/gh")

    result = runner.invoke(cli, ["ship", "--repo-root", str(git_repo), "--dry-run", "--create-pr"])

    assert result.exit_code == 0, result.output
    assert "DRY RUN MODE" in result.output
    assert "[DRY RUN] Would execute: /usr/local/bin/gh pr create" in result.output
