"""Pytest configuration and fixtures for shipgate tests."""
from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from shipgate.gates.types import GateResult
from shipgate.verify.record import ReviewGate, VerificationRecord


def pytest_sessionfinish(session, exitstatus):
    """Check that coverage data was collected if --cov was requested.

    This prevents silent "no data collected" scenarios that produce 0% coverage
    without failing the test run.
    """
    cov_enabled = any("--cov" in str(arg) for arg in session.config.args)
    if not cov_enabled:
        return

    coverage_files = list(Path.cwd().glob(".coverage*"))
    if not coverage_files:
        pytest.exit(
            "Coverage was enabled but no data was collected. "
            "Check that tests import from 'shipgate' (the package) not 'src/shipgate' (filesystem path).",
            returncode=1,
        )


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)
    return result.stdout.strip()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """A committed repository on ``main`` with one source file."""
    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init", "-b", "main")
    _git(repo, "config", "user.email", "test@example.com")
    _git(repo, "config", "user.name", "Test User")
    (repo / "src").mkdir()
    (repo / "src" / "app.py").write_text("print('hello')\n", encoding="utf-8")
    _git(repo, "add", ".")
    _git(repo, "commit", "-m", "init")
    return repo


@pytest.fixture
def make_record():
    """Factory for VerificationRecord with per-gate statuses."""

    def _make(
        hashes: dict[str, str] | None = None,
        *,
        tests: str = "passed",
        lint: str = "passed",
        audit: str = "passed",
        review: str = "skipped",
        timestamp: str = "2026-01-01T12:00:00.000Z",
    ) -> VerificationRecord:
        return VerificationRecord(
            timestamp=timestamp,
            hashes=dict(hashes or {}),
            tests=GateResult(name="tests", status=tests, exit_code=0 if tests == "passed" else None),
            lint=GateResult(name="lint", status=lint, exit_code=0 if lint == "passed" else None),
            audit=GateResult(name="audit", status=audit, exit_code=0 if audit == "passed" else None),
            ai_review=ReviewGate(status=review, reason="no API key" if review == "skipped" else None),
        )

    return _make
