"""Verification orchestrator: snapshot, gates, review, persisted record."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from shipgate.errors import ConfigurationError
from shipgate.gates.audit import classify_audit
from shipgate.gates.runner import resolve_gate_command, run_gate
from shipgate.gates.types import GateResult
from shipgate.integrity.snapshot import build_snapshot, discover_files
from shipgate.review.run import run_review
from shipgate.utils.timestamps import format_timestamp, utc_now
from shipgate.verify.record import ReviewGate, VerificationRecord, save_record

if TYPE_CHECKING:
    from pathlib import Path

    from shipgate.config import GateCommand, VerifyConfig
    from shipgate.review.client import ReviewerClient

logger = logging.getLogger(__name__)


def _is_own_output(repo_root: Path, rel: str, own_outputs: tuple[Path, ...]) -> bool:
    full = (repo_root / rel).resolve()
    return any(full == out or out in full.parents for out in own_outputs)


def _command_gate(name: str, description: str, skip: bool, repo_root: Path, configured: GateCommand) -> GateResult:
    if skip:
        logger.info("Skipping %s (flag)", name)
        return GateResult.skipped(name, "skipped by flag", description)
    command, reason = resolve_gate_command(name, repo_root, configured)
    return run_gate(name, command, description, cwd=repo_root, skip_reason=reason)


def _audit_gate(repo_root: Path, configured: GateCommand) -> GateResult:
    command, reason = resolve_gate_command("audit", repo_root, configured)
    # auto-detected audits are npm's JSON report
    fmt = configured.format if configured.command else "npm-json"
    return run_gate(
        "audit",
        command,
        "Running security audit",
        cwd=repo_root,
        skip_reason=reason,
        classify=lambda raw: classify_audit(raw, fmt),
    )


def _review_gate(
    config: VerifyConfig,
    review_client: ReviewerClient | None,
    now: Callable[[], datetime],
) -> ReviewGate:
    if config.skip_ai_review:
        logger.info("Skipping AI review (flag)")
        return ReviewGate(status="skipped", reason="skipped by flag")

    if not config.api_key and review_client is None:
        if config.require_review:
            logger.error("AI review required but GEMINI_API_KEY is not set")
            return ReviewGate(status="failed", reason="no API key", error="GEMINI_API_KEY is not set")
        logger.warning("No GEMINI_API_KEY set, skipping AI review")
        return ReviewGate(status="skipped", reason="no API key")

    try:
        outcome = run_review(config.review_config(), client=review_client, now=now)
    except (ConfigurationError, OSError) as exc:
        logger.error("AI review could not run: %s", exc)
        return ReviewGate(status="failed", reason="review could not run", error=str(exc))

    if config.require_review and outcome.status == "skipped":
        return ReviewGate(status="failed", reason=f"review required but {outcome.reason}")
    return ReviewGate.from_outcome(outcome)


def run_verify(
    config: VerifyConfig,
    *,
    review_client: ReviewerClient | None = None,
    now: Callable[[], datetime] = utc_now,
) -> VerificationRecord:
    """Run the verify phase and persist the record, pass or fail.

    Steps run strictly in order: snapshot, tests, lint, audit, security
    review, quality review. Gate failures are captured in the record and
    never raised.

    Args:
        config: Verify inputs (flags, project settings, credential)
        review_client: Optional pre-built reviewer client
        now: Clock used for the record timestamp

    Returns:
        The persisted VerificationRecord
    """
    repo_root = config.repo_root.resolve()
    project = config.project
    output_path = config.resolved_output_path()
    timestamp = format_timestamp(now())

    logger.info("Finding source files under %s", repo_root)
    own_outputs = (output_path.resolve(), config.review_config().resolved_output_path().resolve())
    state_root = (repo_root / project.state_dir).resolve()
    if state_root != repo_root:
        own_outputs += (state_root,)
    paths = [p for p in discover_files(repo_root, project.snapshot) if not _is_own_output(repo_root, p, own_outputs)]
    hashes = build_snapshot(repo_root, paths)
    logger.info("Hashed %d files", len(hashes))

    tests = _command_gate("tests", "Running tests", config.skip_tests, repo_root, project.tests)
    lint = _command_gate("lint", "Running linter", config.skip_lint, repo_root, project.lint)
    audit = _audit_gate(repo_root, project.audit)
    ai_review = _review_gate(config, review_client, now)

    record = VerificationRecord(
        timestamp=timestamp,
        hashes=hashes,
        tests=tests,
        lint=lint,
        audit=audit,
        ai_review=ai_review,
    )
    save_record(output_path, record)
    logger.info("Verification state written to %s", output_path)
    return record
