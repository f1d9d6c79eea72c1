"""Verification record: the sole persisted artifact of the verify phase."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from shipgate.artifacts.state_files import write_json_atomic
from shipgate.errors import RecordNotFound, RecordUnreadable
from shipgate.gates.types import GATE_STATUSES, GateResult, GateStatus
from shipgate.review.types import UNKNOWN_TIER
from shipgate.schemas import validate_data
from shipgate.utils.timestamps import parse_timestamp

if TYPE_CHECKING:
    from pathlib import Path

    from shipgate.review.run import ReviewOutcome

RECORD_VERSION = "1.1.0"
RECORD_SCHEMA = "verify_state"


@dataclass(frozen=True)
class ReviewGate:
    """AI review outcome as embedded in the record."""

    status: GateStatus
    reason: str | None = None
    security_risk: str = UNKNOWN_TIER
    code_quality: str = UNKNOWN_TIER
    security_issues: int = 0
    quality_issues: int = 0
    inconclusive: bool = False
    error: str | None = None
    result_path: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in ("passed", "skipped")

    @classmethod
    def from_outcome(cls, outcome: ReviewOutcome) -> ReviewGate:
        return cls(
            status=outcome.status,
            reason=outcome.reason,
            security_risk=outcome.security_risk,
            code_quality=outcome.code_quality,
            security_issues=len(outcome.security.findings) if outcome.security else 0,
            quality_issues=len(outcome.quality.findings) if outcome.quality else 0,
            inconclusive=outcome.inconclusive,
            error="; ".join(outcome.errors) or None,
            result_path=str(outcome.result_path) if outcome.result_path else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "reason": self.reason,
            "securityRisk": self.security_risk,
            "codeQuality": self.code_quality,
            "securityIssues": self.security_issues,
            "qualityIssues": self.quality_issues,
            "inconclusive": self.inconclusive,
            "error": self.error,
            "resultPath": self.result_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReviewGate:
        status = data.get("status")
        if status not in GATE_STATUSES:
            raise ValueError(f"aiReview has invalid status: {status!r}")
        return cls(
            status=status,
            reason=data.get("reason"),
            security_risk=data.get("securityRisk") or UNKNOWN_TIER,
            code_quality=data.get("codeQuality") or UNKNOWN_TIER,
            security_issues=int(data.get("securityIssues") or 0),
            quality_issues=int(data.get("qualityIssues") or 0),
            inconclusive=bool(data.get("inconclusive", False)),
            error=data.get("error"),
            result_path=data.get("resultPath"),
        )


@dataclass(frozen=True)
class GateSummary:
    """Per-gate and overall pass flags."""

    tests_pass: bool
    lint_pass: bool
    audit_pass: bool
    ai_review_pass: bool

    @property
    def overall_pass(self) -> bool:
        return self.tests_pass and self.lint_pass and self.audit_pass and self.ai_review_pass

    def as_items(self) -> list[tuple[str, bool]]:
        return [
            ("tests", self.tests_pass),
            ("lint", self.lint_pass),
            ("audit", self.audit_pass),
            ("aiReview", self.ai_review_pass),
        ]


def summarize(tests: GateResult, lint: GateResult, audit: GateResult, ai_review: ReviewGate) -> GateSummary:
    """Aggregate gate outcomes.

    Tests, lint and review pass when passed or skipped. The audit gate must
    have actually passed: once configured it has no meaningful skip state.
    """
    return GateSummary(
        tests_pass=tests.ok,
        lint_pass=lint.ok,
        audit_pass=audit.status == "passed",
        ai_review_pass=ai_review.ok,
    )


@dataclass(frozen=True)
class VerificationRecord:
    """Snapshot plus gate verdicts at verification time."""

    timestamp: str
    hashes: dict[str, str]
    tests: GateResult
    lint: GateResult
    audit: GateResult
    ai_review: ReviewGate
    version: str = RECORD_VERSION
    summary: GateSummary = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "summary", summarize(self.tests, self.lint, self.audit, self.ai_review))

    @property
    def overall_pass(self) -> bool:
        return self.summary.overall_pass

    def gates(self) -> list[GateResult]:
        return [self.tests, self.lint, self.audit]

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "files": {
                "count": len(self.hashes),
                "hashes": dict(sorted(self.hashes.items())),
            },
            "tests": self.tests.to_dict(),
            "lint": self.lint.to_dict(),
            "audit": self.audit.to_dict(),
            "aiReview": self.ai_review.to_dict(),
            "summary": {
                "filesHashed": len(self.hashes),
                "testsPass": self.summary.tests_pass,
                "lintPass": self.summary.lint_pass,
                "auditPass": self.summary.audit_pass,
                "aiReviewPass": self.summary.ai_review_pass,
                "overallPass": self.summary.overall_pass,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VerificationRecord:
        """Rebuild a record; the stored summary must match the gate results.

        Raises:
            ValueError: If the document is inconsistent
        """
        record = cls(
            version=str(data["version"]),
            timestamp=str(data["timestamp"]),
            hashes=dict(data["files"]["hashes"]),
            tests=GateResult.from_dict("tests", data["tests"]),
            lint=GateResult.from_dict("lint", data["lint"]),
            audit=GateResult.from_dict("audit", data["audit"]),
            ai_review=ReviewGate.from_dict(data["aiReview"]),
        )
        parse_timestamp(record.timestamp)
        stored = data["summary"]
        expected = record.to_dict()["summary"]
        mismatched = sorted(
            key for key in ("testsPass", "lintPass", "auditPass", "aiReviewPass", "overallPass")
            if stored.get(key) != expected[key]
        )
        if mismatched:
            raise ValueError(f"summary disagrees with gate results: {', '.join(mismatched)}")
        if data["files"].get("count") != len(record.hashes):
            raise ValueError("files.count disagrees with the number of hashes")
        return record


def save_record(path: Path, record: VerificationRecord) -> None:
    """Persist atomically so a concurrent reader never sees a partial file."""
    write_json_atomic(path, record.to_dict())


def load_record(path: Path) -> VerificationRecord:
    """Load and validate a persisted record.

    Raises:
        RecordNotFound: If the file does not exist
        RecordUnreadable: If it is not valid JSON, fails the schema, or is inconsistent
    """
    if not path.exists():
        raise RecordNotFound(
            f"Verification state not found at {path}. Run 'shipgate verify' first."
        )
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise RecordUnreadable(f"Failed to parse verification state {path}: {e}") from e

    errors = validate_data(data, RECORD_SCHEMA)
    if errors:
        raise RecordUnreadable(f"Verification state {path} failed schema validation: " + "; ".join(errors))
    try:
        return VerificationRecord.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise RecordUnreadable(f"Invalid verification state {path}: {e}") from e
