"""Tests for dependency audit classification."""

from __future__ import annotations

import json

from shipgate.gates.audit import classify_audit
from shipgate.gates.types import GateResult


def _raw(output: str, exit_code: int | None = 0, error: str = "") -> GateResult:
    status = "passed" if exit_code == 0 else "failed"
    return GateResult(name="audit", status=status, exit_code=exit_code, output=output, error=error)


def _npm_report(**counts: int) -> str:
    base = {"info": 0, "low": 0, "moderate": 0, "high": 0, "critical": 0}
    base.update(counts)
    return json.dumps({"auditReportVersion": 2, "metadata": {"vulnerabilities": base}})


def test_structured_report_with_only_low_passes_even_on_nonzero_exit() -> None:
    result = classify_audit(_raw(_npm_report(low=3, moderate=1), exit_code=1), "npm-json")
    assert result.status == "passed"
    assert result.details["method"] == "structured"
    assert result.details["confidence"] == "high"
    assert result.details["counts"]["low"] == 3


def test_structured_report_with_high_fails() -> None:
    result = classify_audit(_raw(_npm_report(high=2)), "npm-json")
    assert result.status == "failed"
    assert result.error == "2 high and 0 critical vulnerabilities"


def test_structured_report_with_critical_fails() -> None:
    result = classify_audit(_raw(_npm_report(critical=1), exit_code=1), "npm-json")
    assert result.status == "failed"
    assert "1 critical" in result.error


def test_unparseable_json_falls_back_to_heuristic() -> None:
    result = classify_audit(_raw("npm ERR! something odd", exit_code=0), "npm-json")
    assert result.status == "passed"
    assert result.details == {"method": "text_heuristic", "confidence": "low", "severity_mentions": []}


def test_heuristic_fails_on_severity_words() -> None:
    result = classify_audit(_raw("found 1 High severity vulnerability"), "text")
    assert result.status == "failed"
    assert result.details["severity_mentions"] == ["high"]


def test_heuristic_ignores_words_containing_high() -> None:
    result = classify_audit(_raw("no issues; highlighted 0 packages"), "text")
    assert result.status == "passed"


def test_heuristic_never_rescues_a_failing_command() -> None:
    result = classify_audit(_raw("all clean", exit_code=2), "text")
    assert result.status == "failed"
    assert result.error == "audit exited with code 2"


def test_skipped_and_unstarted_audits_are_unchanged() -> None:
    skipped = GateResult.skipped("audit", "no audit command (no package.json)")
    assert classify_audit(skipped, "npm-json") is skipped

    unstarted = GateResult(name="audit", status="failed", error="could not be started")
    assert classify_audit(unstarted, "npm-json") is unstarted
