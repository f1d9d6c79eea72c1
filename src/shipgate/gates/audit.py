"""Dependency audit classification.

Two methods, recorded on the gate result under ``details.method``:

- ``structured``: the auditor's JSON report (``npm audit --json``) is parsed
  and the gate passes only when it lists zero high and zero critical
  vulnerabilities. When the report parses, it is authoritative.
- ``text_heuristic``: used when no structured report is available. The gate
  passes only when the command exited zero AND its output mentions neither
  "high" nor "critical". Confidence is recorded as ``low``; the heuristic can
  fail a gate but never rescue one whose command failed.
"""

from __future__ import annotations

import dataclasses
import json
import re
from typing import Any

from shipgate.gates.types import GateResult

BLOCKING_SEVERITIES = ("high", "critical")
_SEVERITY_WORD = re.compile(r"\b(high|critical)\b", re.IGNORECASE)


def _structured_counts(output: str) -> dict[str, int] | None:
    try:
        report = json.loads(output)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(report, dict):
        return None
    metadata = report.get("metadata")
    if not isinstance(metadata, dict):
        return None
    vulnerabilities = metadata.get("vulnerabilities")
    if not isinstance(vulnerabilities, dict):
        return None
    counts: dict[str, int] = {}
    for severity, count in vulnerabilities.items():
        if isinstance(count, int) and not isinstance(count, bool):
            counts[str(severity)] = count
    return counts


def classify_audit(raw: GateResult, fmt: str) -> GateResult:
    """Reclassify a raw audit gate result from the auditor's own output."""
    if raw.status == "skipped" or (raw.status == "failed" and raw.exit_code is None):
        # nothing ran
        return raw

    counts = _structured_counts(raw.output) if fmt == "npm-json" else None
    if counts is not None:
        blocking = {sev: counts.get(sev, 0) for sev in BLOCKING_SEVERITIES}
        passed = sum(blocking.values()) == 0
        details: dict[str, Any] = {"method": "structured", "confidence": "high", "counts": counts}
        error = f"{blocking['high']} high and {blocking['critical']} critical vulnerabilities"
        return dataclasses.replace(
            raw,
            status="passed" if passed else "failed",
            error=raw.error if passed else error,
            details=details,
        )

    combined = f"{raw.output}\n{raw.error}"
    hits = sorted({m.group(1).lower() for m in _SEVERITY_WORD.finditer(combined)})
    passed = raw.exit_code == 0 and not hits
    reasons: list[str] = []
    if raw.exit_code != 0:
        reasons.append(f"audit exited with code {raw.exit_code}")
    if hits:
        reasons.append(f"output mentions {', '.join(hits)} severity")
    return dataclasses.replace(
        raw,
        status="passed" if passed else "failed",
        error=raw.error if passed else "; ".join(reasons),
        details={"method": "text_heuristic", "confidence": "low", "severity_mentions": hits},
    )
