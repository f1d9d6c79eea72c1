"""Extract structured review verdicts from free-form model responses.

Models are asked for JSON but routinely wrap it in markdown fences or
surround it with prose. Extraction runs an ordered list of named strategies;
the first ``Matched`` wins. When none match, the verdict degrades to the raw
text with ``raw=True``.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from shipgate.review.types import (
    QUALITY_TIERS,
    RISK_TIERS,
    ReviewFinding,
    ReviewKind,
    ReviewVerdict,
)

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```[^\n`]*\n(.*?)```", re.DOTALL)


@dataclass(frozen=True)
class Matched:
    payload: dict[str, Any]


@dataclass(frozen=True)
class NoMatch:
    reason: str


StrategyResult = Matched | NoMatch


@dataclass(frozen=True)
class Strategy:
    """A named extraction attempt."""

    name: str
    extract: Callable[[str], StrategyResult]


def _load_object(candidate: str) -> StrategyResult:
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as exc:
        return NoMatch(f"invalid JSON: {exc.msg} at line {exc.lineno} column {exc.colno}")
    if not isinstance(value, dict):
        return NoMatch(f"JSON value is {type(value).__name__}, not an object")
    return Matched(value)


def parse_whole_text(text: str) -> StrategyResult:
    """Strategy 1: the trimmed response is the document."""
    stripped = text.strip()
    if not stripped:
        return NoMatch("empty response")
    return _load_object(stripped)


def parse_fenced_block(text: str) -> StrategyResult:
    """Strategy 2: the interior of a fenced block, optionally language-tagged."""
    blocks = _FENCE.findall(text)
    if not blocks:
        return NoMatch("no fenced block")
    last: StrategyResult = NoMatch("no fenced block")
    for block in blocks:
        last = _load_object(block.strip())
        if isinstance(last, Matched):
            return last
    return last


def balanced_object_span(text: str) -> tuple[int, int] | None:
    """Return ``(start, end)`` of the brace-balanced object at the first ``{``.

    Braces inside JSON string literals are ignored, honouring backslash
    escapes, so a ``}`` inside a value does not end the object early.
    """
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return start, index + 1
    return None


def parse_balanced_braces(text: str) -> StrategyResult:
    """Strategy 3: the brace-balanced substring starting at the first ``{``."""
    span = balanced_object_span(text)
    if span is None:
        return NoMatch("no balanced object")
    return _load_object(text[span[0]:span[1]])


STRATEGIES: tuple[Strategy, ...] = (
    Strategy("whole_text", parse_whole_text),
    Strategy("fenced_block", parse_fenced_block),
    Strategy("balanced_braces", parse_balanced_braces),
)


def extract_payload(text: str) -> tuple[str, dict[str, Any]] | None:
    """Run strategies in order; return ``(strategy_name, payload)`` or None."""
    for strategy in STRATEGIES:
        result = strategy.extract(text)
        if isinstance(result, Matched):
            return strategy.name, result.payload
        logger.debug("Strategy %s: %s", strategy.name, result.reason)
    return None


def _normalize_tier(value: Any, allowed: tuple[str, ...]) -> str | None:
    if not isinstance(value, str):
        return None
    tier = value.strip().upper().replace(" ", "_")
    return tier if tier in allowed else None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _findings(issues: Any) -> tuple[ReviewFinding, ...]:
    if not isinstance(issues, list):
        return ()
    findings: list[ReviewFinding] = []
    for issue in issues:
        if not isinstance(issue, dict):
            continue
        severity = _text(issue.get("severity") or issue.get("priority") or "UNKNOWN").strip().upper()
        findings.append(
            ReviewFinding(
                severity=severity,
                location=_text(issue.get("location")),
                description=_text(issue.get("description")),
                recommendation=_text(issue.get("recommendation") or issue.get("suggestion")),
            )
        )
    return tuple(findings)


def verdict_from_payload(payload: dict[str, Any], kind: ReviewKind, strategy: str | None = None) -> ReviewVerdict:
    """Normalize an extracted JSON document into a ReviewVerdict."""
    if kind == "security":
        tier = _normalize_tier(payload.get("overallRisk"), RISK_TIERS)
        highlights = payload.get("positives")
    else:
        tier = _normalize_tier(payload.get("overallQuality"), QUALITY_TIERS)
        highlights = payload.get("strengths")

    return ReviewVerdict(
        kind=kind,
        tier=tier,
        summary=_text(payload.get("summary")),
        findings=_findings(payload.get("issues")),
        highlights=tuple(_text(h) for h in highlights) if isinstance(highlights, list) else (),
        strategy=strategy,
    )


def parse_review_response(text: str, kind: ReviewKind) -> ReviewVerdict:
    """Convert a model response into a verdict; never raises on bad input."""
    extracted = extract_payload(text)
    if extracted is None:
        logger.warning("Could not parse structured JSON from %s review response", kind)
        return ReviewVerdict(kind=kind, tier=None, summary=text, raw=True)
    strategy, payload = extracted
    return verdict_from_payload(payload, kind, strategy)
