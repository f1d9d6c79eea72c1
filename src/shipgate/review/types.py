"""AI review types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ReviewKind = Literal["security", "quality"]

SEVERITY_RANK: dict[str, int] = {"CRITICAL": 4, "HIGH": 3, "MEDIUM": 2, "LOW": 1}

RISK_TIERS = ("LOW", "MEDIUM", "HIGH", "CRITICAL")
QUALITY_TIERS = ("EXCELLENT", "GOOD", "ACCEPTABLE", "NEEDS_WORK")

ACCEPTABLE_RISK = frozenset({"LOW", "MEDIUM"})
ACCEPTABLE_QUALITY = frozenset({"EXCELLENT", "GOOD", "ACCEPTABLE"})

UNKNOWN_TIER = "UNKNOWN"


@dataclass(frozen=True)
class ReviewFinding:
    """One issue reported by the reviewer."""

    severity: str
    location: str
    description: str
    recommendation: str = ""

    @property
    def rank(self) -> int:
        """Ordering key; unrecognised severities rank below LOW."""
        return SEVERITY_RANK.get(self.severity, 0)

    def to_dict(self, kind: ReviewKind) -> dict[str, Any]:
        if kind == "security":
            return {
                "severity": self.severity,
                "location": self.location,
                "description": self.description,
                "recommendation": self.recommendation,
            }
        return {
            "priority": self.severity,
            "location": self.location,
            "description": self.description,
            "suggestion": self.recommendation,
        }


@dataclass(frozen=True)
class ReviewVerdict:
    """Structured outcome of one review request.

    ``raw`` is set when no strategy could extract a structured document; the
    verdict then carries the response text as its summary and no findings,
    and must be read as inconclusive.
    """

    kind: ReviewKind
    tier: str | None
    summary: str
    findings: tuple[ReviewFinding, ...] = ()
    highlights: tuple[str, ...] = ()
    strategy: str | None = None
    raw: bool = False

    @property
    def acceptable(self) -> bool:
        """Tier sits within the passing threshold for its kind."""
        if self.tier is None:
            return False
        allowed = ACCEPTABLE_RISK if self.kind == "security" else ACCEPTABLE_QUALITY
        return self.tier in allowed

    @property
    def inconclusive(self) -> bool:
        return self.raw or self.tier is None

    def sorted_findings(self) -> list[ReviewFinding]:
        return sorted(self.findings, key=lambda f: -f.rank)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "summary": self.summary,
            "issues": [f.to_dict(self.kind) for f in self.findings],
        }
        if self.kind == "security":
            payload["overallRisk"] = self.tier
            payload["positives"] = list(self.highlights)
        else:
            payload["overallQuality"] = self.tier
            payload["strengths"] = list(self.highlights)
        if self.raw:
            payload["raw"] = True
        if self.strategy:
            payload["strategy"] = self.strategy
        return payload
