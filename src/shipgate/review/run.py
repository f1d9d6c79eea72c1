"""Run the security and quality reviews and persist the Review Result."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from shipgate.artifacts.state_files import write_json_atomic
from shipgate.errors import ConfigurationError, ReviewError
from shipgate.gates.types import GateStatus
from shipgate.review.client import ReviewerClient
from shipgate.review.context import build_code_context
from shipgate.review.parser import parse_review_response
from shipgate.review.prompts import QUALITY_REVIEW_PROMPT, SECURITY_REVIEW_PROMPT
from shipgate.review.types import UNKNOWN_TIER, ReviewKind, ReviewVerdict
from shipgate.utils.timestamps import format_timestamp, utc_now

if TYPE_CHECKING:
    from pathlib import Path

    from shipgate.config import ReviewConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReviewOutcome:
    """Both review verdicts plus the derived pass/fail for the review gate."""

    status: GateStatus
    timestamp: str
    model: str
    files: tuple[str, ...] = ()
    used_diff: bool = False
    security: ReviewVerdict | None = None
    quality: ReviewVerdict | None = None
    security_error: str | None = None
    quality_error: str | None = None
    quality_requested: bool = True
    reason: str | None = None
    result_path: Path | None = None

    @property
    def security_risk(self) -> str:
        return (self.security.tier if self.security else None) or UNKNOWN_TIER

    @property
    def code_quality(self) -> str:
        return (self.quality.tier if self.quality else None) or UNKNOWN_TIER

    @property
    def inconclusive(self) -> bool:
        verdicts = [self.security] + ([self.quality] if self.quality_requested else [])
        return any(v is not None and v.inconclusive for v in verdicts)

    @property
    def errors(self) -> list[str]:
        return [e for e in (self.security_error, self.quality_error) if e]

    def to_result_document(self) -> dict[str, Any]:
        """The persisted Review Result document."""
        return {
            "timestamp": self.timestamp,
            "model": self.model,
            "filesReviewed": list(self.files),
            "usedDiff": self.used_diff,
            "securityReview": _review_payload(self.security, self.security_error),
            "qualityReview": _review_payload(self.quality, self.quality_error),
            "summary": {
                "securityRisk": self.security_risk,
                "codeQuality": self.code_quality,
                "passesReview": self.status == "passed",
            },
        }


def _review_payload(verdict: ReviewVerdict | None, error: str | None) -> dict[str, Any] | None:
    if error:
        return {"error": error}
    return verdict.to_dict() if verdict else None


def skipped_review(reason: str, model: str, now: datetime | None = None) -> ReviewOutcome:
    return ReviewOutcome(
        status="skipped",
        timestamp=format_timestamp(now or utc_now()),
        model=model,
        reason=reason,
    )


def _run_one(client: ReviewerClient, kind: ReviewKind, prompt: str, context: str) -> tuple[ReviewVerdict | None, str | None]:
    try:
        response = client.review(prompt, context)
    except ReviewError as exc:
        logger.error("%s review failed (%s): %s", kind.capitalize(), type(exc).__name__, exc)
        return None, f"{type(exc).__name__}: {exc}"
    verdict = parse_review_response(response, kind)
    for finding in verdict.sorted_findings():
        logger.info("  [%s] %s: %s", finding.severity, finding.location, finding.description)
    return verdict, None


def run_review(
    config: ReviewConfig,
    *,
    client: ReviewerClient | None = None,
    now: Callable[[], datetime] = utc_now,
) -> ReviewOutcome:
    """Run the security review and, unless security-focused, the quality review.

    Passing requires every requested review to come back with a tier inside
    the acceptable set. Transport/timeout/API failures and inconclusive
    (raw) verdicts fail the review.

    Raises:
        ConfigurationError: If no API key was supplied
    """
    settings = config.project.review
    if client is None:
        if not config.api_key:
            raise ConfigurationError("GEMINI_API_KEY is required for AI review")
        client = ReviewerClient(
            config.api_key,
            model=settings.model,
            endpoint=settings.endpoint,
            timeout=settings.timeout_seconds,
        )

    context = build_code_context(
        config.repo_root,
        settings,
        files=config.files,
        use_diff=config.use_diff,
    )
    if not context.reviewable:
        logger.info("No code found to review")
        return skipped_review("no code to review", client.model, now())

    logger.info("Code context size: %d characters", len(context.text))
    timestamp = format_timestamp(now())

    security, security_error = _run_one(client, "security", SECURITY_REVIEW_PROMPT, context.text)
    quality: ReviewVerdict | None = None
    quality_error: str | None = None
    if not config.security_focus:
        quality, quality_error = _run_one(client, "quality", QUALITY_REVIEW_PROMPT, context.text)

    passed = security is not None and security.acceptable
    if not config.security_focus:
        passed = passed and quality is not None and quality.acceptable

    reason = None
    if security_error or quality_error:
        reason = "review request failed"
    elif not passed:
        verdicts = [security] + ([] if config.security_focus else [quality])
        if any(v is not None and v.inconclusive for v in verdicts):
            reason = "review inconclusive"
        else:
            reason = "review tier outside acceptable threshold"

    output_path = config.resolved_output_path()
    outcome = ReviewOutcome(
        status="passed" if passed else "failed",
        timestamp=timestamp,
        model=client.model,
        files=context.files,
        used_diff=context.used_diff,
        security=security,
        quality=quality,
        security_error=security_error,
        quality_error=quality_error,
        quality_requested=not config.security_focus,
        reason=reason,
        result_path=output_path,
    )
    write_json_atomic(output_path, outcome.to_result_document())
    return outcome
