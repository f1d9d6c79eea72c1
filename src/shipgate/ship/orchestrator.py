"""Ship orchestrator: re-validate the verified tree, then release.

A ship attempt moves LOADED -> INTEGRITY_CHECKED -> DECIDED and ends in
SHIPPED or DENIED. DENIED never reaches the release action, dry-run included.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from shipgate.errors import IntegrityViolation, PullRequestError
from shipgate.integrity.snapshot import IntegrityReport, compare_snapshot
from shipgate.pr.open import PullRequestPlan, open_pull_request, plan_pull_request
from shipgate.utils.timestamps import parse_timestamp, utc_now
from shipgate.verify.record import VerificationRecord, load_record

if TYPE_CHECKING:
    from shipgate.config import ShipConfig

logger = logging.getLogger(__name__)


class ShipState(str, Enum):
    """Ship attempt lifecycle."""

    START = "start"
    LOADED = "loaded"
    INTEGRITY_CHECKED = "integrity_checked"
    DECIDED = "decided"
    SHIPPED = "shipped"
    DENIED = "denied"


_TRANSITIONS: dict[ShipState, tuple[ShipState, ...]] = {
    ShipState.START: (ShipState.LOADED,),
    ShipState.LOADED: (ShipState.INTEGRITY_CHECKED,),
    ShipState.INTEGRITY_CHECKED: (ShipState.DECIDED,),
    ShipState.DECIDED: (ShipState.SHIPPED, ShipState.DENIED),
    ShipState.SHIPPED: (),
    ShipState.DENIED: (),
}


@dataclass(frozen=True)
class ShipDecision:
    """Derived outcome of a ship attempt. Never persisted."""

    state: ShipState
    record: VerificationRecord
    integrity: IntegrityReport
    failed_gates: list[str]
    age_hours: float
    stale: bool
    dry_run: bool = False
    pr_plan: PullRequestPlan | None = None
    pr_url: str | None = None
    pr_error: str | None = None

    @property
    def allowed(self) -> bool:
        return self.state == ShipState.SHIPPED

    @property
    def gates_pass(self) -> bool:
        return not self.failed_gates

    def raise_for_denial(self) -> None:
        """Raise IntegrityViolation when the tree drifted from the snapshot."""
        if not self.integrity.intact:
            raise IntegrityViolation(self.integrity.modified, self.integrity.missing)


@dataclass
class ShipAttempt:
    """Explicit state holder for one ship attempt."""

    config: ShipConfig
    now: Callable[[], datetime] = utc_now
    state: ShipState = ShipState.START
    record: VerificationRecord | None = None
    integrity: IntegrityReport | None = None
    failed_gates: list[str] = field(default_factory=list)

    def _advance(self, target: ShipState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid ship transition {self.state.value} -> {target.value}")
        logger.debug("ship: %s -> %s", self.state.value, target.value)
        self.state = target

    def _loaded(self) -> VerificationRecord:
        if self.record is None:
            raise RuntimeError(f"ship attempt has no record in state {self.state.value}")
        return self.record

    def load(self) -> VerificationRecord:
        """Raises RecordNotFound / RecordUnreadable."""
        record = load_record(self.config.state_path)
        self.record = record
        self._advance(ShipState.LOADED)
        return record

    def check_integrity(self) -> IntegrityReport:
        record = self._loaded()
        self.integrity = compare_snapshot(self.config.repo_root, record.hashes)
        self._advance(ShipState.INTEGRITY_CHECKED)
        return self.integrity

    def decide(self) -> bool:
        record = self._loaded()
        if self.integrity is None:
            raise RuntimeError(f"ship attempt has no integrity report in state {self.state.value}")
        self.failed_gates = [name for name, ok in record.summary.as_items() if not ok]
        self._advance(ShipState.DECIDED)
        return record.overall_pass and not self.failed_gates and self.integrity.intact

    def finish(self, allowed: bool) -> None:
        self._advance(ShipState.SHIPPED if allowed else ShipState.DENIED)

    def age_hours(self) -> float:
        recorded = parse_timestamp(self._loaded().timestamp)
        return (self.now() - recorded).total_seconds() / 3600


def run_ship(
    config: ShipConfig,
    *,
    now: Callable[[], datetime] = utc_now,
    gh_path: str | None = None,
) -> ShipDecision:
    """Run one ship attempt.

    Args:
        config: Ship inputs
        now: Clock used for the staleness warning
        gh_path: Explicit gh executable (defaults to PATH lookup)

    Returns:
        ShipDecision in state SHIPPED or DENIED

    Raises:
        RecordNotFound: If no verification record exists
        RecordUnreadable: If the record cannot be parsed or validated
    """
    attempt = ShipAttempt(config=config, now=now)
    record = attempt.load()

    age = attempt.age_hours()
    stale = age > config.stale_after_hours
    if stale:
        logger.warning("Verification is %.1f hours old; consider re-running verify", age)

    integrity = attempt.check_integrity()
    allowed = attempt.decide()
    attempt.finish(allowed)

    decision = ShipDecision(
        state=attempt.state,
        record=record,
        integrity=integrity,
        failed_gates=list(attempt.failed_gates),
        age_hours=age,
        stale=stale,
        dry_run=config.dry_run,
    )
    if not allowed:
        logger.error(
            "Ship denied: failed gates=%s modified=%d missing=%d",
            decision.failed_gates,
            len(integrity.modified),
            len(integrity.missing),
        )
        return decision

    if not config.create_pr:
        return decision

    try:
        plan = plan_pull_request(config.repo_root, record, integrity, gh_path=gh_path)
    except PullRequestError as exc:
        logger.error("%s", exc)
        return _with_pr(decision, error=str(exc))

    if config.dry_run:
        logger.info("[DRY RUN] Would execute: %s", plan.rendered_command())
        return _with_pr(decision, plan=plan)

    try:
        url = open_pull_request(plan, config.repo_root)
    except PullRequestError as exc:
        logger.error("%s", exc)
        return _with_pr(decision, plan=plan, error=str(exc))
    return _with_pr(decision, plan=plan, url=url)


def _with_pr(
    decision: ShipDecision,
    *,
    plan: PullRequestPlan | None = None,
    url: str | None = None,
    error: str | None = None,
) -> ShipDecision:
    return dataclasses.replace(decision, pr_plan=plan, pr_url=url, pr_error=error)
