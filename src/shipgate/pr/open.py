"""Pull request creation through the GitHub CLI."""

from __future__ import annotations

import shlex
import shutil
from dataclasses import dataclass
from typing import TYPE_CHECKING

from shipgate.errors import PullRequestError
from shipgate.git.vcs import current_branch, default_branch
from shipgate.utils.exec import ExecError, run_command

if TYPE_CHECKING:
    from pathlib import Path

    from shipgate.integrity.snapshot import IntegrityReport
    from shipgate.verify.record import VerificationRecord


@dataclass(frozen=True)
class PullRequestPlan:
    """Everything needed to run ``gh pr create``."""

    title: str
    body: str
    base: str
    head: str
    argv: tuple[str, ...]

    def rendered_command(self) -> str:
        return shlex.join(self.argv)


def _status(flag: bool) -> str:
    return "PASS" if flag else "FAIL"


def render_pr_title(branch: str) -> str:
    return f"[Verified] {branch}"


def render_pr_body(record: VerificationRecord, integrity: IntegrityReport) -> str:
    summary = record.summary
    review = record.ai_review
    lines = [
        "## Verification Summary",
        "",
        f"- **Timestamp:** {record.timestamp}",
        f"- **Files Verified:** {len(integrity.verified)}/{integrity.total}",
        f"- **Tests:** {_status(summary.tests_pass)}" + (" (skipped)" if record.tests.status == "skipped" else ""),
        f"- **Lint:** {_status(summary.lint_pass)}" + (" (skipped)" if record.lint.status == "skipped" else ""),
        f"- **Security Audit:** {_status(summary.audit_pass)}",
        f"- **AI Review:** {_status(summary.ai_review_pass)}" + (" (skipped)" if review.status == "skipped" else ""),
    ]
    if review.status != "skipped":
        lines.append(f"  - Security Risk: {review.security_risk} ({review.security_issues} issues)")
        lines.append(f"  - Code Quality: {review.code_quality} ({review.quality_issues} issues)")
    lines.extend(
        [
            "",
            "## File Integrity",
            "",
            f"All {len(integrity.verified)} files match their verified hashes.",
            "",
            "## Checklist",
            "",
            "- [x] Verification passed",
            "- [x] File integrity confirmed",
            "- [ ] Human review completed",
            "",
        ]
    )
    return "\n".join(lines)


def plan_pull_request(
    repo_root: Path,
    record: VerificationRecord,
    integrity: IntegrityReport,
    *,
    gh_path: str | None = None,
) -> PullRequestPlan:
    """Check preconditions and build the ``gh pr create`` invocation.

    Raises:
        PullRequestError: No current branch, current branch is the default
            branch, or ``gh`` is not installed
    """
    branch = current_branch(repo_root)
    if not branch:
        raise PullRequestError("Could not determine current branch")

    base = default_branch(repo_root)
    if branch == base:
        raise PullRequestError(f"Cannot create PR from {base} branch")

    gh = gh_path or shutil.which("gh")
    if not gh:
        raise PullRequestError("GitHub CLI (gh) not found. Install it or create the PR manually.")

    title = render_pr_title(branch)
    body = render_pr_body(record, integrity)
    argv = (gh, "pr", "create", "--title", title, "--body", body, "--base", base, "--head", branch)
    return PullRequestPlan(title=title, body=body, base=base, head=branch, argv=argv)


def open_pull_request(plan: PullRequestPlan, repo_root: Path) -> str | None:
    """Run ``gh pr create``; return the PR URL when gh prints one.

    Raises:
        PullRequestError: If gh exits non-zero or cannot be started
    """
    try:
        created = run_command(list(plan.argv), cwd=repo_root, check=True)
    except ExecError as exc:
        raise PullRequestError(f"Failed to create pull request: {exc.result.detail()}") from exc
    except OSError as exc:
        raise PullRequestError(f"Failed to create pull request: {exc}") from exc
    return _extract_pr_url(created.stdout)


def _extract_pr_url(stdout_text: str) -> str | None:
    for line in stdout_text.splitlines():
        value = line.strip()
        if value.startswith("http://") or value.startswith("https://"):
            return value
    return None
