"""Git collaborator: diffs and branch detection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from shipgate.utils.exec import ExecResult, run_command

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

MAX_DIFF_CHARS = 1024 * 1024


def _git(repo_root: Path, args: list[str]) -> ExecResult | None:
    try:
        return run_command(["git", *args], cwd=repo_root, check=False)
    except OSError as exc:
        logger.warning("git unavailable: %s", exc)
        return None


def working_diff(repo_root: Path) -> str | None:
    """Staged plus unstaged changes against HEAD.

    Falls back to ``git diff --cached`` when HEAD does not exist yet.
    Returns None when git is unavailable or nothing changed.
    """
    result = _git(repo_root, ["diff", "HEAD"])
    if result is None:
        return None
    if not result.ok:
        result = _git(repo_root, ["diff", "--cached"])
        if result is None or not result.ok:
            logger.info("Git diff not available")
            return None
    diff = result.stdout
    if len(diff) > MAX_DIFF_CHARS:
        diff = diff[:MAX_DIFF_CHARS] + "\n\n... [truncated] ..."
    return diff if diff.strip() else None


def current_branch(repo_root: Path) -> str | None:
    """Return the current branch name, or None when detached or unavailable."""
    result = _git(repo_root, ["rev-parse", "--abbrev-ref", "HEAD"])
    if result is None or not result.ok:
        return None
    branch = result.stdout.strip()
    if branch == "HEAD":
        return None
    return branch or None


def default_branch(repo_root: Path, remote: str = "origin") -> str:
    """Detect the remote's default branch.

    Tries the cached ``refs/remotes/<remote>/HEAD`` symref, then
    ``git remote show``, then falls back to ``main`` if it exists locally,
    otherwise ``master``.
    """
    symref = _git(repo_root, ["symbolic-ref", "--short", f"refs/remotes/{remote}/HEAD"])
    if symref is not None and symref.ok and symref.stdout.strip():
        return symref.stdout.strip().split("/", 1)[-1]

    shown = _git(repo_root, ["remote", "show", remote])
    if shown is not None and shown.ok:
        for line in shown.stdout.splitlines():
            if "HEAD branch" in line:
                name = line.split(":", 1)[1].strip()
                if name and name != "(unknown)":
                    return name

    has_main = _git(repo_root, ["show-ref", "--verify", "--quiet", "refs/heads/main"])
    return "main" if has_main is not None and has_main.ok else "master"
