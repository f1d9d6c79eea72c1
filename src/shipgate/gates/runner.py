"""Gate runner: invoke an external command and classify the outcome."""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import replace
from typing import TYPE_CHECKING

from shipgate.errors import GateExecutionError
from shipgate.gates.types import GateResult
from shipgate.utils.exec import run_command, split_command

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from shipgate.config import GateCommand

logger = logging.getLogger(__name__)

OUTPUT_TAIL_CHARS = 20000

NPM_TEST_COMMAND = "npm test"
NPM_LINT_COMMAND = "npm run lint"
NPM_AUDIT_COMMAND = "npm audit --json --audit-level=high"


def _tail(text: str) -> str:
    text = text.strip()
    if len(text) <= OUTPUT_TAIL_CHARS:
        return text
    return "... [truncated] ...\n" + text[-OUTPUT_TAIL_CHARS:]


def run_gate(
    name: str,
    command: str | list[str] | None,
    description: str,
    *,
    cwd: Path,
    skip_reason: str | None = None,
    timeout: float | None = None,
    classify: Callable[[GateResult], GateResult] | None = None,
) -> GateResult:
    """Run one gate command to completion with output captured.

    Args:
        name: Gate identifier (tests, lint, audit)
        command: Command line or argv; None when the capability is absent
        description: Human-readable label used in logs and the record
        cwd: Working directory for the command
        skip_reason: Reason recorded when ``command`` is None
        timeout: Optional wall-clock bound in seconds
        classify: Optional re-classification applied to the full, untruncated
            output before it is tailed for the record

    Returns:
        GateResult. Never raises: invocation errors become a failed result.
    """
    if command is None:
        reason = skip_reason or "not configured"
        logger.info("Skipping %s (%s)", description, reason)
        return GateResult.skipped(name, reason, description)

    rendered = command if isinstance(command, str) else " ".join(command)
    logger.info("%s: %s", description, rendered)

    try:
        argv = split_command(command)
        if not argv:
            raise GateExecutionError("empty command")
        result = run_command(argv, cwd=cwd, check=False, timeout=timeout)
    except subprocess.TimeoutExpired as exc:
        err = GateExecutionError(f"{description} timed out after {exc.timeout}s")
        return _execution_failure(name, description, rendered, err)
    except (OSError, ValueError, GateExecutionError) as exc:
        err = GateExecutionError(f"{description} could not be started: {exc}")
        return _execution_failure(name, description, rendered, err)

    if result.ok:
        gate = GateResult(
            name=name,
            status="passed",
            description=description,
            command=rendered,
            exit_code=result.returncode,
            output=result.stdout.strip(),
            error=result.stderr.strip(),
        )
    else:
        logger.warning("%s failed with exit code %s", description, result.returncode)
        gate = GateResult(
            name=name,
            status="failed",
            description=description,
            command=rendered,
            exit_code=result.returncode,
            output=result.stdout.strip(),
            error=result.stderr.strip() or f"exit code {result.returncode}",
        )

    if classify is not None:
        gate = classify(gate)
    return replace(gate, output=_tail(gate.output), error=_tail(gate.error))


def _execution_failure(name: str, description: str, rendered: str, exc: GateExecutionError) -> GateResult:
    logger.error("%s", exc)
    return GateResult(
        name=name,
        status="failed",
        description=description,
        command=rendered,
        error=str(exc),
    )


def _package_scripts(repo_root: Path) -> tuple[dict[str, str] | None, str | None]:
    package_json = repo_root / "package.json"
    if not package_json.exists():
        return None, "no package.json"
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read %s: %s", package_json, exc)
        return None, "unreadable package.json"
    scripts = data.get("scripts") if isinstance(data, dict) else None
    return (scripts if isinstance(scripts, dict) else {}), None


def resolve_gate_command(name: str, repo_root: Path, configured: GateCommand) -> tuple[str | None, str | None]:
    """Pick the command for a gate.

    Configured commands win. Otherwise ``package.json`` is consulted: a
    declared ``test``/``lint`` script enables those gates, and its presence
    alone enables ``npm audit``.

    Returns:
        Tuple of (command, skip_reason); exactly one is None.
    """
    if configured.command:
        return configured.command, None

    scripts, problem = _package_scripts(repo_root)
    if scripts is None:
        return None, problem if name != "audit" else f"no audit command ({problem})"

    if name == "tests":
        return (NPM_TEST_COMMAND, None) if scripts.get("test") else (None, "no test script")
    if name == "lint":
        return (NPM_LINT_COMMAND, None) if scripts.get("lint") else (None, "no lint script")
    if name == "audit":
        return NPM_AUDIT_COMMAND, None
    raise ValueError(f"unknown gate: {name}")
