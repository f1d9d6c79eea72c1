"""Subprocess execution for gate commands and the git/gh collaborators."""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


@dataclass(frozen=True)
class ExecResult:
    """Captured outcome of one finished process."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def rendered(self) -> str:
        return shlex.join(self.argv)

    def detail(self) -> str:
        """Stderr when present, else stdout, trimmed."""
        return (self.stderr or self.stdout).strip()


class ExecError(RuntimeError):
    """A checked command exited non-zero."""

    def __init__(self, result: ExecResult):
        super().__init__(f"{result.rendered} exited with {result.returncode}: {result.detail()}")
        self.result = result


def split_command(command: str | list[str]) -> list[str]:
    """Turn a configured command line into argv. No shell is involved."""
    if isinstance(command, str):
        return shlex.split(command)
    return [str(part) for part in command]


def run_command(
    argv: list[str],
    *,
    cwd: Path,
    check: bool = True,
    timeout: float | None = None,
) -> ExecResult:
    """Run ``argv`` to completion with stdout and stderr captured.

    Raises:
        ExecError: ``check`` is set and the exit code is non-zero
        subprocess.TimeoutExpired: ``timeout`` elapsed first
        OSError: The executable could not be started
    """
    completed = subprocess.run(
        argv,
        cwd=cwd,
        capture_output=True,
        text=True,
        errors="replace",
        check=False,
        timeout=timeout,
    )
    result = ExecResult(
        argv=tuple(argv),
        returncode=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
    )
    if check and not result.ok:
        raise ExecError(result)
    return result
