"""Gate result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

GateStatus = Literal["passed", "failed", "skipped"]
GATE_STATUSES: tuple[GateStatus, ...] = ("passed", "failed", "skipped")


@dataclass(frozen=True)
class GateResult:
    """Outcome of a single gate invocation."""

    name: str
    status: GateStatus
    description: str = ""
    command: str | None = None
    exit_code: int | None = None
    output: str = ""
    error: str = ""
    reason: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Passed or skipped; skipped never counts against aggregation."""
        return self.status in ("passed", "skipped")

    @classmethod
    def skipped(cls, name: str, reason: str, description: str = "") -> GateResult:
        return cls(name=name, status="skipped", description=description, reason=reason)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": self.status,
            "description": self.description,
            "command": self.command,
            "exitCode": self.exit_code,
            "output": self.output,
            "error": self.error,
            "reason": self.reason,
        }
        if self.details:
            payload["details"] = self.details
        return payload

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> GateResult:
        status = data.get("status")
        if status not in GATE_STATUSES:
            raise ValueError(f"gate '{name}' has invalid status: {status!r}")
        return cls(
            name=name,
            status=status,
            description=data.get("description") or "",
            command=data.get("command"),
            exit_code=data.get("exitCode"),
            output=data.get("output") or "",
            error=data.get("error") or "",
            reason=data.get("reason"),
            details=dict(data.get("details") or {}),
        )
