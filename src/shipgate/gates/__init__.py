"""Quality gates run during verification."""

from shipgate.gates.audit import classify_audit
from shipgate.gates.runner import resolve_gate_command, run_gate
from shipgate.gates.types import GateResult

__all__ = ["GateResult", "classify_audit", "resolve_gate_command", "run_gate"]
