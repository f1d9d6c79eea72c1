"""Verify phase."""

from shipgate.verify.orchestrator import run_verify
from shipgate.verify.record import (
    GateSummary,
    ReviewGate,
    VerificationRecord,
    load_record,
    save_record,
    summarize,
)

__all__ = [
    "GateSummary",
    "ReviewGate",
    "VerificationRecord",
    "load_record",
    "run_verify",
    "save_record",
    "summarize",
]
