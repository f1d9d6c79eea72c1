"""File integrity snapshots."""

from shipgate.integrity.snapshot import (
    IntegrityReport,
    ModifiedFile,
    build_snapshot,
    compare_snapshot,
    discover_files,
)

__all__ = ["IntegrityReport", "ModifiedFile", "build_snapshot", "compare_snapshot", "discover_files"]
