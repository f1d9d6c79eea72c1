"""File snapshotting and re-verification."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from shipgate.artifacts.state_files import sha256_file

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from shipgate.config import SnapshotSettings

logger = logging.getLogger(__name__)

DIGEST_PREFIX_LEN = 8


def discover_files(repo_root: Path, settings: SnapshotSettings) -> list[str]:
    """Return sorted repo-relative POSIX paths that belong in the snapshot.

    Walks the configured roots, or ``src/`` when present, or the whole tree.
    Dot-prefixed entries and excluded directory names are skipped.
    """
    root = repo_root.resolve()
    if settings.roots:
        bases = [root / r for r in settings.roots]
    elif (root / "src").is_dir():
        bases = [root / "src"]
    else:
        logger.info("No src/ directory found; scanning %s", root)
        bases = [root]

    extensions = set(settings.extensions)
    excluded = set(settings.exclude_dirs)
    found: set[str] = set()
    for base in bases:
        if not base.is_dir():
            logger.warning("Snapshot root does not exist: %s", base)
            continue
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith(".") and d not in excluded)
            for name in filenames:
                if name.startswith("."):
                    continue
                if os.path.splitext(name)[1] not in extensions:
                    continue
                full = Path(dirpath) / name
                if full.is_file():
                    found.add(full.relative_to(root).as_posix())
    return sorted(found)


def build_snapshot(repo_root: Path, paths: Iterable[str]) -> dict[str, str]:
    """Hash each path; files that vanish mid-walk are logged and left out."""
    hashes: dict[str, str] = {}
    for rel in paths:
        try:
            hashes[rel] = sha256_file(resolve_snapshot_path(repo_root, rel))
        except OSError as exc:
            logger.error("Error hashing %s: %s", rel, exc)
    return dict(sorted(hashes.items()))


def resolve_snapshot_path(repo_root: Path, rel: str) -> Path:
    """Map a recorded path back onto the tree, refusing escapes from the root."""
    pure = PurePosixPath(rel)
    if pure.is_absolute() or ".." in pure.parts:
        raise ValueError(f"Snapshot path escapes repository root: {rel}")
    return repo_root.joinpath(*pure.parts)


@dataclass(frozen=True)
class ModifiedFile:
    """A snapshot entry whose current digest differs."""

    path: str
    expected: str
    actual: str

    @property
    def expected_prefix(self) -> str:
        return self.expected[:DIGEST_PREFIX_LEN] + "..."

    @property
    def actual_prefix(self) -> str:
        return self.actual[:DIGEST_PREFIX_LEN] + "..."


@dataclass(frozen=True)
class IntegrityReport:
    """Outcome of comparing a recorded snapshot against the working tree."""

    verified: list[str] = field(default_factory=list)
    modified: list[ModifiedFile] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.verified) + len(self.modified) + len(self.missing)

    @property
    def intact(self) -> bool:
        return not self.modified and not self.missing


def compare_snapshot(repo_root: Path, hashes: Mapping[str, str]) -> IntegrityReport:
    """Re-hash every recorded path and classify it verified, modified or missing."""
    verified: list[str] = []
    modified: list[ModifiedFile] = []
    missing: list[str] = []

    for rel in sorted(hashes):
        expected = hashes[rel]
        try:
            path = resolve_snapshot_path(repo_root, rel)
        except ValueError:
            logger.error("Refusing to check out-of-tree snapshot path %s", rel)
            missing.append(rel)
            continue
        if not path.is_file():
            missing.append(rel)
            continue
        try:
            actual = sha256_file(path)
        except FileNotFoundError:
            missing.append(rel)
            continue
        if actual == expected:
            verified.append(rel)
        else:
            modified.append(ModifiedFile(path=rel, expected=expected, actual=actual))

    return IntegrityReport(verified=verified, modified=modified, missing=missing)
