"""Build the code context sent alongside review prompts."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from shipgate.git.vcs import working_diff

if TYPE_CHECKING:
    from shipgate.config import ReviewSettings

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n... [truncated] ..."
MIN_CONTEXT_CHARS = 50


@dataclass(frozen=True)
class SourceFile:
    path: str
    content: str
    truncated: bool = False


@dataclass(frozen=True)
class CodeContext:
    """Assembled review input."""

    text: str
    files: tuple[str, ...]
    used_diff: bool

    @property
    def reviewable(self) -> bool:
        return len(self.text.strip()) >= MIN_CONTEXT_CHARS


def find_source_files(repo_root: Path, extensions: tuple[str, ...]) -> list[str]:
    """List reviewable files under ``src/``, skipping dot-entries and node_modules."""
    src = repo_root / "src"
    if not src.is_dir():
        return []
    wanted = set(extensions)
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(src):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith(".") and d != "node_modules")
        for name in sorted(filenames):
            if name.startswith(".") or os.path.splitext(name)[1] not in wanted:
                continue
            found.append((Path(dirpath) / name).relative_to(repo_root).as_posix())
    return sorted(found)


def read_source_files(repo_root: Path, paths: list[str], max_chars: int) -> list[SourceFile]:
    """Read files, truncating each past ``max_chars`` with an explicit marker."""
    contents: list[SourceFile] = []
    for rel in paths:
        try:
            content = (repo_root / rel).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning("Could not read %s: %s", rel, exc)
            continue
        truncated = len(content) > max_chars
        if truncated:
            content = content[:max_chars] + TRUNCATION_MARKER
        contents.append(SourceFile(path=rel, content=content, truncated=truncated))
    return contents


def render_context(files: list[SourceFile], diff: str | None) -> str:
    sections: list[str] = []
    if diff:
        sections.append("## Git Diff (Changes to Review)\n\n```diff\n" + diff + "\n```\n\n")
    if files:
        sections.append("## Source Files\n\n")
        for source in files:
            ext = os.path.splitext(source.path)[1].lstrip(".") or "text"
            sections.append(f"### {source.path}\n\n```{ext}\n{source.content}\n```\n\n")
    return "".join(sections)


def build_code_context(
    repo_root: Path,
    settings: ReviewSettings,
    *,
    files: tuple[str, ...] = (),
    use_diff: bool = False,
) -> CodeContext:
    """Gather review input from explicit files, the working diff, or ``src/``.

    Explicit files take precedence. In diff mode an empty or unavailable
    diff falls back to the ``src/`` tree.
    """
    diff: str | None = None
    if files:
        paths = list(files)
    elif use_diff:
        diff = working_diff(repo_root)
        if diff:
            paths = []
        else:
            logger.info("No git changes detected; reviewing src/ files")
            paths = find_source_files(repo_root, settings.extensions)
    else:
        paths = find_source_files(repo_root, settings.extensions)

    sources = read_source_files(repo_root, paths, settings.max_file_chars)
    return CodeContext(
        text=render_context(sources, diff),
        files=tuple(s.path for s in sources),
        used_diff=bool(diff),
    )
