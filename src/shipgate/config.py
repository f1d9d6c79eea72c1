"""Configuration for shipgate runs.

Project settings come from an optional ``shipgate.yaml`` at the repository
root and are overlaid on defaults. Per-invocation settings (flags, the
reviewer credential) are carried in explicit config structs handed to each
orchestrator entry point.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import yaml  # type: ignore[import-untyped]

from shipgate.errors import ConfigurationError

CONFIG_FILENAME = "shipgate.yaml"
DEFAULT_STATE_DIR = ".shipgate/state"
VERIFY_STATE_FILENAME = "verify-state.json"
REVIEW_RESULT_FILENAME = "ai-review.json"

DEFAULT_SNAPSHOT_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx", ".css", ".json", ".py", ".go", ".rs")
DEFAULT_REVIEW_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx", ".py", ".go", ".rs")
DEFAULT_EXCLUDE_DIRS = ("node_modules",)

DEFAULT_REVIEW_MODEL = "gemini-2.5-flash"
DEFAULT_REVIEW_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_REVIEW_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_FILE_CHARS = 50000
DEFAULT_STALE_AFTER_HOURS = 4.0

AuditFormat = Literal["npm-json", "text"]


@dataclass(frozen=True)
class GateCommand:
    """Configured command for one gate. ``None`` means auto-detect."""

    command: str | None = None
    format: AuditFormat = "text"


@dataclass(frozen=True)
class SnapshotSettings:
    """Which files make up the integrity snapshot."""

    roots: tuple[str, ...] = ()
    extensions: tuple[str, ...] = DEFAULT_SNAPSHOT_EXTENSIONS
    exclude_dirs: tuple[str, ...] = DEFAULT_EXCLUDE_DIRS


@dataclass(frozen=True)
class ReviewSettings:
    """Reviewer endpoint and context limits."""

    model: str = DEFAULT_REVIEW_MODEL
    endpoint: str = DEFAULT_REVIEW_ENDPOINT
    timeout_seconds: float = DEFAULT_REVIEW_TIMEOUT_SECONDS
    max_file_chars: int = DEFAULT_MAX_FILE_CHARS
    extensions: tuple[str, ...] = DEFAULT_REVIEW_EXTENSIONS


@dataclass(frozen=True)
class ProjectConfig:
    """Repository-level shipgate settings."""

    tests: GateCommand = field(default_factory=GateCommand)
    lint: GateCommand = field(default_factory=GateCommand)
    audit: GateCommand = field(default_factory=GateCommand)
    snapshot: SnapshotSettings = field(default_factory=SnapshotSettings)
    review: ReviewSettings = field(default_factory=ReviewSettings)
    state_dir: str = DEFAULT_STATE_DIR

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectConfig:
        """Parse and validate a config mapping into ProjectConfig."""
        gates = _section(data, "gates")
        snapshot = _section(data, "snapshot")
        review = _section(data, "review")

        audit_section = _section(gates, "audit")
        audit_format = audit_section.get("format", "text")
        if audit_format not in ("npm-json", "text"):
            raise ConfigurationError(f"gates.audit.format must be 'npm-json' or 'text', got {audit_format!r}")

        defaults = ReviewSettings()
        return cls(
            tests=GateCommand(command=_optional_str(_section(gates, "tests"), "command")),
            lint=GateCommand(command=_optional_str(_section(gates, "lint"), "command")),
            audit=GateCommand(command=_optional_str(audit_section, "command"), format=audit_format),
            snapshot=SnapshotSettings(
                roots=_str_tuple(snapshot, "roots", ()),
                extensions=_str_tuple(snapshot, "extensions", DEFAULT_SNAPSHOT_EXTENSIONS),
                exclude_dirs=_str_tuple(snapshot, "exclude_dirs", DEFAULT_EXCLUDE_DIRS),
            ),
            review=ReviewSettings(
                model=str(review.get("model", defaults.model)),
                endpoint=str(review.get("endpoint", defaults.endpoint)).rstrip("/"),
                timeout_seconds=_positive_number(review, "timeout_seconds", defaults.timeout_seconds),
                max_file_chars=int(_positive_number(review, "max_file_chars", defaults.max_file_chars)),
                extensions=_str_tuple(review, "extensions", DEFAULT_REVIEW_EXTENSIONS),
            ),
            state_dir=str(data.get("state_dir", DEFAULT_STATE_DIR)),
        )

    def state_path(self, repo_root: Path, filename: str) -> Path:
        return repo_root / self.state_dir / filename


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"'{key}' must be a non-empty string")
    return value.strip()


def _str_tuple(data: dict[str, Any], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigurationError(f"'{key}' must be a list of strings")
    return tuple(value)


def _positive_number(data: dict[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigurationError(f"'{key}' must be a positive number")
    return float(value)


def load_project_config(repo_root: Path, config_path: Path | None = None) -> ProjectConfig:
    """Load ``shipgate.yaml`` (or ``config_path``) over the defaults.

    Args:
        repo_root: Repository root used to locate the default config file
        config_path: Explicit config file; must exist when given

    Returns:
        ProjectConfig, defaults when no config file is present

    Raises:
        ConfigurationError: If the file is malformed or has invalid values
    """
    path = config_path or (repo_root / CONFIG_FILENAME)
    if not path.exists():
        if config_path is not None:
            raise ConfigurationError(f"Config file not found: {path}")
        return ProjectConfig()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Malformed YAML config at {path}: {e}") from e

    if data is None:
        return ProjectConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config at {path} must be a mapping")
    try:
        return ProjectConfig.from_dict(data)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid config structure in {path}: {e}") from e


@dataclass(frozen=True)
class ReviewConfig:
    """Inputs for one AI review run."""

    repo_root: Path
    project: ProjectConfig
    api_key: str | None
    security_focus: bool = False
    use_diff: bool = False
    files: tuple[str, ...] = ()
    output_path: Path | None = None

    def resolved_output_path(self) -> Path:
        return self.output_path or self.project.state_path(self.repo_root, REVIEW_RESULT_FILENAME)


@dataclass(frozen=True)
class VerifyConfig:
    """Inputs for one verification run."""

    repo_root: Path
    project: ProjectConfig
    api_key: str | None
    skip_tests: bool = False
    skip_lint: bool = False
    skip_ai_review: bool = False
    require_review: bool = False
    security_focus: bool = False
    use_diff: bool = False
    output_path: Path | None = None

    def resolved_output_path(self) -> Path:
        return self.output_path or self.project.state_path(self.repo_root, VERIFY_STATE_FILENAME)

    def review_config(self) -> ReviewConfig:
        return ReviewConfig(
            repo_root=self.repo_root,
            project=self.project,
            api_key=self.api_key,
            security_focus=self.security_focus,
            use_diff=self.use_diff,
            output_path=self.project.state_path(self.repo_root, REVIEW_RESULT_FILENAME),
        )


@dataclass(frozen=True)
class ShipConfig:
    """Inputs for one ship attempt."""

    repo_root: Path
    state_path: Path
    dry_run: bool = False
    create_pr: bool = False
    stale_after_hours: float = DEFAULT_STALE_AFTER_HOURS
