"""Error taxonomy for shipgate."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shipgate.integrity.snapshot import ModifiedFile


class ShipgateError(RuntimeError):
    """Base class for shipgate failures."""


class ConfigurationError(ShipgateError):
    """Raised for missing or malformed configuration and persisted state."""


class RecordNotFound(ConfigurationError):
    """Raised when the verification record does not exist."""


class RecordUnreadable(ConfigurationError):
    """Raised when the verification record cannot be parsed or validated."""


class GateExecutionError(ShipgateError):
    """Raised when an external gate command misbehaves.

    Never escapes the gate runner; it is folded into a failed GateResult.
    """


class ReviewError(ShipgateError):
    """Base class for reviewer client failures."""


class ReviewTimeout(ReviewError):
    """Raised when the review request exceeds its time bound."""


class ReviewTransportError(ReviewError):
    """Raised when the review endpoint cannot be reached."""


class ReviewApiError(ReviewError):
    """Raised when the review endpoint returns an error or unusable body."""


class IntegrityViolation(ShipgateError):
    """Raised when the tree differs from the verified snapshot."""

    def __init__(self, modified: list[ModifiedFile], missing: list[str]):
        self.modified = modified
        self.missing = missing
        parts: list[str] = []
        if modified:
            parts.append(f"{len(modified)} modified: {', '.join(m.path for m in modified)}")
        if missing:
            parts.append(f"{len(missing)} missing: {', '.join(missing)}")
        super().__init__("Integrity violation; " + "; ".join(parts))


class PullRequestError(ShipgateError):
    """Raised when the release action cannot be completed."""
