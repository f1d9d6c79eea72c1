"""shipgate - verify-then-ship release gating."""

__version__ = "0.3.0"
