"""Git operations used by review and ship."""

from shipgate.git.vcs import current_branch, default_branch, working_diff

__all__ = ["current_branch", "default_branch", "working_diff"]
