"""Release action: pull request creation."""

from shipgate.pr.open import PullRequestPlan, open_pull_request, plan_pull_request

__all__ = ["PullRequestPlan", "open_pull_request", "plan_pull_request"]
