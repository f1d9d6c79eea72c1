"""AI code review: context, client, response parsing."""

from shipgate.review.client import ReviewerClient
from shipgate.review.parser import STRATEGIES, parse_review_response
from shipgate.review.run import ReviewOutcome, run_review
from shipgate.review.types import ReviewFinding, ReviewVerdict

__all__ = [
    "STRATEGIES",
    "ReviewFinding",
    "ReviewOutcome",
    "ReviewVerdict",
    "ReviewerClient",
    "parse_review_response",
    "run_review",
]
