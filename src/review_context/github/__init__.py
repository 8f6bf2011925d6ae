"""GitHub integration for the context collectors."""

from review_context.github.client import GitHubClient
from review_context.github.history import GitHubReviewHistory

__all__ = [
    "GitHubClient",
    "GitHubReviewHistory",
]
