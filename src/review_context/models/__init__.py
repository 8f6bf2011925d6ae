"""Data models for the review context engine."""

from review_context.models.context import ContextBundle
from review_context.models.records import (
    ChangeMetrics,
    FileChange,
    Guideline,
    ImpactedFile,
    IssueComment,
    LinkedIssue,
    PullRequestComment,
    PullRequestInfo,
    RepositoryDocs,
    ReviewSummary,
)

__all__ = [
    "ChangeMetrics",
    "ContextBundle",
    "FileChange",
    "Guideline",
    "ImpactedFile",
    "IssueComment",
    "LinkedIssue",
    "PullRequestComment",
    "PullRequestInfo",
    "RepositoryDocs",
    "ReviewSummary",
]
