"""Collectors that populate the context bundle."""

from review_context.collectors.diff import DiffCollector
from review_context.collectors.file_context import FileContextCollector
from review_context.collectors.guidelines import GuidelinesCollector
from review_context.collectors.impact_analysis import CodeSearch, ImpactAnalysisCollector
from review_context.collectors.linked_issues import LinkedIssuesCollector
from review_context.collectors.pr_comments import PullRequestCommentsCollector
from review_context.collectors.project_context import ProjectContextCollector
from review_context.collectors.repository_context import RepositoryContextCollector
from review_context.collectors.review_history import ReviewHistoryCollector, ReviewHistorySource
from review_context.collectors.semantic import SemanticAnalyzer, SemanticCollector

__all__ = [
    "CodeSearch",
    "DiffCollector",
    "FileContextCollector",
    "GuidelinesCollector",
    "ImpactAnalysisCollector",
    "LinkedIssuesCollector",
    "ProjectContextCollector",
    "PullRequestCommentsCollector",
    "RepositoryContextCollector",
    "ReviewHistoryCollector",
    "ReviewHistorySource",
    "SemanticAnalyzer",
    "SemanticCollector",
]
