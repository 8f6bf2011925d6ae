"""Earlier AI reviews of a pull request, read back from its review comments."""

import logging
import re
from typing import Any

from github.PullRequestComment import PullRequestComment

from review_context.github.client import GitHubClient

logger = logging.getLogger(__name__)

SEVERITY_MARKERS = {
    "🔴": "critical",
    "🟡": "warning",
    "💡": "suggestion",
    "📝": "nitpick",
}

AI_FORMAT_MARKERS = [*SEVERITY_MARKERS, "**Suggested fix:**", "AI Code Reviewer"]


class GitHubReviewHistory:
    """Review history source backed by inline review comments on the PR.

    Comments from known reviewer accounts, or formatted like an AI review, are
    grouped by the review they belong to. Each group becomes one earlier review.
    """

    AI_REVIEWER_USERS = frozenset({"github-actions[bot]", "cursor[bot]"})

    def __init__(self, github: GitHubClient, reviewer_users: list[str] | None = None) -> None:
        self.github = github
        self.reviewer_users = set(self.AI_REVIEWER_USERS) | set(reviewer_users or [])

    def recent_reviews(self, repo_name: str, pr_number: int, limit: int) -> list[dict[str, Any]]:
        """Get earlier AI reviews of a PR, newest first.

        Args:
            repo_name: Repository in "owner/name" format
            pr_number: Pull request number
            limit: Maximum number of reviews

        Returns:
            Dicts with ``run_id``, ``created_at`` and ``findings`` (each with
            ``severity``, ``title``, ``file_path`` and ``line``)
        """
        pr = self.github.get_pull_request(repo_name, pr_number)
        reviews: dict[int, dict[str, Any]] = {}

        for comment in pr.get_review_comments():
            if comment.user is None or comment.user.login is None:
                continue
            if comment.user.login not in self.reviewer_users and not self._has_ai_format(comment.body):
                continue

            review_id = comment.pull_request_review_id or comment.id
            created_at = comment.created_at.isoformat() if comment.created_at else ""
            review = reviews.setdefault(
                review_id, {"run_id": review_id, "created_at": created_at, "findings": []}
            )
            review["created_at"] = max(review["created_at"], created_at)
            review["findings"].append(self._parse_finding(comment))

        ordered = sorted(reviews.values(), key=lambda r: r["created_at"], reverse=True)
        logger.debug(f"Found {len(ordered)} earlier AI reviews on {repo_name}#{pr_number}")
        return ordered[:limit]

    def _has_ai_format(self, body: str | None) -> bool:
        return bool(body) and any(marker in body for marker in AI_FORMAT_MARKERS)

    def _parse_finding(self, comment: PullRequestComment) -> dict[str, Any]:
        body = comment.body or ""

        severity = "unknown"
        for emoji, name in SEVERITY_MARKERS.items():
            if emoji in body:
                severity = name
                break

        title_match = re.search(r"\*\*([^*]+)\*\*", body)
        return {
            "severity": severity,
            "title": title_match.group(1) if title_match else "Unknown Issue",
            "file_path": comment.path,
            "line": comment.line or comment.original_line or 0,
        }
