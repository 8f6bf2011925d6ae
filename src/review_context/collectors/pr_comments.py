"""Collector for the human discussion on the pull request."""

import logging
import re

from review_context.engine.base import BuildParams, ContextCollector, has_pull_request_params
from review_context.github.client import GitHubClient
from review_context.models.context import ContextBundle
from review_context.models.records import PullRequestComment

logger = logging.getLogger(__name__)

MAX_COMMENTS = 20

BOT_AUTHOR_PATTERNS = [
    re.compile(r"\[bot\]$", re.I),
    re.compile(r"^dependabot", re.I),
    re.compile(r"^renovate", re.I),
    re.compile(r"^github-actions", re.I),
    re.compile(r"^codecov", re.I),
    re.compile(r"^sonarcloud", re.I),
]

# Markers of comments posted by AI reviewers, including earlier runs of ours
AI_REVIEW_MARKERS = ["🔴", "🟡", "💡", "**Suggested fix:**", "AI Code Reviewer"]


def is_bot_author(author: str, author_type: str = "") -> bool:
    if author_type.lower() == "bot":
        return True
    return any(pattern.search(author) for pattern in BOT_AUTHOR_PATTERNS)


class PullRequestCommentsCollector(ContextCollector):
    """Collects up to 20 human comments, oldest first."""

    def __init__(self, github: GitHubClient) -> None:
        self.github = github

    def name(self) -> str:
        return "pr_comments"

    def priority(self) -> int:
        return 70

    def should_collect(self, params: BuildParams) -> bool:
        return has_pull_request_params(params)

    def collect(self, bundle: ContextBundle, params: BuildParams) -> None:
        repo_name: str = params["repo"]
        pr_number: int = params["pr_number"]

        pr = self.github.get_pull_request(repo_name, pr_number)
        raw_comments = sorted(self.github.get_pr_discussion(pr), key=lambda c: c.get("created_at") or "")

        comments: list[PullRequestComment] = []
        for raw in raw_comments:
            if len(comments) >= MAX_COMMENTS:
                break

            body = (raw.get("body") or "").strip()
            author = raw.get("author") or ""
            if not body or is_bot_author(author, raw.get("author_type") or ""):
                continue
            if any(marker in body for marker in AI_REVIEW_MARKERS):
                continue

            comments.append(
                PullRequestComment(author=author, body=body, created_at=raw.get("created_at") or "")
            )

        bundle.pr_comments = comments
        logger.info(
            f"Collected {len(comments)} of {len(raw_comments)} comments on {repo_name}#{pr_number}"
        )
