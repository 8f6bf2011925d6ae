"""Collector for issues referenced from the pull request description."""

import logging
import re

from github.GithubException import GithubException

from review_context.engine.base import BuildParams, ContextCollector, has_pull_request_params
from review_context.github.client import GitHubClient
from review_context.models.context import ContextBundle
from review_context.models.records import IssueComment, LinkedIssue

logger = logging.getLogger(__name__)

MAX_ISSUES = 5
MAX_COMMENTS_PER_ISSUE = 10

# Closing keywords first so "Fixes #12" ranks before a bare "#3"
ISSUE_PATTERNS = [
    re.compile(r"(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?)\s*#(\d+)", re.I),
    re.compile(r"(?:close[sd]?|fix(?:e[sd])?|resolve[sd]?)\s+(\d+)\b", re.I),
    re.compile(r"(?<![\w/])#(\d+)\b"),
]


def extract_issue_numbers(text: str) -> list[int]:
    """Referenced issue numbers in order of first mention, deduplicated."""
    numbers: list[int] = []
    for pattern in ISSUE_PATTERNS:
        for match in pattern.finditer(text):
            number = int(match.group(1))
            if number > 0 and number not in numbers:
                numbers.append(number)
    return numbers


class LinkedIssuesCollector(ContextCollector):
    """Fetches issues the PR body references, with their first comments."""

    def __init__(self, github: GitHubClient) -> None:
        self.github = github

    def name(self) -> str:
        return "linked_issues"

    def priority(self) -> int:
        return 80

    def should_collect(self, params: BuildParams) -> bool:
        if not has_pull_request_params(params):
            return False
        # Callers that pass the body explicitly must pass a non-empty one
        if "pr_body" in params:
            body = params["pr_body"]
            return isinstance(body, str) and body.strip() != ""
        return True

    def collect(self, bundle: ContextBundle, params: BuildParams) -> None:
        repo_name: str = params["repo"]
        body = params.get("pr_body") or (bundle.pull_request.body if bundle.pull_request else None)
        if not body:
            logger.debug("PR has no description, no issues to link")
            return

        own_number = params["pr_number"]
        numbers = [n for n in extract_issue_numbers(body) if n != own_number][:MAX_ISSUES]

        for number in numbers:
            try:
                issue = self.github.get_issue(repo_name, number)
            except GithubException as e:
                logger.debug(f"Could not fetch issue #{number} from {repo_name}: {e}")
                continue

            if issue.pull_request is not None:
                logger.debug(f"#{number} is a pull request, skipping")
                continue

            comments = self.github.get_issue_comments(issue, MAX_COMMENTS_PER_ISSUE)
            bundle.linked_issues.append(
                LinkedIssue(
                    number=issue.number,
                    title=issue.title or "",
                    body=issue.body,
                    state=issue.state or "open",
                    labels=[label.name for label in issue.labels],
                    comments=[IssueComment(author=c["author"], body=c["body"]) for c in comments],
                )
            )

        logger.info(f"Linked {len(bundle.linked_issues)} issues from {len(numbers)} references")
