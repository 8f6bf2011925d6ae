"""GitHub API client for the context collectors."""

import logging
from typing import Any

from github import Github
from github.GithubException import GithubException
from github.Issue import Issue
from github.PullRequest import PullRequest
from github.Repository import Repository

from review_context.models.records import FileChange, PullRequestInfo

logger = logging.getLogger(__name__)


class GitHubClient:
    """Client for the GitHub API operations the collectors need."""

    def __init__(self, token: str, base_url: str | None = None) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub personal access token or app token
            base_url: Optional base URL for GitHub Enterprise
        """
        if base_url:
            self._gh = Github(token, base_url=base_url)
        else:
            self._gh = Github(token)
        # Repositories are looked up by several collectors per build
        self._repo_cache: dict[str, Repository] = {}

    def get_repo(self, repo_name: str) -> Repository:
        """Get a repository by name.

        Args:
            repo_name: Repository in "owner/name" format

        Returns:
            Repository object
        """
        if repo_name not in self._repo_cache:
            self._repo_cache[repo_name] = self._gh.get_repo(repo_name)
        return self._repo_cache[repo_name]

    def get_pull_request(self, repo_name: str, pr_number: int) -> PullRequest:
        """Get a pull request.

        Args:
            repo_name: Repository in "owner/name" format
            pr_number: Pull request number

        Returns:
            PullRequest object
        """
        repo = self.get_repo(repo_name)
        return repo.get_pull(pr_number)

    def build_pull_request_info(self, pr: PullRequest, repo_name: str) -> PullRequestInfo:
        """Extract the metadata section of the bundle from a PR."""
        return PullRequestInfo(
            number=pr.number,
            title=pr.title or "",
            body=pr.body,
            base_branch=pr.base.ref or "main",
            head_branch=pr.head.ref or "",
            head_sha=pr.head.sha or "",
            author=pr.user.login if pr.user else "",
            repository_full_name=repo_name,
            is_draft=bool(pr.draft),
            labels=[label.name for label in pr.get_labels()],
        )

    def get_pull_request_files(self, pr: PullRequest) -> list[FileChange]:
        """Get the file-level diff of a PR in API order."""
        return [
            FileChange(
                filename=file.filename,
                status=file.status or "modified",
                additions=file.additions or 0,
                deletions=file.deletions or 0,
                changes=file.changes or 0,
                patch=file.patch,
            )
            for file in pr.get_files()
        ]

    def get_file_content(self, repo_name: str, path: str, ref: str | None = None) -> str | None:
        """Get the decoded text of a file.

        Args:
            repo_name: Repository in "owner/name" format
            path: File path inside the repository
            ref: Branch, tag or commit (default branch when omitted)

        Returns:
            File text, or None if missing, a directory or not UTF-8
        """
        repo = self.get_repo(repo_name)
        try:
            if ref:
                content = repo.get_contents(path, ref=ref)
            else:
                content = repo.get_contents(path)
        except GithubException as e:
            if e.status != 404:
                logger.warning(f"Could not fetch {path} from {repo_name}: {e}")
            return None

        if isinstance(content, list) or not hasattr(content, "decoded_content"):
            return None

        try:
            return content.decoded_content.decode("utf-8")
        except (UnicodeDecodeError, AssertionError):
            logger.debug(f"Skipping non-text file {path}")
            return None

    def get_readme(self, repo_name: str) -> str | None:
        """Get the repository README from the default branch."""
        repo = self.get_repo(repo_name)
        try:
            return repo.get_readme().decoded_content.decode("utf-8")
        except GithubException as e:
            if e.status != 404:
                logger.warning(f"Could not fetch README for {repo_name}: {e}")
            return None
        except UnicodeDecodeError:
            return None

    def get_default_branch(self, repo_name: str) -> str | None:
        return self.get_repo(repo_name).default_branch

    def get_issue(self, repo_name: str, number: int) -> Issue:
        """Get an issue (pull requests are issues too)."""
        return self.get_repo(repo_name).get_issue(number)

    def get_issue_comments(self, issue: Issue, limit: int) -> list[dict[str, str]]:
        """Get up to ``limit`` non-empty comments of an issue, oldest first."""
        comments: list[dict[str, str]] = []
        for comment in issue.get_comments():
            if len(comments) >= limit:
                break
            if not comment.body:
                continue
            comments.append(
                {
                    "author": comment.user.login if comment.user else "",
                    "body": comment.body,
                }
            )
        return comments

    def get_pr_discussion(self, pr: PullRequest) -> list[dict[str, Any]]:
        """Get the conversation comments of a PR, oldest first."""
        return [
            {
                "author": comment.user.login if comment.user else "",
                "author_type": comment.user.type if comment.user else "",
                "body": comment.body or "",
                "created_at": comment.created_at.isoformat() if comment.created_at else "",
            }
            for comment in pr.get_issue_comments()
        ]

    def get_languages(self, repo_name: str) -> list[str]:
        """Repository languages, largest first."""
        languages = self.get_repo(repo_name).get_languages()
        return [name for name, _ in sorted(languages.items(), key=lambda item: -item[1])]

    def search_code(self, repo_name: str, query: str, limit: int) -> list[dict[str, Any]]:
        """Search code in one repository.

        Returns:
            Up to ``limit`` results with ``path`` and decoded ``content``
        """
        results: list[dict[str, Any]] = []
        for item in self._gh.search_code(f"{query} repo:{repo_name}"):
            if len(results) >= limit:
                break
            try:
                content = item.decoded_content.decode("utf-8")
            except (GithubException, UnicodeDecodeError, AssertionError) as e:
                logger.debug(f"Skipping search hit {item.path}: {e}")
                continue
            results.append({"path": item.path, "content": content})
        return results
