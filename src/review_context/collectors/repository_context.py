"""Collector for README and CONTRIBUTING documents."""

import logging
import posixpath

from github.GithubException import GithubException

from review_context.engine.base import BuildParams, ContextCollector, has_pull_request_params
from review_context.github.client import GitHubClient
from review_context.models.context import ContextBundle
from review_context.models.records import RepositoryDocs

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 10_000

CONTRIBUTING_FILES = [
    "CONTRIBUTING.md",
    "contributing.md",
    ".github/CONTRIBUTING.md",
    "docs/CONTRIBUTING.md",
]


def truncate_at_boundary(content: str, limit: int, path: str) -> str:
    """Cut ``content`` to about ``limit`` characters, preferring a paragraph or line end."""
    if len(content) <= limit:
        return content

    truncated = content[:limit]
    last_paragraph = truncated.rfind("\n\n")
    last_line = truncated.rfind("\n")
    if last_paragraph > limit * 0.8:
        truncated = truncated[:last_paragraph]
    elif last_line > limit * 0.9:
        truncated = truncated[:last_line]

    return f"{truncated}\n\n[{posixpath.basename(path)} truncated due to size limit]"


class RepositoryContextCollector(ContextCollector):
    """Fetches README and CONTRIBUTING from the default branch."""

    def __init__(self, github: GitHubClient) -> None:
        self.github = github

    def name(self) -> str:
        return "repository_context"

    def priority(self) -> int:
        return 50

    def should_collect(self, params: BuildParams) -> bool:
        return has_pull_request_params(params)

    def collect(self, bundle: ContextBundle, params: BuildParams) -> None:
        repo_name: str = params["repo"]

        readme = self.github.get_readme(repo_name)
        contributing = None
        contributing_path = ""
        for path in CONTRIBUTING_FILES:
            try:
                contributing = self.github.get_file_content(repo_name, path)
            except GithubException as e:
                logger.debug(f"Could not fetch {path} from {repo_name}: {e}")
                continue
            if contributing is not None:
                contributing_path = path
                break

        paths = {}
        if readme:
            paths["readme"] = "README.md"
        if contributing:
            paths["contributing"] = contributing_path
        bundle.metadata["repository_context_paths"] = paths

        bundle.repository_docs = RepositoryDocs(
            readme=truncate_at_boundary(readme, MAX_CONTENT_LENGTH, "README.md") if readme else None,
            contributing=(
                truncate_at_boundary(contributing, MAX_CONTENT_LENGTH, contributing_path)
                if contributing
                else None
            ),
        )

        logger.info(
            f"Repository docs for {repo_name}: README {'found' if readme else 'missing'}, "
            f"CONTRIBUTING {contributing_path or 'missing'}"
        )
