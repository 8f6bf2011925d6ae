"""Collector for team review guidelines listed in the repository config."""

import logging
from typing import Any

from github.GithubException import GithubException

from review_context.collectors.repository_context import truncate_at_boundary
from review_context.engine.base import BuildParams, ContextCollector, has_pull_request_params
from review_context.github.client import GitHubClient
from review_context.models.context import ContextBundle
from review_context.models.records import Guideline

logger = logging.getLogger(__name__)

MAX_GUIDELINES = 5
MAX_CONTENT_LENGTH = 20_000
ALLOWED_EXTENSIONS = (".md", ".mdx", ".txt")


def guideline_entries(repository_config: Any) -> list[dict[str, Any]]:
    """Normalize the ``guidelines`` list of the repository config.

    Entries may be plain paths or mappings with ``path`` and ``description``.
    """
    if not isinstance(repository_config, dict):
        return []

    entries: list[dict[str, Any]] = []
    for item in repository_config.get("guidelines") or []:
        if isinstance(item, str) and item.strip():
            entries.append({"path": item.strip(), "description": None})
        elif isinstance(item, dict) and isinstance(item.get("path"), str) and item["path"].strip():
            description = item.get("description")
            entries.append(
                {
                    "path": item["path"].strip(),
                    "description": description if isinstance(description, str) else None,
                }
            )
    return entries


class GuidelinesCollector(ContextCollector):
    """Fetches up to five guideline documents from the base branch."""

    def __init__(self, github: GitHubClient) -> None:
        self.github = github

    def name(self) -> str:
        return "guidelines"

    def priority(self) -> int:
        return 45

    def should_collect(self, params: BuildParams) -> bool:
        return has_pull_request_params(params)

    def collect(self, bundle: ContextBundle, params: BuildParams) -> None:
        repo_name: str = params["repo"]
        entries = guideline_entries(bundle.metadata.get("repository_config"))
        if not entries:
            logger.debug(f"No guidelines configured for {repo_name}")
            return

        ref = bundle.metadata.get("config_from_branch")
        for entry in entries:
            if len(bundle.guidelines) >= MAX_GUIDELINES:
                logger.info(f"Guideline limit of {MAX_GUIDELINES} reached, {len(entries)} configured")
                break

            path = entry["path"]
            if not path.lower().endswith(ALLOWED_EXTENSIONS):
                logger.debug(f"Skipping guideline {path}: unsupported file type")
                continue

            try:
                content = self.github.get_file_content(repo_name, path, ref=ref)
            except GithubException as e:
                logger.debug(f"Failed to fetch guideline {path}: {e}")
                continue
            if content is None:
                continue

            bundle.guidelines.append(
                Guideline(
                    path=path,
                    description=entry["description"],
                    content=truncate_at_boundary(content, MAX_CONTENT_LENGTH, path),
                )
            )

        logger.info(f"Collected {len(bundle.guidelines)} of {len(entries)} guidelines for {repo_name}")
