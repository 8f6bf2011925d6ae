"""Collector for pull request metadata and the file-level diff."""

import logging
from typing import Any

import yaml
from github.GithubException import GithubException

from review_context.engine.base import BuildParams, ContextCollector, has_pull_request_params
from review_context.github.client import GitHubClient
from review_context.models.context import ContextBundle

logger = logging.getLogger(__name__)

REPOSITORY_CONFIG_PATH = ".ai-review.yaml"
PATH_RULE_KEYS = ("ignore", "include", "sensitive")


class DiffCollector(ContextCollector):
    """Fetches PR metadata, changed files and the repository review config.

    Also seeds ``bundle.metadata`` from ``params["metadata"]`` so later
    filters can read the token budget, counter settings and path rules.
    """

    def __init__(self, github: GitHubClient) -> None:
        self.github = github

    def name(self) -> str:
        return "diff"

    def priority(self) -> int:
        return 100

    def should_collect(self, params: BuildParams) -> bool:
        return has_pull_request_params(params)

    def collect(self, bundle: ContextBundle, params: BuildParams) -> None:
        repo_name: str = params["repo"]
        pr_number: int = params["pr_number"]

        extra_metadata = params.get("metadata")
        if isinstance(extra_metadata, dict):
            bundle.metadata.update(extra_metadata)

        pr = self.github.get_pull_request(repo_name, pr_number)
        bundle.pull_request = self.github.build_pull_request_info(pr, repo_name)
        bundle.files = self.github.get_pull_request_files(pr)
        bundle.recompute_metrics()

        config, branch = self._fetch_config_with_fallback(
            repo_name,
            bundle.pull_request.base_branch,
            self.github.get_default_branch(repo_name),
        )
        if config is not None:
            bundle.metadata["repository_config"] = config
            bundle.metadata["paths_config"] = merge_path_rules(
                bundle.metadata.get("paths_config"), config.get("paths")
            )
        bundle.metadata["config_from_branch"] = branch

        logger.info(
            f"Collected PR #{pr_number} in {repo_name}: {len(bundle.files)} files, "
            f"{bundle.files_with_patch_count()} with patches, config from {branch or 'nowhere'}"
        )

    def _fetch_config_with_fallback(
        self,
        repo_name: str,
        base_branch: str | None,
        default_branch: str | None,
    ) -> tuple[dict[str, Any] | None, str | None]:
        """Load the review config from the base branch, then the default branch."""
        branches = list(dict.fromkeys(b for b in (base_branch, default_branch) if b))

        for branch in branches:
            config = self._fetch_and_parse_config(repo_name, branch)
            if config is not None:
                logger.debug(f"Found review config in {repo_name}@{branch}")
                return config, branch

        logger.debug(f"No review config in {repo_name} (tried {', '.join(branches) or 'no branches'})")
        return None, None

    def _fetch_and_parse_config(self, repo_name: str, branch: str) -> dict[str, Any] | None:
        try:
            raw = self.github.get_file_content(repo_name, REPOSITORY_CONFIG_PATH, ref=branch)
        except GithubException as e:
            logger.warning(f"Could not fetch review config from {repo_name}@{branch}: {e}")
            return None

        if raw is None:
            return None

        try:
            config = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            logger.warning(f"Failed to parse {REPOSITORY_CONFIG_PATH} in {repo_name}@{branch}: {e}")
            return None

        if not isinstance(config, dict):
            logger.warning(f"Ignoring {REPOSITORY_CONFIG_PATH} in {repo_name}@{branch}: not a mapping")
            return None

        return config


def merge_path_rules(base: Any, override: Any) -> dict[str, list[str]]:
    """Combine two path rule mappings, concatenating each rule list."""
    merged: dict[str, list[str]] = {key: [] for key in PATH_RULE_KEYS}
    for source in (base, override):
        if not isinstance(source, dict):
            continue
        for key in PATH_RULE_KEYS:
            values = source.get(key) or []
            if isinstance(values, str):
                values = [values]
            merged[key].extend(str(v) for v in values if v and str(v) not in merged[key])
    return merged
