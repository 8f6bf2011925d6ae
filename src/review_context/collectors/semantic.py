"""Collector for structural analysis of changed source files."""

import logging
from typing import Any, Protocol

from github.GithubException import GithubException

from review_context.engine.base import BuildParams, ContextCollector, has_pull_request_params
from review_context.github.client import GitHubClient
from review_context.models.context import ContextBundle
from review_context.semantic import TreeSitterSemanticAnalyzer

logger = logging.getLogger(__name__)

MAX_FILES = 15
MAX_FILE_SIZE = 100_000


class SemanticAnalyzer(Protocol):
    """Extracts functions, classes, methods and imports from one file."""

    def supports(self, path: str) -> bool: ...

    def analyze(self, path: str, content: str) -> dict[str, Any] | None: ...


class SemanticCollector(ContextCollector):
    """Runs the analyzer over changed files the analyzer understands.

    Reuses contents already fetched by the file context collector and fetches
    the rest at the head commit.
    """

    def __init__(self, github: GitHubClient, analyzer: SemanticAnalyzer | None = None) -> None:
        self.github = github
        self.analyzer = analyzer or TreeSitterSemanticAnalyzer()

    def name(self) -> str:
        return "semantic"

    def priority(self) -> int:
        return 80

    def should_collect(self, params: BuildParams) -> bool:
        return has_pull_request_params(params)

    def collect(self, bundle: ContextBundle, params: BuildParams) -> None:
        repo_name: str = params["repo"]
        head_sha = bundle.pull_request.head_sha if bundle.pull_request else None

        paths = [
            f.filename
            for f in bundle.files
            if f.status != "removed" and self.analyzer.supports(f.filename)
        ][:MAX_FILES]

        for path in paths:
            content = bundle.file_contents.get(path)
            if content is None:
                content = self._fetch(repo_name, path, head_sha)
            if content is None or len(content) > MAX_FILE_SIZE:
                continue

            analysis = self.analyzer.analyze(path, content)
            if analysis:
                bundle.semantics[path] = analysis

        logger.info(f"Analyzed {len(bundle.semantics)}/{len(paths)} changed files")

    def _fetch(self, repo_name: str, path: str, ref: str | None) -> str | None:
        try:
            return self.github.get_file_content(repo_name, path, ref=ref)
        except GithubException as e:
            logger.debug(f"Failed to fetch {path} for analysis: {e}")
            return None
