"""Collector for full contents of the changed files."""

import logging
import posixpath

from github.GithubException import GithubException

from review_context.engine.base import BuildParams, ContextCollector, has_pull_request_params
from review_context.github.client import GitHubClient
from review_context.models.context import ContextBundle
from review_context.models.records import FileChange
from review_context.redactor import SensitiveDataRedactor

logger = logging.getLogger(__name__)

MAX_FILES = 10
MAX_FILE_SIZE = 100_000

ALLOWED_EXTENSIONS = frozenset(
    {
        "php", "js", "ts", "jsx", "tsx", "vue", "svelte",
        "py", "rb", "go", "rs", "java", "kt", "scala",
        "cs", "cpp", "c", "h", "hpp",
        "swift", "dart", "ex", "exs",
        "yaml", "yml", "json", "xml", "toml",
        "sql", "graphql", "gql",
        "sh", "bash", "zsh",
        "md", "mdx", "txt",
    }
)  # fmt: skip


class FileContextCollector(ContextCollector):
    """Fetches the head revision of the most changed source files."""

    def __init__(self, github: GitHubClient, redactor: SensitiveDataRedactor | None = None) -> None:
        self.github = github
        self.redactor = redactor or SensitiveDataRedactor()

    def name(self) -> str:
        return "file_context"

    def priority(self) -> int:
        return 85

    def should_collect(self, params: BuildParams) -> bool:
        return has_pull_request_params(params)

    def collect(self, bundle: ContextBundle, params: BuildParams) -> None:
        repo_name: str = params["repo"]

        head_sha = bundle.pull_request.head_sha if bundle.pull_request else params.get("head_sha")
        if not head_sha:
            logger.debug(f"No head SHA for {repo_name}, skipping file contents")
            return

        candidates = self._select_files(bundle.files)
        if not candidates:
            logger.debug(f"No suitable files to fetch out of {len(bundle.files)}")
            return

        for file in candidates:
            try:
                content = self.github.get_file_content(repo_name, file.filename, ref=head_sha)
            except GithubException as e:
                logger.debug(f"Failed to fetch {file.filename}: {e}")
                continue

            if content is None or len(content) > MAX_FILE_SIZE:
                continue
            bundle.file_contents[file.filename] = content

        logger.info(
            f"Collected contents of {len(bundle.file_contents)}/{len(candidates)} files from {repo_name}"
        )

    def _select_files(self, files: list[FileChange]) -> list[FileChange]:
        """Pick text files that still exist, most changed first."""
        candidates = [
            f
            for f in files
            if f.status != "removed"
            and not self.redactor.is_sensitive_file(f.filename)
            and _extension(f.filename) in ALLOWED_EXTENSIONS
        ]
        candidates.sort(key=lambda f: f.changes or f.additions + f.deletions, reverse=True)
        return candidates[:MAX_FILES]


def _extension(path: str) -> str:
    return posixpath.splitext(path)[1].lstrip(".").lower()
