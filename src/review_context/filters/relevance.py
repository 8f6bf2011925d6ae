"""Filter that ranks changed files by how much they matter for review."""

import logging
import math
import re

from review_context.engine.base import ContextFilter
from review_context.models.context import ContextBundle
from review_context.models.records import FileChange

logger = logging.getLogger(__name__)

MAX_FILES = 50
DEFAULT_SCORE = 50

# First match wins
PRIORITY_PATTERNS: list[tuple[re.Pattern[str], int]] = [
    (re.compile(p, flags), score)
    for p, score, flags in [
        # Application source
        (r"^app/", 100, 0),
        (r"^src/", 100, 0),
        (r"^lib/", 90, 0),
        # Configuration
        (r"^config/", 80, 0),
        (r"\.env\.example$", 70, 0),
        # Database changes
        (r"^database/migrations/", 85, 0),
        (r"(^|/)migrations/", 85, 0),
        (r"^database/factories/", 60, 0),
        (r"^database/seeders/", 50, 0),
        (r"^routes/", 75, 0),
        # Tests
        (r"^tests?/", 65, 0),
        (r"\.(test|spec)\.(ts|js|tsx|jsx)$", 65, 0),
        (r"Test\.php$", 65, 0),
        (r"(^|/)test_[^/]*\.py$", 65, 0),
        (r"_test\.(py|go)$", 65, 0),
        # Frontend source
        (r"^(resources|components|pages)/", 70, 0),
        # Documentation
        (r"\.mdx?$", 30, re.I),
        (r"^docs/", 25, 0),
        # Package manifests and lock files
        (r"^(composer|package)\.json$", 55, 0),
        (r"^(pyproject\.toml|setup\.py|setup\.cfg|requirements[^/]*\.txt)$", 55, 0),
        (r"^composer\.lock$", 20, 0),
        (r"^(package-lock\.json|yarn\.lock|pnpm-lock\.yaml|poetry\.lock|uv\.lock)$", 15, 0),
        # Build and tooling config
        (r"^\.(github|circleci)/", 35, 0),
        (r"^Dockerfile", 40, 0),
        (r"^docker-compose", 40, 0),
        (r"(phpstan|phpunit|mypy|ruff|tox)\.", 30, 0),
        (r"eslint", 25, 0),
        (r"prettier", 20, 0),
    ]
]


def pattern_score(filename: str) -> int:
    for pattern, score in PRIORITY_PATTERNS:
        if pattern.search(filename):
            return score
    return DEFAULT_SCORE


def relevance_score(file: FileChange) -> int:
    """Path score plus a log-scaled change boost and a patch bonus."""
    changes = file.additions + file.deletions
    change_boost = int(min(30, math.log2(changes + 1) * 5))
    small_change_penalty = -10 if changes <= 2 else 0
    patch_boost = 15 if file.patch is not None else 0
    return pattern_score(file.filename) + change_boost + small_change_penalty + patch_boost


class RelevanceFilter(ContextFilter):
    """Orders files most relevant first and keeps the top 50."""

    def name(self) -> str:
        return "relevance"

    def order(self) -> int:
        return 40

    def filter(self, bundle: ContextBundle) -> None:
        if not bundle.files:
            return

        original = len(bundle.files)
        # sorted() is stable, so equal scores keep diff order
        ranked = sorted(bundle.files, key=relevance_score, reverse=True)
        bundle.files = ranked[:MAX_FILES]
        bundle.recompute_metrics()

        if original > MAX_FILES:
            logger.debug(f"Kept {MAX_FILES} most relevant of {original} files")
