"""Collector for files outside the diff that use symbols the diff changes."""

import logging
import re
from typing import Any, Protocol

from github.GithubException import GithubException

from review_context.engine.base import BuildParams, ContextCollector, has_pull_request_params
from review_context.models.context import ContextBundle
from review_context.models.records import ImpactedFile

logger = logging.getLogger(__name__)

MAX_SYMBOLS = 25
MAX_FILES = 20
SEARCH_LIMIT_PER_SYMBOL = 50
MIN_SCORE = 0.3
MAX_FILE_SIZE = 50_000

HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")


class CodeSearch(Protocol):
    """Full-text code search inside one repository.

    ``GitHubClient`` satisfies this protocol. Results carry ``path`` and
    ``content``, and optionally a precomputed ``score`` in [0, 1].
    """

    def search_code(self, repo_name: str, query: str, limit: int) -> list[dict[str, Any]]: ...


def modified_lines(patch: str) -> set[int]:
    """New-file line numbers touched by the added lines of a unified diff."""
    lines: set[int] = set()
    current: int | None = None

    for line in patch.splitlines():
        header = HUNK_HEADER.match(line)
        if header:
            current = int(header.group(1))
            continue
        if current is None:
            continue
        if line.startswith("+"):
            lines.add(current)
            current += 1
        elif line.startswith(" ") or line == "":
            current += 1
        # "-" lines do not exist in the new file

    return lines


def changed_symbols(semantics: dict[str, Any], lines: set[int]) -> list[tuple[str, str]]:
    """Symbols whose definition overlaps the modified lines, as (kind, name)."""
    symbols: list[tuple[str, str]] = []

    for kind, key in (("function", "functions"), ("class", "classes"), ("method", "methods")):
        for item in semantics.get(key) or []:
            if not isinstance(item, dict) or not item.get("name"):
                continue
            start = item.get("line_start")
            end = item.get("line_end", start)
            if not isinstance(start, int) or not isinstance(end, int):
                continue
            if any(start <= line <= end for line in lines):
                symbols.append((kind, str(item["name"])))

    return symbols


def search_patterns(kind: str, symbol: str) -> list[tuple[str, str]]:
    """Literal usage patterns to look for, paired with their match type."""
    match kind:
        case "function":
            return [(f"{symbol}(", "function_call")]
        case "class":
            return [
                (f"new {symbol}", "class_instantiation"),
                (f"{symbol}(", "class_instantiation"),
                (f"extends {symbol}", "extends"),
                (f"implements {symbol}", "implements"),
            ]
        case "method":
            return [
                (f".{symbol}(", "method_call"),
                (f"->{symbol}(", "method_call"),
                (f"::{symbol}(", "method_call"),
            ]
        case _:
            return [(symbol, "unknown")]


class ImpactAnalysisCollector(ContextCollector):
    """Finds callers of functions, classes and methods modified by the PR.

    Needs semantics from the semantic collector: only symbols whose
    definition overlaps an added line of the patch are searched for.
    """

    def __init__(self, code_search: CodeSearch) -> None:
        self.code_search = code_search

    def name(self) -> str:
        return "impact_analysis"

    def priority(self) -> int:
        return 75

    def should_collect(self, params: BuildParams) -> bool:
        return has_pull_request_params(params)

    def collect(self, bundle: ContextBundle, params: BuildParams) -> None:
        repo_name: str = params["repo"]

        if not bundle.semantics:
            logger.debug("No semantic analysis available, skipping impact analysis")
            return

        symbols = self._collect_symbols(bundle)
        if not symbols:
            logger.debug("No changed symbols found in the diff")
            return

        changed_paths = {f.filename for f in bundle.files}
        found: dict[str, ImpactedFile] = {}

        for kind, symbol in symbols:
            for pattern, match_type in search_patterns(kind, symbol):
                for result in self._search(repo_name, pattern):
                    impacted = self._to_impacted(result, symbol, match_type, pattern)
                    if impacted is None or impacted.file_path in changed_paths:
                        continue

                    key = f"{impacted.file_path}:{symbol}"
                    existing = found.get(key)
                    if existing is None:
                        found[key] = impacted
                    else:
                        existing.match_count += 1
                        existing.score = max(existing.score, impacted.score)

        ranked = sorted(found.values(), key=lambda f: (f.match_count, f.score), reverse=True)
        bundle.impacted_files = ranked[:MAX_FILES]

        logger.info(
            f"Impact analysis: {len(symbols)} changed symbols, "
            f"{len(found)} candidate files, kept {len(bundle.impacted_files)}"
        )

    def _collect_symbols(self, bundle: ContextBundle) -> list[tuple[str, str]]:
        symbols: list[tuple[str, str]] = []
        for file in bundle.files:
            semantics = bundle.semantics.get(file.filename)
            if not semantics or not file.patch:
                continue
            for symbol in changed_symbols(semantics, modified_lines(file.patch)):
                if symbol not in symbols:
                    symbols.append(symbol)
        return symbols[:MAX_SYMBOLS]

    def _search(self, repo_name: str, pattern: str) -> list[dict[str, Any]]:
        try:
            return self.code_search.search_code(repo_name, pattern, SEARCH_LIMIT_PER_SYMBOL)
        except GithubException as e:
            logger.warning(f"Code search for {pattern!r} failed: {e}")
            return []

    def _to_impacted(
        self, result: dict[str, Any], symbol: str, match_type: str, pattern: str
    ) -> ImpactedFile | None:
        path = result.get("path") or result.get("file_path")
        content = result.get("content") or ""
        if not path or len(content) > MAX_FILE_SIZE:
            return None

        score = result.get("score")
        if not isinstance(score, (int, float)) or isinstance(score, bool):
            # Code search is token based, so confirm the literal usage
            occurrences = content.count(pattern)
            score = min(1.0, 0.3 + 0.1 * occurrences) if occurrences else 0.0
        if score < MIN_SCORE:
            return None

        return ImpactedFile.from_dict(
            {
                "file_path": path,
                "content": content,
                "matched_symbol": symbol,
                "match_type": match_type,
                "score": score,
            }
        )
