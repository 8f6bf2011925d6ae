"""Budget enforcement: fits the bundle into the model's context window."""

import json
import logging
import math
from dataclasses import dataclass
from typing import Any

from review_context.engine.base import ContextFilter
from review_context.models.context import ContextBundle
from review_context.models.records import (
    FileChange,
    Guideline,
    ImpactedFile,
    LinkedIssue,
    PullRequestComment,
    ReviewSummary,
)
from review_context.tokens.base import TokenCounter
from review_context.tokens.context import TokenCounterContext
from review_context.tokens.heuristic import HeuristicTokenCounter

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTEXT_TOKENS = 80_000
MIN_CONTEXT_TOKENS = 8_000
MIN_SECTION_TOKENS = 500

RATIO_FILES_TOTAL = 0.45
RATIO_FILES_PER = 0.08
RATIO_IMPACTED_FILES = 0.12
RATIO_IMPACTED_FILE_SINGLE = 0.25
RATIO_ISSUES = 0.08
RATIO_COMMENTS = 0.04
RATIO_GUIDELINES = 0.06
RATIO_REPOSITORY_DOCS = 0.05
RATIO_REVIEW_HISTORY = 0.05
RATIO_PROJECT_CONTEXT = 0.03
RATIO_FILE_CONTENTS = 0.10
RATIO_FILE_CONTENTS_SINGLE = 0.20
RATIO_SEMANTICS = 0.05

MAX_FILES_TOTAL = 150_000
MAX_FILES_PER = 20_000
MAX_IMPACTED_FILES = 40_000
MAX_FILE_CONTENTS = 30_000
MAX_SEMANTICS = 15_000

IMPACTED_FILE_METADATA_TOKENS = 50
OMITTED_PATCH_TOKENS = 50

AGGRESSIVE_MAX_PATCHES = 15
AGGRESSIVE_PATCH_CHARS = 2_000

FILE_TOO_LARGE = "\n... [truncated - file too large]"
TOKEN_LIMIT = "\n... [truncated - token limit]"
PATCH_OMITTED = "[patch omitted - token limit reached]"
PATCH_OMITTED_TOO_MANY = "[patch omitted - too many files]"
AGGRESSIVELY_TRUNCATED = "\n... [aggressively truncated]"
BUDGET_EXCEEDED = "\n... [truncated - context budget exceeded]"


def _scale(max_tokens: int, ratio: float, cap: int | None = None) -> int:
    scaled = max(round(max_tokens * ratio), MIN_SECTION_TOKENS)
    return min(scaled, cap) if cap is not None else scaled


def _replace_patch(file: FileChange, marker: str) -> bool:
    """Swap the patch for ``marker`` unless the patch is already shorter."""
    if file.patch is None or len(file.patch) <= len(marker):
        return False
    file.patch = marker
    return True


@dataclass(frozen=True)
class SectionBudgets:
    """Per-section token allowances derived from the overall budget."""

    files_total: int
    files_per: int
    impacted_files: int
    file_contents: int
    semantics: int
    issues: int
    comments: int
    guidelines: int
    repository_docs: int
    review_history: int
    project_context: int

    @classmethod
    def for_max(cls, max_tokens: int) -> "SectionBudgets":
        files_total = _scale(max_tokens, RATIO_FILES_TOTAL, MAX_FILES_TOTAL)
        return cls(
            files_total=files_total,
            files_per=min(_scale(max_tokens, RATIO_FILES_PER, MAX_FILES_PER), files_total),
            impacted_files=_scale(max_tokens, RATIO_IMPACTED_FILES, MAX_IMPACTED_FILES),
            file_contents=_scale(max_tokens, RATIO_FILE_CONTENTS, MAX_FILE_CONTENTS),
            semantics=_scale(max_tokens, RATIO_SEMANTICS, MAX_SEMANTICS),
            issues=_scale(max_tokens, RATIO_ISSUES),
            comments=_scale(max_tokens, RATIO_COMMENTS),
            guidelines=_scale(max_tokens, RATIO_GUIDELINES),
            repository_docs=_scale(max_tokens, RATIO_REPOSITORY_DOCS),
            review_history=_scale(max_tokens, RATIO_REVIEW_HISTORY),
            project_context=_scale(max_tokens, RATIO_PROJECT_CONTEXT),
        )


def resolve_max_tokens(
    metadata: dict[str, Any], default: int, minimum: int = MIN_CONTEXT_TOKENS
) -> int:
    """Budget from ``metadata["context_token_budget"]``, never below ``minimum``."""
    budget = metadata.get("context_token_budget")
    if isinstance(budget, str) and budget.strip().isdigit():
        budget = int(budget)
    if isinstance(budget, int) and not isinstance(budget, bool) and budget > 0:
        return max(budget, minimum)
    return max(default, minimum)


class TokenLimitFilter(ContextFilter):
    """Trims the bundle until its estimated size fits the token budget.

    Runs last. Three stages, each only while the bundle is still too large:

    1. Every section is cut to its proportional budget.
    2. Whole sections are reduced, least valuable first: review history,
       repository docs, project context, PR comments, semantics, linked
       issues, file contents, impacted files, guidelines.
    3. The floor (diff and PR metadata) is shortened: patches past the first
       fifteen are omitted and the rest cut to 2000 characters. If that is
       not enough those patches are cleared outright, the largest remaining
       text is halved repeatedly behind an explicit marker, and as a last
       resort files are dropped from the tail of the diff list.

    Omission markers never replace a patch shorter than the marker, so no
    stage can grow the bundle.

    The filter never raises for an oversized bundle; if nothing can shrink
    further it logs a warning and leaves the bundle as small as it got.
    """

    def __init__(
        self,
        counter: TokenCounter | None = None,
        context: TokenCounterContext | None = None,
        max_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS,
        min_tokens: int = MIN_CONTEXT_TOKENS,
    ) -> None:
        """Initialize the filter.

        Args:
            counter: Token counter (heuristic by default)
            context: Counting context (derived from bundle metadata by default)
            max_tokens: Budget used when the bundle metadata names none
            min_tokens: Smallest budget ever enforced
        """
        self.counter = counter or HeuristicTokenCounter()
        self.context = context
        self.max_tokens = max_tokens
        self.min_tokens = min_tokens
        self._active_context = TokenCounterContext()

    def name(self) -> str:
        return "token_limit"

    def order(self) -> int:
        return 100

    def filter(self, bundle: ContextBundle) -> None:
        self._active_context = self.context or TokenCounterContext.from_metadata(bundle.metadata)
        max_tokens = resolve_max_tokens(bundle.metadata, self.max_tokens, self.min_tokens)
        budgets = SectionBudgets.for_max(max_tokens)

        initial = self._bundle_tokens(bundle)

        bundle.files = self._truncate_files(bundle.files, budgets.files_per, budgets.files_total)
        bundle.impacted_files = self._truncate_impacted_files(bundle.impacted_files, budgets.impacted_files)
        bundle.file_contents = self._truncate_file_contents(bundle.file_contents, budgets.file_contents)
        bundle.semantics = self._truncate_semantics(bundle.semantics, budgets.semantics)
        bundle.linked_issues = self._truncate_linked_issues(bundle.linked_issues, budgets.issues)
        bundle.pr_comments = self._truncate_pr_comments(bundle.pr_comments, budgets.comments)
        bundle.guidelines = self._truncate_guidelines(bundle.guidelines, budgets.guidelines)
        self._truncate_repository_docs(bundle, budgets.repository_docs)
        bundle.review_history = self._truncate_review_history(bundle.review_history, budgets.review_history)
        bundle.project_context = self._truncate_project_context(bundle.project_context, budgets.project_context)

        if self._bundle_tokens(bundle) > max_tokens:
            self._progressive_reduction(bundle, max_tokens)

        if self._bundle_tokens(bundle) > max_tokens:
            self._shrink_floor(bundle, max_tokens)

        final = self._bundle_tokens(bundle)
        if final > max_tokens:
            logger.warning(f"Context still over budget after truncation: {final} > {max_tokens} tokens")
        elif initial != final:
            logger.info(f"Truncated context from {initial} to {final} tokens (budget {max_tokens})")

    # Counting

    def _tokens(self, text: str) -> int:
        return self.counter.count_text_tokens(text, self._active_context)

    def _bundle_tokens(self, bundle: ContextBundle) -> int:
        return bundle.estimate_tokens(self.counter, self._active_context)

    def truncate_text(self, text: str, max_tokens: int, suffix: str) -> str:
        """Longest prefix of ``text`` that fits ``max_tokens`` together with ``suffix``."""
        if self._tokens(text) <= max_tokens:
            return text

        budget = max(max_tokens - self._tokens(suffix), 0)
        if budget <= 0:
            return suffix if len(suffix) < len(text) else text

        low, high = 0, len(text)
        while low < high:
            mid = (low + high + 1) // 2
            if self._tokens(text[:mid]) <= budget:
                low = mid
            else:
                high = mid - 1
        return text[:low] + suffix

    # Stage 1: proportional section budgets

    def _truncate_files(self, files: list[FileChange], per_file: int, total: int) -> list[FileChange]:
        used = 0
        for file in files:
            if file.patch is None:
                continue

            patch = file.patch
            patch_tokens = self._tokens(patch)
            if patch_tokens > per_file:
                file.patch = self.truncate_text(patch, per_file, FILE_TOO_LARGE)
                patch_tokens = per_file

            if used + patch_tokens > total:
                remaining = total - used
                if remaining > MIN_SECTION_TOKENS:
                    file.patch = self.truncate_text(patch, remaining, TOKEN_LIMIT)
                    patch_tokens = remaining
                elif _replace_patch(file, PATCH_OMITTED):
                    patch_tokens = OMITTED_PATCH_TOKENS

            used += patch_tokens
        return files

    def _truncate_impacted_files(self, files: list[ImpactedFile], budget: int) -> list[ImpactedFile]:
        per_file = int(budget * RATIO_IMPACTED_FILE_SINGLE)
        used = 0
        kept: list[ImpactedFile] = []

        for file in files:
            file_tokens = self._tokens(file.content) + IMPACTED_FILE_METADATA_TOKENS
            if file_tokens > per_file:
                file.content = self.truncate_text(
                    file.content,
                    per_file - IMPACTED_FILE_METADATA_TOKENS,
                    "\n... [truncated - impacted file too large]",
                )
                file_tokens = per_file

            if used + file_tokens > budget:
                remaining = budget - used
                if remaining > MIN_SECTION_TOKENS:
                    file.content = self.truncate_text(
                        file.content, remaining - IMPACTED_FILE_METADATA_TOKENS, TOKEN_LIMIT
                    )
                    kept.append(file)
                break

            kept.append(file)
            used += file_tokens
        return kept

    def _truncate_file_contents(self, contents: dict[str, str], budget: int) -> dict[str, str]:
        per_file = int(budget * RATIO_FILE_CONTENTS_SINGLE)
        used = 0
        kept: dict[str, str] = {}

        for path, content in contents.items():
            content_tokens = self._tokens(content)
            if content_tokens > per_file:
                content = self.truncate_text(content, per_file, FILE_TOO_LARGE)
                content_tokens = per_file

            if used + content_tokens > budget:
                remaining = budget - used
                if remaining > MIN_SECTION_TOKENS:
                    kept[path] = self.truncate_text(content, remaining, TOKEN_LIMIT)
                break

            kept[path] = content
            used += content_tokens
        return kept

    def _truncate_semantics(self, semantics: dict[str, dict[str, Any]], budget: int) -> dict[str, dict[str, Any]]:
        used = 0
        kept: dict[str, dict[str, Any]] = {}

        for path, data in semantics.items():
            data_tokens = self._tokens(json.dumps(data, ensure_ascii=False, default=str))
            if used + data_tokens > budget:
                remaining = budget - used
                if remaining > MIN_SECTION_TOKENS:
                    reduced = self._reduce_semantic_data(data, remaining)
                    if reduced:
                        kept[path] = reduced
                break

            kept[path] = data
            used += data_tokens
        return kept

    def _reduce_semantic_data(self, data: dict[str, Any], budget: int) -> dict[str, Any]:
        """Keep the language and the first few definitions of one analysis."""
        reduced: dict[str, Any] = {}
        if "language" in data:
            reduced["language"] = data["language"]
        if isinstance(data.get("functions"), list):
            reduced["functions"] = data["functions"][:5]
        if isinstance(data.get("classes"), list):
            classes = []
            for cls in data["classes"][:3]:
                if isinstance(cls, dict) and isinstance(cls.get("methods"), list):
                    cls = {**cls, "methods": cls["methods"][:5]}
                classes.append(cls)
            reduced["classes"] = classes
        if isinstance(data.get("imports"), list):
            reduced["imports"] = data["imports"][:5]

        if self._tokens(json.dumps(reduced, ensure_ascii=False, default=str)) > budget:
            return {
                "language": data.get("language", "unknown"),
                "functions": list(data.get("functions") or [])[:2],
                "classes": list(data.get("classes") or [])[:1],
            }
        return reduced

    def _issue_tokens(self, issue: LinkedIssue) -> int:
        return (
            self._tokens(issue.title)
            + self._tokens(issue.body or "")
            + sum(self._tokens(c.body) for c in issue.comments)
        )

    def _truncate_linked_issues(self, issues: list[LinkedIssue], budget: int) -> list[LinkedIssue]:
        used = 0
        kept: list[LinkedIssue] = []

        for issue in issues:
            issue_tokens = self._issue_tokens(issue)
            if used + issue_tokens > budget:
                if used < budget - MIN_SECTION_TOKENS:
                    # Leave room for the title and state
                    remaining = budget - used - 200
                    if issue.body is not None and self._tokens(issue.body) > remaining // 2:
                        issue.body = self.truncate_text(issue.body, remaining // 2, "... [truncated]")
                    issue.comments = issue.comments[:3]
                    kept.append(issue)
                break

            kept.append(issue)
            used += issue_tokens
        return kept

    def _truncate_pr_comments(self, comments: list[PullRequestComment], budget: int) -> list[PullRequestComment]:
        used = 0
        kept: list[PullRequestComment] = []
        for comment in comments:
            comment_tokens = self._tokens(comment.body)
            if used + comment_tokens > budget:
                break
            kept.append(comment)
            used += comment_tokens
        return kept

    def _truncate_guidelines(self, guidelines: list[Guideline], budget: int) -> list[Guideline]:
        used = 0
        kept: list[Guideline] = []

        for guideline in guidelines:
            guideline_tokens = self._tokens(guideline.content) + self._tokens(guideline.description or "")
            if used + guideline_tokens > budget:
                remaining = budget - used
                if remaining > MIN_SECTION_TOKENS:
                    guideline.content = self.truncate_text(
                        guideline.content, remaining, "... [truncated - guideline too long]"
                    )
                    kept.append(guideline)
                break

            kept.append(guideline)
            used += guideline_tokens
        return kept

    def _truncate_repository_docs(self, bundle: ContextBundle, budget: int) -> None:
        docs = bundle.repository_docs
        used = 0
        # CONTRIBUTING is usually closer to review rules than the README
        for key in ("contributing", "readme"):
            content = getattr(docs, key)
            if content is None:
                continue

            content_tokens = self._tokens(content)
            if used + content_tokens > budget:
                remaining = budget - used
                if remaining > MIN_SECTION_TOKENS:
                    setattr(
                        docs,
                        key,
                        self.truncate_text(content, remaining, "... [truncated - repository context too long]"),
                    )
                    used = budget
                else:
                    setattr(docs, key, None)
                continue

            used += content_tokens

    def _truncate_review_history(self, reviews: list[ReviewSummary], budget: int) -> list[ReviewSummary]:
        used = 0
        kept: list[ReviewSummary] = []

        for review in reviews:
            review_tokens = self._tokens(review.summary) + self._tokens(
                json.dumps(review.key_findings, ensure_ascii=False, default=str)
            )
            if used + review_tokens > budget:
                remaining = budget - used
                if remaining > MIN_SECTION_TOKENS:
                    review.summary = self.truncate_text(
                        review.summary, remaining, "... [truncated - review history too long]"
                    )
                    review.key_findings = review.key_findings[:5]
                    kept.append(review)
                break

            kept.append(review)
            used += review_tokens
        return kept

    def _truncate_project_context(self, context: dict[str, Any], budget: int) -> dict[str, Any]:
        for key, limit in (("dependencies", 10), ("frameworks", 3), ("languages", 3)):
            if not context or self._tokens(json.dumps(context, ensure_ascii=False, default=str)) <= budget:
                return context
            if isinstance(context.get(key), list):
                context[key] = context[key][:limit]
        return context

    # Stage 2: whole-section reduction

    def _progressive_reduction(self, bundle: ContextBundle, max_tokens: int) -> None:
        steps = [
            ("review history", lambda: setattr(bundle, "review_history", [])),
            ("repository docs", lambda: self._clear_repository_docs(bundle)),
            ("project context", lambda: setattr(bundle, "project_context", {})),
            ("PR comments to 5", lambda: setattr(bundle, "pr_comments", bundle.pr_comments[:5])),
            ("PR comments", lambda: setattr(bundle, "pr_comments", [])),
            ("semantics to 5", lambda: setattr(bundle, "semantics", dict(list(bundle.semantics.items())[:5]))),
            ("semantics", lambda: setattr(bundle, "semantics", {})),
            ("linked issues to 2", lambda: setattr(bundle, "linked_issues", bundle.linked_issues[:2])),
            ("linked issues", lambda: setattr(bundle, "linked_issues", [])),
            ("file contents to 3", lambda: setattr(bundle, "file_contents", dict(list(bundle.file_contents.items())[:3]))),
            ("file contents", lambda: setattr(bundle, "file_contents", {})),
            ("impacted files to 5", lambda: setattr(bundle, "impacted_files", bundle.impacted_files[:5])),
            ("impacted files", lambda: setattr(bundle, "impacted_files", [])),
            ("guidelines to 1", lambda: setattr(bundle, "guidelines", bundle.guidelines[:1])),
            ("guidelines", lambda: setattr(bundle, "guidelines", [])),
        ]  # fmt: skip

        for label, step in steps:
            if self._bundle_tokens(bundle) <= max_tokens:
                return
            step()
            logger.debug(f"Reduced {label} to fit the token budget")

    @staticmethod
    def _clear_repository_docs(bundle: ContextBundle) -> None:
        bundle.repository_docs.readme = None
        bundle.repository_docs.contributing = None

    # Stage 3: floor

    def _shrink_floor(self, bundle: ContextBundle, max_tokens: int) -> None:
        self._aggressive_truncate_files(bundle.files)

        if self._bundle_tokens(bundle) > max_tokens:
            self._omit_trailing_patches(bundle)

        self._halve_largest(bundle, max_tokens)

        if self._bundle_tokens(bundle) > max_tokens:
            self._drop_trailing_files(bundle, max_tokens)

    def _halve_largest(self, bundle: ContextBundle, max_tokens: int) -> None:
        exhausted: set[tuple[str, int]] = set()
        while self._bundle_tokens(bundle) > max_tokens:
            candidates = [
                (len(f.patch), ("patch", i))
                for i, f in enumerate(bundle.files)
                if f.patch and ("patch", i) not in exhausted
            ]
            pr = bundle.pull_request
            if pr is not None:
                if pr.body and ("body", 0) not in exhausted:
                    candidates.append((len(pr.body), ("body", 0)))
                if pr.title and ("title", 0) not in exhausted:
                    candidates.append((len(pr.title), ("title", 0)))

            if not candidates:
                return

            _, key = max(candidates, key=lambda c: c[0])
            text = self._floor_field(bundle, key)
            base = text.removesuffix(BUDGET_EXCEEDED)
            shrunk = base[: len(base) // 2] + BUDGET_EXCEEDED
            if len(shrunk) >= len(text):
                exhausted.add(key)
                continue
            self._set_floor_field(bundle, key, shrunk)

    @staticmethod
    def _omit_trailing_patches(bundle: ContextBundle) -> None:
        """Clear every patch after the first few files that still have one."""
        omitted = 0
        with_patches = 0
        for file in bundle.files:
            if file.patch is None:
                continue
            with_patches += 1
            if with_patches > AGGRESSIVE_MAX_PATCHES:
                file.patch = None
                omitted += 1

        if omitted:
            bundle.metadata["omitted_patches"] = bundle.metadata.get("omitted_patches", 0) + omitted
            logger.info(f"Omitted {omitted} patches to fit the token budget")

    def _drop_trailing_files(self, bundle: ContextBundle, max_tokens: int) -> None:
        """Drop files from the tail of the list until the bundle fits, keeping the first."""
        dropped = 0
        while len(bundle.files) > 1:
            excess = self._bundle_tokens(bundle) - max_tokens
            if excess <= 0:
                break

            files_text = "".join(f.filename + (f.patch or "") for f in bundle.files)
            files_tokens = max(self._tokens(files_text), 1)
            # Characters to remove, at the files section's own characters-per-token rate
            target_chars = max(math.ceil(excess * len(files_text) / files_tokens), 1)

            removed_chars = 0
            while len(bundle.files) > 1 and removed_chars < target_chars:
                file = bundle.files.pop()
                removed_chars += len(file.filename) + len(file.patch or "")
                dropped += 1

        if dropped:
            bundle.metadata["omitted_files"] = bundle.metadata.get("omitted_files", 0) + dropped
            logger.warning(f"Dropped {dropped} files from the context to fit the token budget")

    @staticmethod
    def _floor_field(bundle: ContextBundle, key: tuple[str, int]) -> str:
        kind, index = key
        match kind:
            case "patch":
                return bundle.files[index].patch or ""
            case "body":
                return bundle.pull_request.body or ""
            case _:
                return bundle.pull_request.title

    @staticmethod
    def _set_floor_field(bundle: ContextBundle, key: tuple[str, int], value: str) -> None:
        kind, index = key
        match kind:
            case "patch":
                bundle.files[index].patch = value
            case "body":
                bundle.pull_request.body = value
            case _:
                bundle.pull_request.title = value

    @staticmethod
    def _aggressive_truncate_files(files: list[FileChange]) -> None:
        with_patches = 0
        for file in files:
            if not file.patch:
                continue
            with_patches += 1
            if with_patches > AGGRESSIVE_MAX_PATCHES:
                _replace_patch(file, PATCH_OMITTED_TOO_MANY)
            elif len(file.patch) > AGGRESSIVE_PATCH_CHARS + len(AGGRESSIVELY_TRUNCATED):
                file.patch = file.patch[:AGGRESSIVE_PATCH_CHARS] + AGGRESSIVELY_TRUNCATED
