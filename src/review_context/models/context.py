"""Context bundle holding everything gathered for one review."""

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from review_context.models.records import (
    ChangeMetrics,
    FileChange,
    Guideline,
    ImpactedFile,
    LinkedIssue,
    PullRequestComment,
    PullRequestInfo,
    RepositoryDocs,
    ReviewSummary,
)
from review_context.tokens.base import TokenCounter
from review_context.tokens.context import TokenCounterContext
from review_context.tokens.heuristic import HeuristicTokenCounter


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


@dataclass
class ContextBundle:
    """Per-review context container.

    Collectors and filters mutate the bundle in place during a single
    ``ContextEngine.build()`` call. Aggregate metrics are derived data: call
    ``recompute_metrics()`` after changing ``files`` instead of trusting them.
    """

    pull_request: PullRequestInfo | None = None
    files: list[FileChange] = field(default_factory=list)
    metrics: ChangeMetrics = field(default_factory=ChangeMetrics)
    linked_issues: list[LinkedIssue] = field(default_factory=list)
    pr_comments: list[PullRequestComment] = field(default_factory=list)
    repository_docs: RepositoryDocs = field(default_factory=RepositoryDocs)
    review_history: list[ReviewSummary] = field(default_factory=list)
    guidelines: list[Guideline] = field(default_factory=list)
    file_contents: dict[str, str] = field(default_factory=dict)
    semantics: dict[str, dict[str, Any]] = field(default_factory=dict)
    project_context: dict[str, Any] = field(default_factory=dict)
    impacted_files: list[ImpactedFile] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def section_texts(self) -> dict[str, str]:
        """Flatten each section into the text that counts against the budget."""
        sections: dict[str, str] = {}

        sections["pull_request"] = _to_json(asdict(self.pull_request)) if self.pull_request else ""
        sections["files"] = "".join(f.filename + (f.patch or "") for f in self.files)
        sections["metrics"] = _to_json(asdict(self.metrics))
        sections["linked_issues"] = "".join(
            issue.title + (issue.body or "") + "".join(c.body for c in issue.comments)
            for issue in self.linked_issues
        )
        sections["pr_comments"] = "".join(c.body for c in self.pr_comments)
        sections["repository_docs"] = (self.repository_docs.readme or "") + (
            self.repository_docs.contributing or ""
        )
        sections["review_history"] = "".join(r.summary for r in self.review_history)
        sections["guidelines"] = "".join(
            (g.description or "") + g.content for g in self.guidelines
        )
        sections["file_contents"] = "".join(self.file_contents.values())
        sections["semantics"] = "".join(_to_json(data) for data in self.semantics.values())
        sections["project_context"] = _to_json(self.project_context) if self.project_context else ""
        sections["impacted_files"] = "".join(
            f.file_path + f.reason + f.content for f in self.impacted_files
        )

        return sections

    def estimate_tokens(
        self,
        counter: TokenCounter | None = None,
        context: TokenCounterContext | None = None,
    ) -> int:
        """Estimate the total token cost of the bundle.

        Each section is counted separately and the results are summed, so a
        remote counter is called at most once per section.
        """
        return sum(self.estimate_sections(counter, context).values())

    def estimate_sections(
        self,
        counter: TokenCounter | None = None,
        context: TokenCounterContext | None = None,
    ) -> dict[str, int]:
        """Token estimate of each non-empty section."""
        counter = counter or HeuristicTokenCounter()
        context = context or TokenCounterContext.from_metadata(self.metadata)

        return {
            name: counter.count_text_tokens(text, context)
            for name, text in self.section_texts().items()
            if text
        }

    def files_with_patch_count(self) -> int:
        """Number of diff entries that carry patch text."""
        return sum(1 for f in self.files if f.patch is not None)

    def recompute_metrics(self) -> None:
        """Re-derive aggregate counts from the current diff list."""
        self.metrics = ChangeMetrics(
            files_changed=len(self.files),
            lines_added=sum(f.additions for f in self.files),
            lines_deleted=sum(f.deletions for f in self.files),
        )

    def to_dict(self) -> dict[str, Any]:
        """Structural export for prompt rendering."""
        return {
            "pull_request": asdict(self.pull_request) if self.pull_request else {},
            "files": [asdict(f) for f in self.files],
            "metrics": asdict(self.metrics),
            "linked_issues": [asdict(i) for i in self.linked_issues],
            "pr_comments": [asdict(c) for c in self.pr_comments],
            "repository_context": asdict(self.repository_docs),
            "review_history": [asdict(r) for r in self.review_history],
            "guidelines": [asdict(g) for g in self.guidelines],
            "file_contents": dict(self.file_contents),
            "semantics": dict(self.semantics),
            "project_context": dict(self.project_context),
            "impacted_files": [f.to_dict() for f in self.impacted_files],
            "metadata": dict(self.metadata),
        }
