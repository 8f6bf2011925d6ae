"""Record types gathered into a context bundle."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class PullRequestInfo:
    """Pull request metadata."""

    number: int
    title: str
    body: str | None
    base_branch: str
    head_branch: str
    head_sha: str = ""
    author: str = ""
    repository_full_name: str = ""
    is_draft: bool = False
    labels: list[str] = field(default_factory=list)


@dataclass
class FileChange:
    """A single file entry of the pull request diff."""

    filename: str
    status: str  # "added", "modified", "removed", "renamed"
    additions: int
    deletions: int
    changes: int = 0
    patch: str | None = None
    is_sensitive: bool = False


@dataclass
class ChangeMetrics:
    """Aggregate change counts derived from the diff."""

    files_changed: int = 0
    lines_added: int = 0
    lines_deleted: int = 0


@dataclass
class IssueComment:
    """A comment on a linked issue."""

    author: str
    body: str


@dataclass
class LinkedIssue:
    """An issue referenced from the pull request description."""

    number: int
    title: str
    body: str | None
    state: str = "open"
    labels: list[str] = field(default_factory=list)
    comments: list[IssueComment] = field(default_factory=list)


@dataclass
class PullRequestComment:
    """A discussion comment on the pull request."""

    author: str
    body: str
    created_at: str


@dataclass
class RepositoryDocs:
    """Static repository documentation."""

    readme: str | None = None
    contributing: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.readme is None and self.contributing is None


@dataclass
class ReviewSummary:
    """Summary of an earlier review of the same repository."""

    run_id: int
    summary: str
    findings_count: int = 0
    severity_breakdown: dict[str, int] = field(default_factory=dict)
    key_findings: list[dict[str, Any]] = field(default_factory=list)
    created_at: str = ""


@dataclass
class Guideline:
    """A custom review guideline document."""

    path: str
    description: str | None
    content: str


@dataclass
class ImpactedFile:
    """A file outside the diff that references a changed symbol."""

    file_path: str
    content: str
    matched_symbol: str
    match_type: str = "unknown"
    score: float = 0.0
    match_count: int = 1

    @property
    def reason(self) -> str:
        """Human readable explanation of why this file is impacted."""
        match self.match_type:
            case "function_call":
                return f"Calls function `{self.matched_symbol}()`"
            case "class_instantiation":
                return f"Instantiates class `{self.matched_symbol}`"
            case "method_call":
                return f"Calls method `{self.matched_symbol}()`"
            case "extends":
                return f"Extends class `{self.matched_symbol}`"
            case "implements":
                return f"Implements interface `{self.matched_symbol}`"
            case _:
                return f"References `{self.matched_symbol}`"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImpactedFile":
        """Build from a loosely typed search result."""
        score = data.get("score", 0.0)
        if not isinstance(score, (int, float)) or isinstance(score, bool):
            score = 0.0

        return cls(
            file_path=str(data.get("file_path", "")),
            content=str(data.get("content", "")),
            matched_symbol=str(data.get("matched_symbol", "")),
            match_type=str(data.get("match_type", "unknown")),
            score=float(score),
            match_count=int(data.get("match_count", 1)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "content": self.content,
            "matched_symbol": self.matched_symbol,
            "match_type": self.match_type,
            "score": self.score,
            "match_count": self.match_count,
            "reason": self.reason,
        }
