"""Collector for summaries of earlier reviews of the same pull request."""

import logging
from collections import Counter
from typing import Any, Protocol

from review_context.engine.base import BuildParams, ContextCollector, has_pull_request_params
from review_context.models.context import ContextBundle
from review_context.models.records import ReviewSummary

logger = logging.getLogger(__name__)

MAX_REVIEWS = 5
MAX_FINDINGS_PER_REVIEW = 5

SEVERITY_ORDER = ["critical", "high", "warning", "medium", "suggestion", "low", "nitpick", "info"]


class ReviewHistorySource(Protocol):
    """Where earlier reviews of a PR are kept."""

    def recent_reviews(self, repo_name: str, pr_number: int, limit: int) -> list[dict[str, Any]]: ...


def build_summary(severity_counts: dict[str, int], total: int) -> str:
    """One-line summary such as ``3 findings: 1 critical, 2 warning``."""
    if total == 0:
        return "No findings in previous review."

    known = [s for s in SEVERITY_ORDER if severity_counts.get(s)]
    others = sorted(s for s in severity_counts if s not in SEVERITY_ORDER and severity_counts[s])
    parts = [f"{severity_counts[s]} {s}" for s in known + others]

    noun = "finding" if total == 1 else "findings"
    return f"{total} {noun}: {', '.join(parts)}" if parts else f"{total} {noun}"


def _severity_rank(finding: dict[str, Any]) -> int:
    severity = finding.get("severity")
    return SEVERITY_ORDER.index(severity) if severity in SEVERITY_ORDER else len(SEVERITY_ORDER)


class ReviewHistoryCollector(ContextCollector):
    """Summarizes up to five earlier reviews, most severe findings first."""

    def __init__(self, source: ReviewHistorySource | None) -> None:
        self.source = source

    def name(self) -> str:
        return "review_history"

    def priority(self) -> int:
        return 60

    def should_collect(self, params: BuildParams) -> bool:
        return self.source is not None and has_pull_request_params(params)

    def collect(self, bundle: ContextBundle, params: BuildParams) -> None:
        repo_name: str = params["repo"]
        pr_number: int = params["pr_number"]

        reviews = self.source.recent_reviews(repo_name, pr_number, MAX_REVIEWS)
        if not reviews:
            logger.debug(f"No earlier reviews of {repo_name}#{pr_number}")
            return

        for review in reviews[:MAX_REVIEWS]:
            findings = [f for f in review.get("findings") or [] if isinstance(f, dict)]
            severity_counts = dict(Counter(str(f.get("severity", "unknown")) for f in findings))

            bundle.review_history.append(
                ReviewSummary(
                    run_id=review.get("run_id", 0),
                    summary=build_summary(severity_counts, len(findings)),
                    findings_count=len(findings),
                    severity_breakdown=severity_counts,
                    key_findings=sorted(findings, key=_severity_rank)[:MAX_FINDINGS_PER_REVIEW],
                    created_at=review.get("created_at", ""),
                )
            )

        logger.info(f"Collected {len(bundle.review_history)} earlier reviews of {repo_name}#{pr_number}")
