"""Context engine: runs collectors then filters over a fresh bundle."""

import logging

from review_context.engine.base import BuildParams, ContextCollector, ContextFilter
from review_context.models.context import ContextBundle


class ContextEngine:
    """Orchestrates context collection and filtering for code reviews.

    Build once at startup, register collectors and filters, then call
    ``build()`` for each review. Every call allocates its own bundle, so the
    engine can be reused for sequential builds.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        """Initialize the engine.

        Args:
            logger: Sink for diagnostics (defaults to the module logger)
        """
        self._logger = logger or logging.getLogger(__name__)
        # Dicts keep first-registration order, which breaks priority ties.
        self._collectors: dict[str, ContextCollector] = {}
        self._filters: dict[str, ContextFilter] = {}

    def register_collector(self, collector: ContextCollector) -> "ContextEngine":
        """Register a collector, replacing any collector with the same name."""
        self._collectors[collector.name()] = collector
        return self

    def register_filter(self, context_filter: ContextFilter) -> "ContextEngine":
        """Register a filter, replacing any filter with the same name."""
        self._filters[context_filter.name()] = context_filter
        return self

    def collector_names(self) -> list[str]:
        """Names of registered collectors in execution order."""
        return [c.name() for c in self._sorted_collectors()]

    def filter_names(self) -> list[str]:
        """Names of registered filters in execution order."""
        return [f.name() for f in self._sorted_filters()]

    def build(self, params: BuildParams) -> ContextBundle:
        """Build complete context for a review.

        Args:
            params: Review parameters (repository, PR number, metadata, ...)

        Returns:
            The collected and filtered bundle. Failing collectors or filters
            are logged and skipped, never raised.
        """
        bundle = ContextBundle()

        self._run_collectors(bundle, params)
        self._run_filters(bundle)

        self._logger.debug(
            f"Context engine built context: ~{bundle.estimate_tokens()} tokens, "
            f"{bundle.files_with_patch_count()} files with patches, "
            f"{len(bundle.linked_issues)} linked issues, {len(bundle.pr_comments)} PR comments"
        )

        return bundle

    def _run_collectors(self, bundle: ContextBundle, params: BuildParams) -> None:
        """Run all collectors, highest priority first."""
        for collector in self._sorted_collectors():
            name = collector.name()

            try:
                if not collector.should_collect(params):
                    self._logger.debug(f"Skipping collector {name}", extra={"collector": name})
                    continue

                collector.collect(bundle, params)
                self._logger.debug(f"Collector {name} completed", extra={"collector": name})
            except Exception as e:
                self._logger.warning(
                    f"Collector {name} failed: {e}",
                    extra={"collector": name, "error": str(e)},
                )

    def _run_filters(self, bundle: ContextBundle) -> None:
        """Run all filters, lowest order first."""
        for context_filter in self._sorted_filters():
            name = context_filter.name()

            try:
                context_filter.filter(bundle)
                self._logger.debug(f"Filter {name} completed", extra={"filter": name})
            except Exception as e:
                self._logger.warning(
                    f"Filter {name} failed: {e}",
                    extra={"filter": name, "error": str(e)},
                )

    def _sorted_collectors(self) -> list[ContextCollector]:
        # sorted() is stable, so equal priorities keep registration order
        return sorted(self._collectors.values(), key=lambda c: c.priority(), reverse=True)

    def _sorted_filters(self) -> list[ContextFilter]:
        return sorted(self._filters.values(), key=lambda f: f.order())
