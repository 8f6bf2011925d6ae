"""Explicit wiring of counters, collectors and filters from configuration."""

import logging
from typing import Any

from review_context.collectors import (
    CodeSearch,
    DiffCollector,
    FileContextCollector,
    GuidelinesCollector,
    ImpactAnalysisCollector,
    LinkedIssuesCollector,
    ProjectContextCollector,
    PullRequestCommentsCollector,
    RepositoryContextCollector,
    ReviewHistoryCollector,
    ReviewHistorySource,
    SemanticAnalyzer,
    SemanticCollector,
)
from review_context.config import Config
from review_context.engine import ContextCollector, ContextEngine
from review_context.filters import (
    BinaryFileFilter,
    ConfiguredPathFilter,
    RelevanceFilter,
    SensitiveDataFilter,
    TokenLimitFilter,
    VendorPathFilter,
)
from review_context.github.client import GitHubClient
from review_context.github.history import GitHubReviewHistory
from review_context.redactor import SensitiveDataRedactor
from review_context.tokens import (
    AiProvider,
    AnthropicCounterConfig,
    AnthropicTokenCounter,
    CompositeTokenCounter,
    HeuristicTokenCounter,
    TiktokenTokenCounter,
    TokenCounter,
    TokenCounterContext,
    TokenCountMode,
)

logger = logging.getLogger(__name__)


def create_token_counter(config: Config) -> CompositeTokenCounter:
    """Build the provider-dispatching counter with a shared heuristic fallback."""
    heuristic = HeuristicTokenCounter()
    counting = config.token_counting
    anthropic = AnthropicTokenCounter(
        config=AnthropicCounterConfig(
            base_url=counting.anthropic_base_url,
            version=counting.anthropic_version,
            timeout_seconds=counting.timeout_seconds,
        ),
        fallback=heuristic,
    )
    return CompositeTokenCounter(
        openai=TiktokenTokenCounter(fallback=heuristic),
        anthropic=anthropic,
        heuristic=heuristic,
    )


def create_token_context(config: Config) -> TokenCounterContext:
    """Counting context for the configured provider, model and mode."""
    counting = config.token_counting

    provider = None
    if counting.provider:
        try:
            provider = AiProvider(counting.provider.lower())
        except ValueError:
            logger.warning(f"Unknown token counting provider '{counting.provider}', using heuristic")

    try:
        mode = TokenCountMode(counting.mode.lower())
    except ValueError:
        logger.warning(f"Unknown token counting mode '{counting.mode}', using estimate")
        mode = TokenCountMode.ESTIMATE

    return TokenCounterContext(
        provider=provider,
        model=counting.model,
        mode=mode,
        api_key=counting.api_key,
    )


def create_collectors(
    github: GitHubClient,
    *,
    analyzer: SemanticAnalyzer | None = None,
    code_search: CodeSearch | None = None,
    history_source: ReviewHistorySource | None = None,
) -> list[ContextCollector]:
    """Every built-in collector, backed by ``github`` unless overridden."""
    redactor = SensitiveDataRedactor()
    return [
        DiffCollector(github),
        FileContextCollector(github, redactor),
        SemanticCollector(github, analyzer),
        LinkedIssuesCollector(github),
        ImpactAnalysisCollector(code_search or github),
        PullRequestCommentsCollector(github),
        ReviewHistoryCollector(history_source or GitHubReviewHistory(github)),
        ProjectContextCollector(github),
        RepositoryContextCollector(github),
        GuidelinesCollector(github),
    ]


def create_engine(
    config: Config,
    github: GitHubClient,
    *,
    counter: TokenCounter | None = None,
    analyzer: SemanticAnalyzer | None = None,
    code_search: CodeSearch | None = None,
    history_source: ReviewHistorySource | None = None,
    logger: logging.Logger | None = None,
) -> ContextEngine:
    """Build an engine with every collector and filter registered.

    Args:
        config: Application configuration
        github: GitHub client used by the collectors
        counter: Token counter for the budget filter (built from config if omitted)
        analyzer: Semantic analyzer (tree-sitter analyzer if omitted)
        code_search: Code search for impact analysis (GitHub search if omitted)
        history_source: Earlier reviews (GitHub review comments if omitted)
        logger: Diagnostics sink for the engine

    Returns:
        Engine ready for repeated ``build()`` calls
    """
    engine = ContextEngine(logger=logger)

    disabled = set(config.collectors.disabled)
    for collector in create_collectors(
        github, analyzer=analyzer, code_search=code_search, history_source=history_source
    ):
        if collector.name() in disabled:
            continue
        engine.register_collector(collector)

    # Precise counting needs the API key, which never travels in bundle metadata
    token_context = create_token_context(config)
    if token_context.mode != TokenCountMode.PRECISE:
        token_context = None

    redactor = SensitiveDataRedactor()
    (
        engine.register_filter(VendorPathFilter())
        .register_filter(ConfiguredPathFilter())
        .register_filter(BinaryFileFilter())
        .register_filter(SensitiveDataFilter(redactor))
        .register_filter(RelevanceFilter())
        .register_filter(
            TokenLimitFilter(
                counter=counter or create_token_counter(config),
                context=token_context,
                max_tokens=config.budget.max_context_tokens,
                min_tokens=config.budget.min_context_tokens,
            )
        )
    )

    return engine


def build_params(
    config: Config,
    repo: str,
    pr_number: int,
    pr_body: str | None = None,
    max_tokens: int | None = None,
) -> dict[str, Any]:
    """Build parameters for one review, carrying config into bundle metadata."""
    metadata: dict[str, Any] = {
        "context_token_budget": max_tokens or config.budget.max_context_tokens,
        "paths_config": config.paths.to_dict(),
    }
    if config.token_counting.provider:
        metadata["token_counter_provider"] = config.token_counting.provider
    if config.token_counting.model:
        metadata["token_counter_model"] = config.token_counting.model

    params: dict[str, Any] = {"repo": repo, "pr_number": pr_number, "metadata": metadata}
    if pr_body is not None:
        params["pr_body"] = pr_body
    return params
