"""Tests for engine wiring."""

from unittest.mock import MagicMock

from conftest import make_file, make_pr


def make_config(**counting):
    from review_context.config import Config, GitHubConfig, TokenCountingConfig

    return Config(github=GitHubConfig(token="t"), token_counting=TokenCountingConfig(**counting))


class TestCreateEngine:
    """Tests for create_engine."""

    def test_registers_everything_in_order(self, mock_github):
        """All collectors and filters are registered in execution order."""
        from review_context.factory import create_engine

        engine = create_engine(make_config(), mock_github)

        assert engine.collector_names() == [
            "diff",
            "file_context",
            "semantic",
            "linked_issues",
            "impact_analysis",
            "pr_comments",
            "review_history",
            "project_context",
            "repository_context",
            "guidelines",
        ]
        assert engine.filter_names() == [
            "vendor_path",
            "configured_path",
            "binary_file",
            "sensitive_data",
            "relevance",
            "token_limit",
        ]

    def test_disabled_collectors_skipped(self, mock_github):
        """Collectors listed as disabled are not registered."""
        from review_context.factory import create_engine

        config = make_config()
        config.collectors.disabled = ["impact_analysis", "review_history"]

        engine = create_engine(config, mock_github)

        assert "impact_analysis" not in engine.collector_names()
        assert "review_history" not in engine.collector_names()
        assert len(engine.collector_names()) == 8

    def test_full_build_with_mocked_github(self, mock_github, sample_patch, sample_source):
        """An engine built from config assembles and bounds a bundle."""
        from review_context.factory import build_params, create_engine
        from review_context.tokens import HeuristicTokenCounter

        mock_github.build_pull_request_info.return_value = make_pr(body="Fixes #7")
        mock_github.get_pull_request_files.return_value = [
            make_file("auth/login.py", sample_patch, additions=6),
            make_file("vendor/lib.php", "+x"),
            make_file("package-lock.json", "+{}"),
            make_file(".env", "+SECRET_KEY=abcdefghijklmnopqrstuvwxyz"),
        ]
        mock_github.get_file_content.side_effect = lambda repo, path, ref=None: (
            sample_source if path == "auth/login.py" else None
        )
        issue = MagicMock(number=7, title="Lookup users", body="Need it", state="open", labels=[])
        issue.pull_request = None
        mock_github.get_issue.return_value = issue
        mock_github.search_code.return_value = [
            {"path": "api/users.py", "content": "user = get_user(5)"}
        ]
        history = MagicMock()
        history.recent_reviews.return_value = []

        config = make_config()
        engine = create_engine(
            config, mock_github, counter=HeuristicTokenCounter(), history_source=history
        )
        bundle = engine.build(build_params(config, "test-org/test-repo", 42, max_tokens=20_000))

        assert [f.filename for f in bundle.files] == ["auth/login.py", ".env"]
        assert bundle.files[1].patch == "[REDACTED - sensitive file]"
        assert "auth/login.py" in bundle.semantics
        assert [i.number for i in bundle.linked_issues] == [7]
        assert [f.file_path for f in bundle.impacted_files] == ["api/users.py"]
        assert bundle.metadata["context_token_budget"] == 20_000
        assert bundle.estimate_tokens() <= 20_000

    def test_precise_mode_passes_context(self, mock_github):
        """Precise counting carries the configured key into the budget filter."""
        from review_context.factory import create_engine
        from review_context.filters import TokenLimitFilter
        from review_context.tokens import TokenCountMode

        engine = create_engine(
            make_config(provider="anthropic", model="claude-sonnet-4-5", mode="precise", api_key="k"),
            mock_github,
        )

        token_filter = next(f for f in engine._filters.values() if isinstance(f, TokenLimitFilter))
        assert token_filter.context.mode == TokenCountMode.PRECISE
        assert token_filter.context.api_key == "k"


class TestTokenWiring:
    """Tests for counter and context creation."""

    def test_counter_shares_heuristic(self):
        """All provider counters fall back to one heuristic."""
        from review_context.factory import create_token_counter

        counter = create_token_counter(make_config(timeout_seconds=3.0))

        assert counter.anthropic._fallback is counter.heuristic
        assert counter.openai._fallback is counter.heuristic
        assert counter.anthropic.config.timeout_seconds == 3.0
        counter.anthropic.close()

    def test_context_from_config(self):
        """Provider, model, mode and key are carried over."""
        from review_context.factory import create_token_context
        from review_context.tokens import AiProvider, TokenCountMode

        context = create_token_context(
            make_config(provider="OpenAI", model="gpt-4o", mode="precise", api_key="k")
        )

        assert context.provider == AiProvider.OPENAI
        assert context.model == "gpt-4o"
        assert context.mode == TokenCountMode.PRECISE
        assert context.api_key == "k"

    def test_invalid_values_fall_back(self, caplog):
        """Unknown provider and mode are logged and ignored."""
        import logging

        from review_context.factory import create_token_context
        from review_context.tokens import TokenCountMode

        with caplog.at_level(logging.WARNING):
            context = create_token_context(make_config(provider="cohere", mode="exact"))

        assert context.provider is None
        assert context.mode == TokenCountMode.ESTIMATE
        assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 2


class TestBuildParams:
    """Tests for build_params."""

    def test_carries_config(self):
        """Budget, path rules and counter settings travel in metadata."""
        from review_context.factory import build_params

        config = make_config(provider="openai", model="gpt-4o")
        config.paths.ignore = ["*.snap"]

        params = build_params(config, "org/repo", 7, pr_body="Fixes #1")

        assert params["repo"] == "org/repo"
        assert params["pr_number"] == 7
        assert params["pr_body"] == "Fixes #1"
        assert params["metadata"] == {
            "context_token_budget": 80_000,
            "paths_config": {"ignore": ["*.snap"], "include": [], "sensitive": []},
            "token_counter_provider": "openai",
            "token_counter_model": "gpt-4o",
        }

    def test_override_budget(self):
        """An explicit budget wins and no body key is added by default."""
        from review_context.factory import build_params

        params = build_params(make_config(), "org/repo", 7, max_tokens=12_000)

        assert params["metadata"]["context_token_budget"] == 12_000
        assert "pr_body" not in params
        assert "token_counter_provider" not in params["metadata"]
