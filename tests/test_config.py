"""Tests for configuration loading and validation."""

import pytest


@pytest.fixture
def config_file(tmp_path):
    def write(text: str):
        path = tmp_path / "config.yaml"
        path.write_text(text)
        return path

    return write


class TestLoadConfig:
    """Tests for load_config."""

    def test_full_file(self, config_file, monkeypatch):
        """Every section is read and ${VAR} values expanded."""
        from review_context.config import load_config

        monkeypatch.setenv("TEST_GH_TOKEN", "gh-secret")
        path = config_file(
            """\
github:
  token: ${TEST_GH_TOKEN}
  base_url: https://github.example.com/api/v3
token_counting:
  provider: openai
  model: gpt-4o
  mode: precise
  timeout_seconds: 5
budget:
  max_context_tokens: 50000
  min_context_tokens: 10000
paths:
  ignore: "*.snap"
  sensitive:
    - config/secrets/**
collectors:
  disabled: [impact_analysis]
"""
        )

        config = load_config(path)

        assert config.github.token == "gh-secret"
        assert config.github.base_url == "https://github.example.com/api/v3"
        assert config.token_counting.provider == "openai"
        assert config.token_counting.mode == "precise"
        assert config.token_counting.timeout_seconds == 5.0
        assert config.budget.max_context_tokens == 50_000
        assert config.budget.min_context_tokens == 10_000
        assert config.paths.ignore == ["*.snap"]
        assert config.paths.sensitive == ["config/secrets/**"]
        assert config.paths.include == []
        assert config.collectors.disabled == ["impact_analysis"]

    def test_defaults_and_env_fallback(self, config_file, monkeypatch):
        """An empty file gives defaults, tokens come from the environment."""
        from review_context.config import load_config

        monkeypatch.setenv("GITHUB_TOKEN", "from-env")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "anthropic-env")

        config = load_config(config_file(""))

        assert config.github.token == "from-env"
        assert config.github.base_url is None
        assert config.token_counting.provider is None
        assert config.token_counting.mode == "estimate"
        assert config.token_counting.api_key == "anthropic-env"
        assert config.budget.max_context_tokens == 80_000
        assert config.budget.min_context_tokens == 8_000

    def test_missing_file(self, tmp_path, monkeypatch):
        """A missing file gives the defaults."""
        from review_context.config import load_config

        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        config = load_config(tmp_path / "nope.yaml")

        assert config.github.token == ""
        assert config.collectors.disabled == []

    def test_unset_variable_expands_to_empty(self, config_file, monkeypatch):
        """Unset ${VAR} references become empty strings."""
        from review_context.config import load_config

        monkeypatch.delenv("DOES_NOT_EXIST", raising=False)
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)

        config = load_config(config_file("github:\n  token: ${DOES_NOT_EXIST}\n"))

        assert config.github.token == ""

    def test_paths_to_dict(self):
        """Path rules export as plain lists."""
        from review_context.config import PathsConfig

        paths = PathsConfig(ignore=["a/"], sensitive=["b/**"])

        assert paths.to_dict() == {"ignore": ["a/"], "include": [], "sensitive": ["b/**"]}


class TestValidateConfig:
    """Tests for validate_config."""

    def _config(self, **overrides):
        from review_context.config import (
            BudgetConfig,
            CollectorsConfig,
            Config,
            GitHubConfig,
            TokenCountingConfig,
        )

        return Config(
            github=GitHubConfig(token=overrides.get("token", "t")),
            token_counting=TokenCountingConfig(
                provider=overrides.get("provider"), mode=overrides.get("mode", "estimate")
            ),
            budget=BudgetConfig(
                max_context_tokens=overrides.get("max_tokens", 80_000),
                min_context_tokens=overrides.get("min_tokens", 8_000),
            ),
            collectors=CollectorsConfig(disabled=overrides.get("disabled", [])),
        )

    def test_valid(self):
        """A complete configuration has no errors."""
        from review_context.config import validate_config

        assert validate_config(self._config(provider="Anthropic", mode="PRECISE")) == []

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"token": ""}, "Missing GitHub token"),
            ({"provider": "cohere"}, "Unknown token counting provider 'cohere'"),
            ({"mode": "exact"}, "Unknown token counting mode 'exact'"),
            ({"max_tokens": 5_000}, "is below min_context_tokens"),
            ({"disabled": ["diff", "magic"]}, "Unknown collectors in collectors.disabled: magic"),
        ],
    )
    def test_errors(self, overrides, message):
        """Each problem is reported."""
        from review_context.config import validate_config

        errors = validate_config(self._config(**overrides))

        assert len(errors) == 1
        assert message in errors[0]
