"""Configuration loading and validation for the review context engine."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from review_context.tokens.context import AiProvider, TokenCountMode

KNOWN_COLLECTORS = (
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
)


@dataclass
class GitHubConfig:
    """GitHub integration configuration."""

    token: str
    base_url: str | None = None


@dataclass
class TokenCountingConfig:
    """Which counter to use and how precisely."""

    provider: str | None = None
    model: str | None = None
    mode: str = "estimate"
    api_key: str | None = None
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    anthropic_version: str = "2023-06-01"
    timeout_seconds: float = 15.0


@dataclass
class BudgetConfig:
    """Context window budget."""

    max_context_tokens: int = 80000
    min_context_tokens: int = 8000


@dataclass
class PathsConfig:
    """Glob rules for which changed paths reach the bundle."""

    ignore: list[str] = field(default_factory=list)
    include: list[str] = field(default_factory=list)
    sensitive: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        return {"ignore": list(self.ignore), "include": list(self.include), "sensitive": list(self.sensitive)}


@dataclass
class CollectorsConfig:
    """Collector selection."""

    disabled: list[str] = field(default_factory=list)


@dataclass
class Config:
    """Complete application configuration."""

    github: GitHubConfig
    token_counting: TokenCountingConfig = field(default_factory=TokenCountingConfig)
    budget: BudgetConfig = field(default_factory=BudgetConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    collectors: CollectorsConfig = field(default_factory=CollectorsConfig)


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Path to config file (default: config.yaml)

    Returns:
        Loaded configuration
    """
    if config_path is None:
        config_path = Path("config.yaml")
        if not config_path.exists():
            config_path = Path("config.example.yaml")

    raw_config: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw_config = yaml.safe_load(f) or {}

    raw_config = _expand_env_vars(raw_config)

    return _parse_config(raw_config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand ``${VAR}`` strings in config."""
    if isinstance(obj, str):
        if obj.startswith("${") and obj.endswith("}"):
            return os.environ.get(obj[2:-1], "")
        return obj
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


def _string_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return [str(v) for v in value if v]
    return []


def _parse_config(raw: dict[str, Any]) -> Config:
    """Parse raw config dict into Config object."""
    github_raw = raw.get("github") or {}
    github = GitHubConfig(
        token=github_raw.get("token") or os.environ.get("GITHUB_TOKEN", ""),
        base_url=github_raw.get("base_url") or None,
    )

    counting_raw = raw.get("token_counting") or {}
    token_counting = TokenCountingConfig(
        provider=(counting_raw.get("provider") or None),
        model=counting_raw.get("model") or None,
        mode=counting_raw.get("mode") or "estimate",
        api_key=counting_raw.get("api_key") or os.environ.get("ANTHROPIC_API_KEY") or None,
        anthropic_base_url=counting_raw.get("anthropic_base_url", "https://api.anthropic.com/v1"),
        anthropic_version=counting_raw.get("anthropic_version", "2023-06-01"),
        timeout_seconds=float(counting_raw.get("timeout_seconds", 15.0)),
    )

    budget_raw = raw.get("budget") or {}
    budget = BudgetConfig(
        max_context_tokens=int(budget_raw.get("max_context_tokens", 80000)),
        min_context_tokens=int(budget_raw.get("min_context_tokens", 8000)),
    )

    paths_raw = raw.get("paths") or {}
    paths = PathsConfig(
        ignore=_string_list(paths_raw.get("ignore")),
        include=_string_list(paths_raw.get("include")),
        sensitive=_string_list(paths_raw.get("sensitive")),
    )

    collectors_raw = raw.get("collectors") or {}
    collectors = CollectorsConfig(disabled=_string_list(collectors_raw.get("disabled")))

    return Config(
        github=github,
        token_counting=token_counting,
        budget=budget,
        paths=paths,
        collectors=collectors,
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of errors.

    Args:
        config: Configuration to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    if not config.github.token:
        errors.append("Missing GitHub token (set GITHUB_TOKEN or github.token)")

    providers = {p.value for p in AiProvider}
    if config.token_counting.provider and config.token_counting.provider.lower() not in providers:
        errors.append(
            f"Unknown token counting provider '{config.token_counting.provider}' "
            f"(expected one of: {', '.join(sorted(providers))})"
        )

    modes = {m.value for m in TokenCountMode}
    if config.token_counting.mode.lower() not in modes:
        errors.append(
            f"Unknown token counting mode '{config.token_counting.mode}' "
            f"(expected one of: {', '.join(sorted(modes))})"
        )

    if config.budget.max_context_tokens < config.budget.min_context_tokens:
        errors.append(
            f"max_context_tokens ({config.budget.max_context_tokens}) "
            f"is below min_context_tokens ({config.budget.min_context_tokens})"
        )

    unknown = [name for name in config.collectors.disabled if name not in KNOWN_COLLECTORS]
    if unknown:
        errors.append(f"Unknown collectors in collectors.disabled: {', '.join(unknown)}")

    return errors
