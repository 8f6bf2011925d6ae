"""Command-line interface for the review context engine."""

import json
import logging
import sys
from pathlib import Path
from typing import TextIO

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from review_context import __version__
from review_context.config import Config, load_config, validate_config
from review_context.factory import (
    build_params,
    create_engine,
    create_token_context,
    create_token_counter,
)
from review_context.filters.token_limit import resolve_max_tokens
from review_context.github.client import GitHubClient
from review_context.models.context import ContextBundle
from review_context.redactor import SensitiveDataRedactor
from review_context.tokens import AiProvider, TokenCountMode

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_valid_config(config_path: str | None) -> Config:
    config = load_config(Path(config_path) if config_path else None)
    errors = validate_config(config)
    if errors:
        for error in errors:
            console.print(f"[red]Config error:[/red] {error}")
        sys.exit(1)
    return config


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def cli(verbose: bool) -> None:
    """Review Context - assemble budgeted PR context for AI code review."""
    setup_logging(verbose)


@cli.command("build")
@click.argument("repo")
@click.argument("pr_number", type=int)
@click.option("--max-tokens", type=int, default=None, help="Override the context token budget")
@click.option("--output", type=click.Choice(["summary", "json"]), default="summary")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def build(
    repo: str,
    pr_number: int,
    max_tokens: int | None,
    output: str,
    config_path: str | None,
) -> None:
    """Build the review context for a GitHub pull request."""
    config = _load_valid_config(config_path)

    gh = GitHubClient(config.github.token, config.github.base_url)
    counter = create_token_counter(config)
    params = build_params(config, repo, pr_number, max_tokens=max_tokens)
    budget = resolve_max_tokens(
        params["metadata"], config.budget.max_context_tokens, config.budget.min_context_tokens
    )

    try:
        engine = create_engine(config, gh, counter=counter)

        if output == "summary":
            console.print(f"🔍 Building context for PR #{pr_number} in [bold]{repo}[/bold]...")

        bundle = engine.build(params)

        if output == "json":
            print(json.dumps(bundle.to_dict(), indent=2, ensure_ascii=False, default=str))
        else:
            _print_summary(bundle, budget, bundle.estimate_sections(counter, create_token_context(config)))
    finally:
        counter.anthropic.close()


def _print_summary(bundle: ContextBundle, budget: int, sections: dict[str, int]) -> None:
    if bundle.pull_request is None:
        console.print("[yellow]No pull request data collected - check the logs above.[/yellow]")

    table = Table(title="Context Sections")
    table.add_column("Section")
    table.add_column("Tokens", justify="right")

    for name, tokens in sections.items():
        table.add_row(name, str(tokens))

    console.print(table)

    total = sum(sections.values())
    style = "green" if total <= budget else "red"
    console.print(
        f"[{style}]~{total} tokens[/{style}] of {budget} | "
        f"{bundle.files_with_patch_count()} files with patches | "
        f"{len(bundle.linked_issues)} linked issues | {len(bundle.impacted_files)} impacted files"
    )


@cli.command("count-tokens")
@click.argument("file", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--provider", type=click.Choice([p.value for p in AiProvider]), default=None)
@click.option("--model", default=None, help="Model name used to pick the encoder")
@click.option("--precise", is_flag=True, help="Ask the provider for an exact count when possible")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def count_tokens(
    file: TextIO,
    provider: str | None,
    model: str | None,
    precise: bool,
    config_path: str | None,
) -> None:
    """Count the tokens of FILE (or stdin)."""
    config = load_config(Path(config_path) if config_path else None)
    if provider:
        config.token_counting.provider = provider
    if model:
        config.token_counting.model = model
    if precise:
        config.token_counting.mode = TokenCountMode.PRECISE.value

    counter = create_token_counter(config)
    context = create_token_context(config)
    try:
        text = file.read()
        print(counter.count_text_tokens(text, context))
    finally:
        counter.anthropic.close()


@cli.command("redact")
@click.argument("file", type=click.Path(exists=True, dir_okay=False), required=False)
def redact(file: str | None) -> None:
    """Print FILE (or stdin) with secrets redacted."""
    redactor = SensitiveDataRedactor()

    if file is None:
        text = sys.stdin.read()
    else:
        if redactor.is_sensitive_file(file):
            console.print(f"[red]Refusing to print sensitive file:[/red] {file}")
            sys.exit(1)
        text = Path(file).read_text(encoding="utf-8")

    print(redactor.redact(text), end="")


@cli.group("config")
def config_group() -> None:
    """Configuration commands."""
    pass


@config_group.command("validate")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def config_validate(config_path: str | None) -> None:
    """Validate configuration file."""
    try:
        config = load_config(Path(config_path) if config_path else None)
        errors = validate_config(config)

        if errors:
            console.print("[red]Configuration is invalid:[/red]")
            for error in errors:
                console.print(f"  • {error}")
            sys.exit(1)
        else:
            console.print("[green]✓ Configuration is valid[/green]")
    except (OSError, ValueError, TypeError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        sys.exit(1)


@config_group.command("show")
@click.option("--config", "config_path", type=click.Path(exists=True), help="Config file path")
def config_show(config_path: str | None) -> None:
    """Show current configuration."""
    config = load_config(Path(config_path) if config_path else None)

    console.print("\n[bold]Current Configuration[/bold]\n")

    table = Table(title="Token Counting")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("Provider", config.token_counting.provider or "heuristic")
    table.add_row("Model", config.token_counting.model or "-")
    table.add_row("Mode", config.token_counting.mode)
    table.add_row("API key", "set" if config.token_counting.api_key else "not set")
    console.print(table)

    console.print(f"\n[bold]GitHub:[/bold] {config.github.base_url or 'https://api.github.com'}")
    console.print(
        f"[bold]Budget:[/bold] {config.budget.max_context_tokens} tokens "
        f"(minimum {config.budget.min_context_tokens})"
    )
    console.print(f"[bold]Ignored paths:[/bold] {', '.join(config.paths.ignore) or '-'}")
    console.print(f"[bold]Sensitive paths:[/bold] {', '.join(config.paths.sensitive) or '-'}")
    console.print(f"[bold]Disabled collectors:[/bold] {', '.join(config.collectors.disabled) or '-'}")


if __name__ == "__main__":
    cli()
