"""lintoracle CLI – Typer multi-command application."""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.panel import Panel
from rich.text import Text

from lintoracle.config.settings import LinterSettings, load_settings, merge_settings
from lintoracle.core.cache import LinterCache
from lintoracle.core.engine import LinterEngine, LintReport
from lintoracle.core.errors import AbortError, InvalidConfigError, TaskFailedError
from lintoracle.core.lint_result import LintError
from lintoracle.core.oracle import create_oracle
from lintoracle.core.source_file import resolve_files
from lintoracle.rules.base_rule import Rule, resolve_rules
from lintoracle.utils.logger import (
    configure_logging, console, create_table, print_error, print_info, print_success, print_warning,
)

__all__ = ["app"]

app = typer.Typer(
    name="lintoracle",
    help="Lint source files against natural-language rules judged by an LLM.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

_LEVEL_COLOR = {"error": "red", "warn": "yellow", "off": "dim"}


def _banner() -> None:
    console.print(Panel(
        Text("lintoracle", style="bold magenta", justify="center"),
        subtitle="LLM-judged rule conformance",
        border_style="magenta", expand=False, padding=(0, 4),
    ))
    console.print()


def _load(config: Path | None, root: Path, overrides: dict[str, Any] | None = None) -> tuple[LinterSettings, list[Rule]]:
    try:
        settings = load_settings(config_path=config, search_dir=root)
        if overrides:
            settings = merge_settings(settings, overrides)
        rules = resolve_rules(settings.rule_definitions)
    except InvalidConfigError as exc:
        print_error(str(exc))
        raise typer.Exit(code=2)
    return settings, rules


def _print_errors(errors: list[LintError], root: Path) -> None:
    by_file: dict[str, list[LintError]] = {}
    for e in errors:
        by_file.setdefault(e.file_path, []).append(e)

    for file_path, file_errors in sorted(by_file.items()):
        try:
            shown = Path(file_path).relative_to(root).as_posix()
        except ValueError:
            shown = file_path
        console.print(Panel(f"[bold]{shown}[/bold]  ({len(file_errors)} issue(s))", border_style="yellow", expand=True))
        for e in file_errors:
            style = _LEVEL_COLOR.get(e.level, "white")
            console.print(f"  [{style}]● {e.level.upper()}[/{style}]  [bold]{e.rule_name}[/bold]")
            console.print(Panel(Text(e.code_snippet), border_style="dim", expand=False))
            if e.reasoning:
                console.print(f"    [dim]Why:[/dim] {e.reasoning}")
            console.print()


def _print_summary(report: LintReport) -> None:
    result = report.result
    errors = sum(1 for e in result.lint_errors if e.level == "error")
    warns = sum(1 for e in result.lint_errors if e.level == "warn")
    duration = (result.duration_ms or 0) / 1000
    console.print(Panel(
        f"[bold]Violations: {len(result.lint_errors)}[/bold]  [red]Error: {errors}[/red]  "
        f"[yellow]Warning: {warns}[/yellow]  [red]Failed tasks: {len(report.failures)}[/red]\n"
        f"Model calls: {result.num_model_calls}  Cached: {result.num_model_calls_cached}  "
        f"Tokens: {result.num_total_tokens}  Cost: ${result.total_cost:.4f}  Time: {duration:.1f}s",
        title="📋 Lint Summary", border_style="cyan",
    ))


@app.command()
def lint(
    paths: Optional[List[str]] = typer.Argument(None, help="Files or glob patterns to lint (defaults to config 'files')"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to lintoracle.yaml"),
    project_dir: Optional[Path] = typer.Option(None, "--dir", "-d", help="Project root directory"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", min=1, help="Maximum number of tasks in flight"),
    early_exit: bool = typer.Option(False, "--early-exit", help="Stop after the first violation is found"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Do not read or persist the verdict cache"),
    no_inline_config: bool = typer.Option(False, "--no-inline-config", help="Ignore lintoracle directives in files"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model used to judge rules"),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging; tasks run one at a time"),
) -> None:
    """Lint files against the configured rules."""
    _banner()
    configure_logging(debug)
    root = (project_dir or Path.cwd()).resolve()

    linter_options: dict[str, Any] = {}
    if concurrency is not None:
        linter_options["concurrency"] = concurrency
    for flag, value in (("early_exit", early_exit), ("no_cache", no_cache),
                        ("no_inline_config", no_inline_config), ("debug", debug)):
        if value:
            linter_options[flag] = True
    overrides: dict[str, Any] = {"linter_options": linter_options}
    if model:
        overrides["llm_options"] = {"model": model}
    settings, rules = _load(config, root, overrides)

    files = resolve_files(paths or settings.files, root, settings.ignores)
    if not rules:
        print_warning("No rules configured – nothing to lint.")
        raise typer.Exit(code=0)
    if not files:
        print_warning("No files matched – nothing to lint.")
        raise typer.Exit(code=0)
    print_info(f"Linting {len(files)} file(s) against {len(rules)} rule(s)")

    try:
        oracle = create_oracle(settings.llm_options)
    except RuntimeError as exc:
        print_error(str(exc))
        raise typer.Exit(code=2)

    options = settings.linter_options
    with LinterCache(root / options.cache_dir, no_cache=options.no_cache) as cache:
        engine = LinterEngine(settings, oracle, cache)
        try:
            with console.status("[bold cyan]Linting files…"):
                report = engine.lint_files(files, rules)
        except (TaskFailedError, AbortError) as exc:
            print_error(str(exc))
            raise typer.Exit(code=2)

    _print_errors(report.result.lint_errors, root)
    for failure in report.failures:
        print_error(str(failure))
    _print_summary(report)

    if report.exit_code == 0:
        print_success("No rule violations found.")
    elif report.has_failures:
        print_error("Some lint tasks failed.")
    else:
        print_warning("Rule violations found.")
    raise typer.Exit(code=report.exit_code)


@app.command()
def rules(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to lintoracle.yaml"),
    project_dir: Optional[Path] = typer.Option(None, "--dir", "-d", help="Project root directory"),
) -> None:
    """List the configured rules and their effective settings."""
    root = (project_dir or Path.cwd()).resolve()
    settings, resolved = _load(config, root)
    if not resolved:
        print_warning("No rules configured.")
        raise typer.Exit(code=0)

    rows = []
    for rule in resolved:
        level = settings.rule_setting(rule)
        style = _LEVEL_COLOR.get(level, "white")
        rows.append([
            rule.name,
            f"[{style}]{level}[/{style}]",
            rule.scope,
            ", ".join(rule.languages or []) or "any",
            rule.display_title,
        ])
    console.print(create_table(
        "📜 Rules",
        [("Name", "bold"), ("Setting", ""), ("Scope", "cyan"), ("Languages", ""), ("Title", "")],
        rows,
    ))
    raise typer.Exit(code=0)


if __name__ == "__main__":
    app()
