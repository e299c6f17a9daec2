from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console

from avesta import __version__
from avesta.audit import AuditCallbacks, AuditResult, audit_files, load_rules
from avesta.config import ConfigError
from avesta.logging_utils import configure_logging
from avesta.reporters import json_reporter, terminal
from avesta.scanner import ScanTarget, discover_files, prepare_target
from avesta.suppressions import DirectiveError, parse_directives

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Avesta: directive-aware JavaScript/TypeScript linter with AI review.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

EXIT_FINDINGS = 1
EXIT_BROKEN = 2


class OutputFormat(str, Enum):
    terminal = "terminal"
    json = "json"


class FailOn(str, Enum):
    error = "error"
    warn = "warn"
    info = "info"
    never = "never"


FormatOption = Annotated[
    OutputFormat,
    typer.Option("--format", case_sensitive=False, help="Output format."),
]
ProjectDirArgument = Annotated[
    Path,
    typer.Argument(
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
        help="Project directory (default: current directory).",
    ),
]


@dataclass(frozen=True, slots=True)
class _Settings:
    verbose: bool = False
    quiet: bool = False
    progress: bool = True


def _settings() -> _Settings:
    ctx = click.get_current_context(silent=True)
    obj = ctx.find_object(_Settings) if ctx is not None else None
    return obj or _Settings()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version and exit."),
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logs on stderr.")] = False,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Only warnings and errors on stderr.")] = False,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a progress bar while scanning."),
    ] = True,
) -> None:
    """Avesta CLI."""

    if verbose and quiet:
        raise typer.BadParameter("Choose at most one: --verbose or --quiet.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = _Settings(verbose=verbose, quiet=quiet, progress=progress)


@contextmanager
def _exit_on(prefix: str, *errors: type[Exception]) -> Iterator[None]:
    try:
        yield
    except errors as exc:
        err_console.print(f"{prefix}{exc}", markup=False, soft_wrap=True)
        raise typer.Exit(code=EXIT_BROKEN) from exc


def _load_project(path: Path, *, with_rules: bool = True) -> ScanTarget:
    with _exit_on("Invalid configuration: ", ConfigError):
        target = prepare_target(path)
        if with_rules:
            with _exit_on("Failed to load Avesta plugins: ", RuntimeError):
                load_rules(target)
    return target


@contextmanager
def _scan_progress(file_count: int) -> Iterator[AuditCallbacks]:
    from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

    progress = Progress(
        TextColumn("{task.description:<8}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=err_console,
        transient=True,
    )
    reading = progress.add_task("Reading", total=file_count)
    linting = progress.add_task("Linting", total=None, visible=False)

    with progress:
        yield AuditCallbacks(
            on_context_built=lambda _path: progress.advance(reading),
            on_file_contexts_ready=lambda total: progress.update(linting, total=total, visible=True),
            on_file_scanned=lambda _path: progress.advance(linting),
        )


def _run_audit(target: ScanTarget, *, show_progress: bool) -> AuditResult:
    files = discover_files(target)
    logger.debug("discovered %d candidate file(s)", len(files))
    if not (show_progress and files):
        return audit_files(target, files=files)
    with _scan_progress(len(files)) as callbacks:
        return audit_files(target, files=files, callbacks=callbacks)


@app.command()
def scan(
    path: Annotated[
        Path,
        typer.Argument(exists=True, resolve_path=True, help="File or directory to scan (default: current directory)."),
    ] = Path("."),
    output_format: FormatOption = OutputFormat.terminal,
    fail_on: Annotated[
        FailOn,
        typer.Option("--fail-on", case_sensitive=False, help="Lowest severity that makes the scan exit 1."),
    ] = FailOn.error,
) -> None:
    """
    Lint JavaScript/TypeScript files, honoring avesta-disable directives.

    Exit codes: 0 clean, 1 diagnostics at or above --fail-on, 2 when a file
    has a malformed directive or the configuration/plugins are invalid.
    """

    settings = _settings()
    target = _load_project(path, with_rules=False)
    show_progress = settings.progress and not settings.quiet and output_format is OutputFormat.terminal

    with _exit_on("Invalid configuration: ", ConfigError), _exit_on("", RuntimeError):
        result = _run_audit(target, show_progress=show_progress)

    summary = result.summary
    if output_format is OutputFormat.json:
        typer.echo(json_reporter.render_json(summary, project_root=target.project_root))
    else:
        terminal.render_terminal(summary, project_root=target.project_root, console=console)

    if summary.failures:
        raise typer.Exit(code=EXIT_BROKEN)
    if fail_on is not FailOn.never and summary.reaches(fail_on.value):  # type: ignore[arg-type]
        raise typer.Exit(code=EXIT_FINDINGS)


@app.command()
def rules(
    path: ProjectDirArgument = Path("."),
    output_format: FormatOption = OutputFormat.terminal,
    enabled_only: Annotated[bool, typer.Option("--enabled-only", help="Hide rules the config turns off.")] = False,
) -> None:
    """List built-in and plugin rules with the severity this project gives them."""

    from avesta.rules.registry import describe_rules

    target = _load_project(path)
    summaries = [s for s in describe_rules(target.config) if s.enabled or not enabled_only]

    if output_format is OutputFormat.json:
        typer.echo(json_reporter.render_rules_json(summaries))
    else:
        terminal.render_rules_table(summaries, console=console)


@app.command()
def explain(
    rule_id: Annotated[str, typer.Argument(help="Rule id, e.g. handle-negative-first.")],
    path: Annotated[
        Path,
        typer.Option(
            "--path",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Project whose config and plugins apply (default: current directory).",
        ),
    ] = Path("."),
    output_format: FormatOption = OutputFormat.terminal,
) -> None:
    """Describe one rule, how to suppress it and how to configure it."""

    from avesta.rules.examples import EXAMPLES
    from avesta.rules.registry import describe_rules

    target = _load_project(path)
    wanted = rule_id.strip().lower()
    summary = next((s for s in describe_rules(target.config) if s.meta.rule_id == wanted), None)
    if summary is None:
        raise typer.BadParameter(f"Unknown rule id: {rule_id!r}. Run `avesta rules` to list them.")

    example = EXAMPLES.get(summary.meta.rule_id)
    if output_format is OutputFormat.json:
        typer.echo(json_reporter.render_rule_json(summary, example))
    else:
        terminal.render_rule_explanation(summary, example, console=console)


@app.command()
def suppressions(
    file: Annotated[
        Path,
        typer.Argument(exists=True, file_okay=True, dir_okay=False, resolve_path=True, help="Source file to inspect."),
    ],
    output_format: FormatOption = OutputFormat.terminal,
) -> None:
    """Show which rules FILE disables, file-wide and per line."""

    from rich.table import Table

    with _exit_on(f"Failed to read {file}: ", OSError):
        text = file.read_text(encoding="utf-8", errors="replace")
    with _exit_on("", DirectiveError):
        state = parse_directives(text, file.name)

    if output_format is OutputFormat.json:
        typer.echo(json_reporter.render_suppressions_json(state, path=file.name))
        return
    if state.is_empty():
        console.print(f"{file.name}: no avesta directives", markup=False)
        return

    table = Table(title=f"Suppressions in {file.name}", title_justify="left")
    table.add_column("Scope", style="bold")
    table.add_column("Rules")
    if state.file_disabled_rules:
        table.add_row("whole file", ", ".join(sorted(state.file_disabled_rules)))
    for line, disabled in sorted(state.line_disabled_rules.items()):
        table.add_row(f"line {line}", ", ".join(sorted(disabled)))
    console.print(table)


@app.command()
def review(
    file: Annotated[
        Path | None,
        typer.Option(
            "--file",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
            help="Review one file instead of the staged changes.",
        ),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", help="Model name (default: config, then AI_REVIEW_MODEL, then gpt-4-turbo-preview)."),
    ] = None,
) -> None:
    """
    Ask an AI model to review staged TypeScript changes (or one file).

    OpenAI models read OPENAI_API_KEY; Claude models read AI_PROVIDER_API_KEY.
    """

    from avesta.review.providers import ReviewError, create_provider
    from avesta.review.service import ReviewService

    start = file.parent if file is not None else Path.cwd()
    review_config = _load_project(start, with_rules=False).config.review
    provider = create_provider(review_config, model=model)

    with _exit_on("AI review failed: ", ReviewError):
        if file is not None:
            output: str | None = ReviewService(repo_root=start, config=review_config, provider=provider).review_file(file)
        else:
            output = ReviewService.for_directory(start, config=review_config, provider=provider).review_staged_files()

    if output is None:
        console.print("No staged files to review.")
        return
    typer.echo(output)
