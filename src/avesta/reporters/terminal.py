from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from rich.console import Console, Group
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from avesta import __version__
from avesta.engine.types import Diagnostic, ScanSummary
from avesta.rules.examples import RuleExample
from avesta.rules.registry import RuleSummary
from avesta.utils import safe_relpath

_MARKS = {"error": ("✖", "bold red"), "warn": ("⚠", "yellow"), "info": ("ℹ", "dim")}
_PROJECT_GROUP = "(project)"


def render_terminal(summary: ScanSummary, *, project_root: Path, console: Console) -> None:
    console.print(
        Panel(
            Text.assemble(("Avesta ", "bold"), (f"v{__version__}", "dim")),
            subtitle=f"Scanned {summary.files_scanned} files",
            border_style="cyan",
        )
    )

    for group, diagnostics in _group_by_file(summary.diagnostics, project_root).items():
        console.print(Text.assemble((group, "bold"), (f"  {len(diagnostics)}", "dim")))
        lines = [] if group == _PROJECT_GROUP else _read_lines(project_root / group)
        for d in diagnostics:
            _print_diagnostic(console, d, lines)
        console.print()

    if summary.failures:
        console.print(Text("Skipped (malformed directives)", style="bold red"))
        for failure in summary.failures:
            where = safe_relpath(failure.path, project_root)
            if failure.line is not None:
                where = f"{where}:{failure.line}"
            console.print(Text.assemble(("  ✖ ", "bold red"), (where, "bold"), f"  {failure.error}"))
        console.print()

    console.rule(style="dim")
    console.print(_totals(summary))


def _group_by_file(diagnostics: Sequence[Diagnostic], project_root: Path) -> dict[str, list[Diagnostic]]:
    groups: dict[str, list[Diagnostic]] = {}
    for d in diagnostics:
        path = d.location.path if d.location is not None else None
        key = _PROJECT_GROUP if path is None else safe_relpath(path, project_root)
        groups.setdefault(key, []).append(d)
    ordered = sorted(groups, key=lambda k: (k != _PROJECT_GROUP, k))
    return {k: sorted(groups[k], key=_line_then_severity) for k in ordered}


def _line_then_severity(d: Diagnostic) -> tuple[int, int, str]:
    line = d.location.start_line if d.location is not None and d.location.start_line else 0
    return line, list(_MARKS).index(d.severity) if d.severity in _MARKS else len(_MARKS), d.rule_id or ""


def _print_diagnostic(console: Console, d: Diagnostic, lines: list[str]) -> None:
    icon, style = _MARKS.get(d.severity, ("•", ""))
    loc = d.location
    start = loc.start_line if loc is not None else None
    position = f"{start}:{loc.start_col or 1}" if loc is not None and start is not None else ""

    console.print(
        Text.assemble(
            f"  {position:>7}  ",
            (f"{icon} {d.severity:<5}", style),
            f"  {d.message}  ",
            (d.rule_id or "(no rule)", "dim"),
        )
    )
    if start is not None and 0 < start <= len(lines):
        console.print(f"           │ {lines[start - 1]}", style="dim", markup=False, highlight=False)
    if d.suggestion:
        console.print(f"           → {d.suggestion}", style="dim", markup=False, highlight=False)


def _totals(summary: ScanSummary) -> Text:
    errors, warnings, infos = summary.count("error"), summary.count("warn"), summary.count("info")
    text = Text.assemble(
        (f"{errors} error(s)", "bold red" if errors else "dim"),
        ", ",
        (f"{warnings} warning(s)", "yellow" if warnings else "dim"),
        ", ",
        (f"{infos} info", "dim"),
    )
    if summary.failures:
        text.append(f", {len(summary.failures)} file(s) skipped", style="bold red")
    return text


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError:
        return []


def render_rules_table(summaries: Sequence[RuleSummary], *, console: Console) -> None:
    table = Table(title="Avesta rules", title_justify="left")
    table.add_column("Rule", style="bold", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Languages")
    table.add_column("Title")
    for s in summaries:
        severity = s.severity if s.enabled else "off"
        table.add_row(
            s.meta.rule_id,
            Text(severity, style=_MARKS[s.severity][1] if s.enabled else "dim"),
            ", ".join(s.meta.languages),
            s.meta.title,
            style=None if s.enabled else "dim",
        )
    console.print(table)


def render_rule_explanation(summary: RuleSummary, example: RuleExample | None, *, console: Console) -> None:
    meta = summary.meta
    facts = Text.assemble(
        (meta.title, "bold"),
        "\n\n",
        meta.description,
        "\n\n",
        ("severity  ", "dim"),
        summary.severity if summary.enabled else "off",
        (f" (default {meta.default_severity})", "dim"),
        "\n",
        ("languages ", "dim"),
        ", ".join(meta.languages),
    )
    console.print(Panel(facts, title=meta.rule_id, title_align="left", border_style="cyan"))

    console.print(Text("Silence it in a file:", style="bold"))
    console.print(
        Syntax(
            f"/* avesta-disable {meta.rule_id} */\n\n// avesta-disable-next-line {meta.rule_id}\nconst value = 1;",
            "typescript",
        )
    )
    console.print(Text("Tune it in pyproject.toml:", style="bold"))
    console.print(Syntax(f'[tool.avesta.rules.{meta.rule_id}]\nseverity = "info"', "toml"))

    if example is None:
        return
    parts: list[Text | Syntax] = []
    if example.notes:
        parts.append(Text(example.notes, style="dim"))
    parts += [Text("Flagged:", style="bold red"), Syntax(example.bad, example.language)]
    if example.good is not None:
        parts += [Text("Preferred:", style="bold green"), Syntax(example.good, example.language)]
    console.print(Panel(Group(*parts), title="Example", title_align="left", border_style="dim"))
