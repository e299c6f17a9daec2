from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console

from avesta.engine.types import Diagnostic, FileFailure, Location, ScanSummary
from avesta.reporters.json_reporter import REPORT_SCHEMA_VERSION, render_json, render_suppressions_json
from avesta.reporters.terminal import render_terminal
from avesta.suppressions import parse_directives


def _summary(tmp_path: Path) -> ScanSummary:
    file_path = tmp_path / "src" / "app.tsx"
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text("const a = 1;\nif (a) { if (b) { go(); } }\n", encoding="utf-8")

    return ScanSummary(
        files_scanned=2,
        diagnostics=(
            Diagnostic(
                rule_id="handle-negative-first",
                severity="warn",
                message="Handle negative conditions first to reduce nesting",
                suggestion="Return early instead.",
                location=Location(path=file_path, start_line=2, start_col=1),
            ),
            Diagnostic(rule_id=None, severity="info", message="project note"),
        ),
        failures=(FileFailure(path=tmp_path / "src" / "bad.ts", error="Invalid comment format", line=4),),
    )


def test_render_terminal_includes_snippet_failures_and_counts(tmp_path: Path) -> None:
    console = Console(record=True, width=120)

    render_terminal(_summary(tmp_path), project_root=tmp_path, console=console)
    text = console.export_text()

    assert "Scanned 2 files" in text
    assert "src/app.tsx" in text
    assert "handle-negative-first" in text
    assert "if (a) { if (b) { go(); } }" in text
    assert "→ Return early instead." in text
    assert "(no rule)" in text
    assert "Skipped (malformed directives)" in text
    assert "src/bad.ts:4  Invalid comment format" in text
    assert "0 error(s), 1 warning(s), 1 info, 1 file(s) skipped" in text


def test_render_json_uses_relative_paths(tmp_path: Path) -> None:
    data = json.loads(render_json(_summary(tmp_path), project_root=tmp_path))

    assert data["schema_version"] == REPORT_SCHEMA_VERSION
    assert data["counts"] == {"error": 0, "warn": 1, "info": 1}
    assert data["diagnostics"][0]["location"] == {
        "path": "src/app.tsx",
        "start_line": 2,
        "start_col": 1,
        "end_line": None,
        "end_col": None,
    }
    assert data["diagnostics"][1]["location"] is None
    assert data["failures"] == [{"path": "src/bad.ts", "line": 4, "error": "Invalid comment format"}]


def test_render_suppressions_json() -> None:
    state = parse_directives("// avesta-disable-next-line b, a\nfoo();\n")

    data = json.loads(render_suppressions_json(state, path="x.ts"))

    assert data["line_disabled_rules"] == {"2": ["a", "b"]}
    assert data["file_disabled_rules"] == []
