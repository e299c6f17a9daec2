from __future__ import annotations

from pathlib import Path

from helpers import ConsoleLogRule, make_file_ctx

from avesta.config import parse_config_table
from avesta.engine.context import ProjectContext
from avesta.engine.detection import detect, enabled_rules
from avesta.rules.base import RuleMeta
from avesta.rules.registry import set_extra_rules

_SOURCE = "console.log(1);\n// avesta-disable-next-line no-console-log\nconsole.log(2);\nconsole.log(3);\n"


class _JavaScriptOnlyRule(ConsoleLogRule):
    meta = RuleMeta(
        rule_id="no-console-log",
        title="No console.log",
        description="Flags console.log calls in JavaScript files.",
        default_severity="warn",
        languages=("javascript",),
    )


def _project(tmp_path: Path, table: dict) -> ProjectContext:
    return ProjectContext(project_root=tmp_path, scan_path=tmp_path, files=(), config=parse_config_table(table))


def _lines(diagnostics) -> list[int]:
    return [d.location.start_line for d in diagnostics if d.location is not None]


def test_detect_drops_next_line_suppressions(project_ctx: ProjectContext) -> None:
    set_extra_rules([ConsoleLogRule()])
    ctx = make_file_ctx(project_ctx, relpath="src/a.ts", content=_SOURCE)

    diagnostics = detect(project_ctx, [ctx])

    assert _lines(diagnostics) == [1, 4]
    assert {d.rule_id for d in diagnostics} == {"no-console-log"}


def test_detect_drops_file_suppressions(project_ctx: ProjectContext) -> None:
    set_extra_rules([ConsoleLogRule()])
    ctx = make_file_ctx(
        project_ctx,
        relpath="src/a.ts",
        content="/* avesta-disable no-console-log, handle-negative-first */\nconsole.log(1);\n",
    )

    assert detect(project_ctx, [ctx]) == []


def test_detect_applies_severity_override(tmp_path: Path) -> None:
    set_extra_rules([ConsoleLogRule()])
    project = _project(tmp_path, {"rules": {"no-console-log": {"severity": "error"}}})
    ctx = make_file_ctx(project, relpath="a.js", content="console.log(1);\n")

    assert [d.severity for d in detect(project, [ctx])] == ["error"]


def test_disabled_rules_do_not_run(tmp_path: Path) -> None:
    set_extra_rules([ConsoleLogRule()])
    project = _project(tmp_path, {"rules": {"disable": ["no-console-log"]}})
    ctx = make_file_ctx(project, relpath="a.js", content="console.log(1);\n")

    assert detect(project, [ctx]) == []
    assert "no-console-log" not in {r.meta.rule_id for r in enabled_rules(project.config)}


def test_rules_only_run_for_their_languages(project_ctx: ProjectContext) -> None:
    set_extra_rules([_JavaScriptOnlyRule()])
    ts_ctx = make_file_ctx(project_ctx, relpath="a.ts", content="console.log(1);\n")
    js_ctx = make_file_ctx(project_ctx, relpath="a.js", content="console.log(1);\n")

    assert detect(project_ctx, [ts_ctx]) == []
    assert len(detect(project_ctx, [js_ctx])) == 1


def test_parallel_detection_keeps_file_order(project_ctx: ProjectContext) -> None:
    set_extra_rules([ConsoleLogRule()])
    contexts = [
        make_file_ctx(project_ctx, relpath=f"src/f{i}.ts", content="x;\n" * i + "console.log(1);\n") for i in range(6)
    ]
    done: list[Path] = []

    diagnostics = detect(project_ctx, contexts, workers=4, on_file_done=done.append)

    assert _lines(diagnostics) == [1, 2, 3, 4, 5, 6]
    assert done == [c.path for c in contexts]
