from __future__ import annotations

import dataclasses
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from avesta import __version__
from avesta.engine.types import Diagnostic, FileFailure, ScanSummary, Severity
from avesta.rules.examples import RuleExample
from avesta.rules.registry import RuleSummary
from avesta.suppressions import SuppressionState
from avesta.utils import safe_relpath

REPORT_SCHEMA_VERSION = 1

_SEVERITIES: tuple[Severity, ...] = ("error", "warn", "info")


def render_json(summary: ScanSummary, *, project_root: Path) -> str:
    payload = {
        "schema_version": REPORT_SCHEMA_VERSION,
        "tool": {"name": "Avesta", "version": __version__},
        "files_scanned": summary.files_scanned,
        "counts": {severity: summary.count(severity) for severity in _SEVERITIES},
        "diagnostics": [_diagnostic_to_dict(d, project_root=project_root) for d in summary.diagnostics],
        "failures": [_failure_to_dict(f, project_root=project_root) for f in summary.failures],
    }
    return json.dumps(payload, indent=2)


def render_suppressions_json(state: SuppressionState, *, path: str) -> str:
    payload = {
        "path": path,
        "file_disabled_rules": sorted(state.file_disabled_rules),
        "line_disabled_rules": {str(line): sorted(rules) for line, rules in sorted(state.line_disabled_rules.items())},
        "is_file_fully_disabled": state.is_file_fully_disabled,
    }
    return json.dumps(payload, indent=2)


def render_rules_json(summaries: Sequence[RuleSummary]) -> str:
    return json.dumps([s.as_dict() for s in summaries], indent=2)


def render_rule_json(summary: RuleSummary, example: RuleExample | None) -> str:
    payload = {**summary.as_dict(), "example": dataclasses.asdict(example) if example is not None else None}
    return json.dumps(payload, indent=2)


def _diagnostic_to_dict(d: Diagnostic, *, project_root: Path) -> dict[str, Any]:
    location: dict[str, Any] | None = None
    if d.location is not None and d.location.path is not None:
        location = dataclasses.asdict(d.location)
        location["path"] = safe_relpath(d.location.path, project_root)
    return {
        "rule_id": d.rule_id,
        "severity": d.severity,
        "message": d.message,
        "suggestion": d.suggestion,
        "location": location,
    }


def _failure_to_dict(f: FileFailure, *, project_root: Path) -> dict[str, Any]:
    return {"path": safe_relpath(f.path, project_root), "line": f.line, "error": f.error}
