from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from avesta.engine import tree_sitter
from avesta.engine.detection import detect, enabled_rules
from avesta.engine.types import SEVERITY_RANK, Diagnostic, ScanSummary
from avesta.rules.plugins import PluginLoadError, load_plugin_rules
from avesta.rules.registry import rule_ids, set_extra_rules
from avesta.scanner import (
    ScanTarget,
    build_file_contexts,
    build_project_context,
    discover_files,
    prepare_target,
    worker_count_from_env,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuditResult:
    target: ScanTarget
    files: tuple[Path, ...]
    summary: ScanSummary


@dataclass(frozen=True, slots=True)
class AuditCallbacks:
    """Progress hooks: one call per file read, one with the lintable count, one per file linted."""

    on_context_built: Callable[[Path], None] | None = None
    on_file_contexts_ready: Callable[[int], None] | None = None
    on_file_scanned: Callable[[Path], None] | None = None


def load_rules(target: ScanTarget) -> None:
    """
    Register the project's plugin rules, then validate options of enabled rules.

    Raises PluginLoadError for broken plugins and ConfigError for bad rule options.
    Settings tables naming no known rule are only logged.
    """

    set_extra_rules(load_plugin_rules(target.config.plugins))

    for rule_id in sorted(set(target.config.rules.settings) - rule_ids()):
        logger.warning("unknown rule id in rules settings: %s", rule_id)
    for rule in enabled_rules(target.config):
        rule.options(target.config)


def audit_path(scan_path: Path, *, callbacks: AuditCallbacks | None = None) -> AuditResult:
    target = prepare_target(scan_path)
    return audit_files(target, files=discover_files(target), callbacks=callbacks)


def audit_files(
    target: ScanTarget,
    *,
    files: list[Path],
    callbacks: AuditCallbacks | None = None,
) -> AuditResult:
    hooks = callbacks or AuditCallbacks()
    try:
        load_rules(target)
    except PluginLoadError as exc:
        raise RuntimeError(f"Failed to load Avesta plugins: {exc}") from exc

    if files and not tree_sitter.is_available():
        logger.warning("%s", tree_sitter.MISSING_DEPS_MESSAGE)

    workers = worker_count_from_env()
    project = build_project_context(target, files)
    contexts, failures = build_file_contexts(project, files, workers=workers, on_path_done=hooks.on_context_built)
    if hooks.on_file_contexts_ready is not None:
        hooks.on_file_contexts_ready(len(contexts))
    diagnostics = detect(project, contexts, workers=workers, on_file_done=hooks.on_file_scanned)

    logger.debug("linted %d file(s): %d diagnostic(s), %d skipped", len(contexts), len(diagnostics), len(failures))
    summary = ScanSummary(
        files_scanned=len(contexts),
        diagnostics=tuple(sorted(diagnostics, key=_report_order)),
        failures=tuple(failures),
    )
    return AuditResult(target=target, files=tuple(files), summary=summary)


def _report_order(d: Diagnostic) -> tuple[str, int, int, int, str]:
    """Path, line, column, then most severe first; project-level diagnostics lead."""

    loc = d.location
    path = loc.path.as_posix() if loc is not None and loc.path is not None else ""
    line = (loc.start_line or 0) if loc is not None else 0
    col = (loc.start_col or 0) if loc is not None else 0
    return path, line, col, -SEVERITY_RANK.get(d.severity, 0), d.rule_id or ""
