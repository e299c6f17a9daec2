from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path

from avesta.config import AvestaConfig, compute_enabled_rule_ids
from avesta.engine.context import FileContext, ProjectContext
from avesta.engine.types import Diagnostic
from avesta.rules.base import BaseRule
from avesta.rules.registry import all_rules
from avesta.suppressions import filter_diagnostics

logger = logging.getLogger(__name__)


def enabled_rules(config: AvestaConfig) -> list[BaseRule]:
    rules = all_rules()
    wanted = compute_enabled_rule_ids(config, available_rule_ids=(r.meta.rule_id for r in rules))
    return [r for r in rules if r.meta.rule_id in wanted]


@dataclass(frozen=True, slots=True)
class _FileChecker:
    config: AvestaConfig
    rules: Sequence[BaseRule]

    def __call__(self, ctx: FileContext) -> list[Diagnostic]:
        found: list[Diagnostic] = []
        for rule in self.rules:
            if rule.applies_to(ctx):
                override = self.config.rule_settings(rule.meta.rule_id).severity
                diagnostics = rule.check_file(ctx)
                found += diagnostics if override is None else [replace(d, severity=override) for d in diagnostics]

        kept = filter_diagnostics(found, ctx.suppressions)
        if len(kept) < len(found):
            logger.debug("%s: %d diagnostic(s) suppressed", ctx.relative_path, len(found) - len(kept))
        return kept


def _ordered_map(check: _FileChecker, files: list[FileContext], workers: int) -> Iterator[list[Diagnostic]]:
    if workers <= 1 or len(files) <= 1:
        yield from map(check, files)
        return
    with ThreadPoolExecutor(max_workers=min(workers, len(files)), thread_name_prefix="avesta-lint") as pool:
        yield from pool.map(check, files)


def detect(
    project: ProjectContext,
    files: Iterable[FileContext],
    *,
    workers: int | None = None,
    on_file_done: Callable[[Path], None] | None = None,
) -> list[Diagnostic]:
    """
    Run the enabled rules over `files` and drop what directives suppress.

    Config severity overrides apply before suppression. Output follows the
    order of `files` whatever the worker count.
    """

    check = _FileChecker(project.config, tuple(enabled_rules(project.config)))
    file_list = list(files)

    diagnostics: list[Diagnostic] = []
    for ctx, found in zip(file_list, _ordered_map(check, file_list, workers or 1), strict=True):
        diagnostics += found
        if on_file_done is not None:
            on_file_done(ctx.path)
    return diagnostics
