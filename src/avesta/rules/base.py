from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from typing import Any, ClassVar

from avesta.config import AvestaConfig, build_rule_options
from avesta.engine.context import FileContext
from avesta.engine.types import Diagnostic, Location, Severity


@dataclass(frozen=True, slots=True)
class RuleMeta:
    """Static description of a rule; `rule_id` is also the name used in directives."""

    rule_id: str
    title: str
    description: str
    default_severity: Severity
    languages: tuple[str, ...] = ("javascript", "typescript")


@dataclass(frozen=True, slots=True)
class NoOptions:
    """Options type for rules that accept no settings."""


class BaseRule(ABC):
    """
    A lint rule run once per file.

    Subclasses set `meta`, override `check_file` and, when configurable,
    point `options_type` at a frozen dataclass whose field defaults are the
    rule's defaults.
    """

    meta: RuleMeta
    options_type: ClassVar[type[Any]] = NoOptions

    def applies_to(self, ctx: FileContext) -> bool:
        return ctx.language in self.meta.languages

    def check_file(self, ctx: FileContext) -> list[Diagnostic]:
        return []

    def options(self, config: AvestaConfig) -> Any:
        table = f"tool.avesta.rules.{self.meta.rule_id}"
        return build_rule_options(self.options_type, config.rule_settings(self.meta.rule_id).options, field_name=table)

    def _diagnostic(self, *, message: str, location: Location | None = None, suggestion: str | None = None) -> Diagnostic:
        return Diagnostic(
            rule_id=self.meta.rule_id,
            severity=self.meta.default_severity,
            message=message,
            suggestion=suggestion,
            location=location,
        )


def loc_from_line(
    ctx: FileContext, *, line: int, col: int | None = 1, end_line: int | None = None, end_col: int | None = None
) -> Location:
    return Location(path=ctx.path, start_line=line, start_col=col, end_line=end_line, end_col=end_col)


def loc_from_node(ctx: FileContext, node: Any) -> Location:
    """1-based span of a tree-sitter node, whose points are 0-based (row, column)."""

    row, col = getattr(node, "start_point", (0, 0))
    end = getattr(node, "end_point", None)
    if end is None:
        return loc_from_line(ctx, line=row + 1, col=col + 1)
    return loc_from_line(ctx, line=row + 1, col=col + 1, end_line=end[0] + 1, end_col=end[1] + 1)
