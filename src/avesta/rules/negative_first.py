from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from avesta.engine.context import FileContext
from avesta.engine.types import Diagnostic
from avesta.rules.base import BaseRule, RuleMeta, loc_from_node
from avesta.rules.utils import (
    TERNARY_TYPES,
    is_async_function,
    is_generator_function,
    iter_with_ancestors,
    named_children,
    node_type,
)

_FUNCTION_DECLARATIONS = frozenset({"function_declaration", "generator_function_declaration"})


@dataclass(frozen=True, slots=True)
class NegativeFirstOptions:
    max_nesting_depth: int = 1
    enforce_throw: bool = False
    allow_single_nesting: bool = False
    check_arrow_functions: bool = True
    check_async_functions: bool = True
    check_generators: bool = True
    check_ternaries: bool = True
    check_try_catch: bool = True
    enforce_early_return: bool = False
    max_else_depth: int = 2


class HandleNegativeFirst(BaseRule):
    """
    Prefer guard clauses over nested conditionals.

    Only outermost `if` statements are measured (nested ones count towards
    their parent), plus ternaries when enabled.
    """

    meta = RuleMeta(
        rule_id="handle-negative-first",
        title="Handle negative conditions first",
        description="Enforce handling negative conditions first (guard clauses) to reduce nesting.",
        default_severity="warn",
    )
    options_type = NegativeFirstOptions

    def check_file(self, ctx: FileContext) -> list[Diagnostic]:
        root = ctx.root_node
        if root is None:
            return []
        opts: NegativeFirstOptions = self.options(ctx.config)
        source = ctx.source_bytes()

        out: list[Diagnostic] = []
        for node, ancestors in iter_with_ancestors(root):
            kind = node_type(node)
            if kind == "if_statement" or (kind in TERNARY_TYPES and opts.check_ternaries):
                message = _check_nesting(node, ancestors, opts, source)
                if message is not None:
                    out.append(
                        self._diagnostic(
                            message=message,
                            suggestion="Return or throw early for the failing case, then handle the main path unindented.",
                            location=loc_from_node(ctx, node),
                        )
                    )
        return out


def _check_nesting(node: Any, ancestors: tuple[Any, ...], opts: NegativeFirstOptions, source: bytes) -> str | None:
    if any(node_type(a) == "if_statement" for a in ancestors):
        return None
    if _skipped_by_function_type(ancestors, opts, source):
        return None
    if not opts.check_try_catch and any(node_type(a) == "try_statement" for a in ancestors):
        return None

    if node_type(node) == "if_statement":
        if else_depth(node) > opts.max_else_depth:
            return f"Too many else-if statements, maximum allowed is {opts.max_else_depth}"
        if opts.enforce_early_return and _if_parts(node)[2] is not None:
            return "Use early return instead of else block"

    nested = count_nested_conditionals(node, check_ternaries=opts.check_ternaries) - 1
    if opts.allow_single_nesting and nested <= 1:
        return None
    if nested < opts.max_nesting_depth:
        return None
    if opts.enforce_throw and has_throw_statement(node):
        return None
    return "Handle negative conditions first to reduce nesting"


def _skipped_by_function_type(ancestors: tuple[Any, ...], opts: NegativeFirstOptions, source: bytes) -> bool:
    for ancestor in ancestors:
        kind = node_type(ancestor)
        if kind == "arrow_function" and not opts.check_arrow_functions:
            return True
        if kind in _FUNCTION_DECLARATIONS:
            if not opts.check_async_functions and is_async_function(ancestor, source):
                return True
            if not opts.check_generators and is_generator_function(ancestor):
                return True
    return False


def _if_parts(node: Any) -> tuple[Any | None, Any | None, Any | None]:
    """Split an if_statement into (condition, consequence, alternative)."""

    parts = named_children(node)
    condition = parts[0] if parts else None
    consequence = parts[1] if len(parts) > 1 and node_type(parts[1]) != "else_clause" else None
    alternative = None
    for part in parts:
        if node_type(part) == "else_clause":
            body = named_children(part)
            alternative = body[0] if body else None
    return condition, consequence, alternative


def _ternary_branches(node: Any) -> tuple[Any | None, Any | None]:
    parts = named_children(node)
    consequence = parts[1] if len(parts) > 1 else None
    alternative = parts[2] if len(parts) > 2 else None
    return consequence, alternative


def count_nested_conditionals(node: Any | None, *, check_ternaries: bool = True) -> int:
    if node is None:
        return 0
    kind = node_type(node)

    if kind == "if_statement":
        _cond, consequence, alternative = _if_parts(node)
        alt_count = count_nested_conditionals(alternative, check_ternaries=check_ternaries) if alternative is not None else 0
        return max(1 + count_nested_conditionals(consequence, check_ternaries=check_ternaries), alt_count)

    if kind in TERNARY_TYPES and check_ternaries:
        consequence, alternative = _ternary_branches(node)
        return max(
            1 + count_nested_conditionals(consequence, check_ternaries=check_ternaries),
            1 + count_nested_conditionals(alternative, check_ternaries=check_ternaries),
        )

    if kind == "statement_block":
        return max((count_nested_conditionals(c, check_ternaries=check_ternaries) for c in named_children(node)), default=0)

    if kind in {"return_statement", "parenthesized_expression"}:
        parts = named_children(node)
        return count_nested_conditionals(parts[0], check_ternaries=check_ternaries) if parts else 0

    if kind in {"assignment_pattern", "pair"}:
        parts = named_children(node)
        return count_nested_conditionals(parts[-1], check_ternaries=check_ternaries) if len(parts) >= 2 else 0

    return 0


def else_depth(node: Any) -> int:
    depth = 0
    current: Any | None = node
    while current is not None and node_type(current) == "if_statement":
        alternative = _if_parts(current)[2]
        if alternative is not None:
            depth += 1
        current = alternative
    return depth


def has_throw_statement(node: Any | None) -> bool:
    if node is None:
        return False
    kind = node_type(node)
    if kind == "throw_statement":
        return True
    if kind == "if_statement":
        _cond, consequence, alternative = _if_parts(node)
        return has_throw_statement(consequence) or has_throw_statement(alternative)
    if kind in TERNARY_TYPES:
        consequence, alternative = _ternary_branches(node)
        return has_throw_statement(consequence) or has_throw_statement(alternative)
    if kind == "statement_block":
        return any(has_throw_statement(c) for c in named_children(node))
    return False
