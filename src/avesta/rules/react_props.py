from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from avesta.engine.context import FileContext
from avesta.engine.types import Diagnostic
from avesta.rules.base import BaseRule, RuleMeta, loc_from_node
from avesta.rules.utils import (
    FUNCTION_TYPES,
    TERNARY_TYPES,
    children,
    iter_with_ancestors,
    named_children,
    node_text,
    node_type,
)

_ATTRIBUTE_NAME_TYPES = frozenset({"property_identifier", "jsx_namespace_name", "identifier"})
_OBJECT_MEMBER_TYPES = frozenset(
    {"pair", "shorthand_property_identifier", "spread_element", "method_definition"}
)


@dataclass(frozen=True, slots=True)
class ReactPropsOptions:
    max_inline_props: int = 2
    max_ternary_operations: int = 1
    ignore_props: tuple[str, ...] = ()


@dataclass(slots=True)
class _Complexity:
    ternaries: int = 0
    template_strings: int = 0
    calls: int = 0


class ReactPropsHelper(BaseRule):
    meta = RuleMeta(
        rule_id="react-props-helper",
        title="Extract complex props into a helper",
        description="Enforce using helper functions for complex object literals passed as JSX props.",
        default_severity="warn",
    )
    options_type = ReactPropsOptions

    def check_file(self, ctx: FileContext) -> list[Diagnostic]:
        root = ctx.root_node
        if root is None:
            return []
        opts: ReactPropsOptions = self.options(ctx.config)
        source = ctx.source_bytes()

        out: list[Diagnostic] = []
        for node, ancestors in iter_with_ancestors(root):
            if node_type(node) != "jsx_attribute":
                continue
            name = _attribute_name(node, source)
            if name is not None and name in opts.ignore_props:
                continue
            obj = _object_value(node)
            if obj is None:
                continue

            limit = opts.max_inline_props
            if _is_nested_element(ancestors):
                limit = max(1, limit - 1)

            if is_complex_object(obj, max_inline_props=limit, max_ternary_operations=opts.max_ternary_operations):
                out.append(
                    self._diagnostic(
                        message="Complex props should be extracted into a helper function",
                        suggestion="Build the object in a named helper (or a memoized value) and pass the result.",
                        location=loc_from_node(ctx, obj),
                    )
                )
        return out


def _attribute_name(attribute: Any, source: bytes) -> str | None:
    for child in children(attribute):
        if node_type(child) in _ATTRIBUTE_NAME_TYPES:
            return node_text(child, source)
    return None


def _object_value(attribute: Any) -> Any | None:
    for child in named_children(attribute):
        if node_type(child) != "jsx_expression":
            continue
        inner = named_children(child)
        if inner and node_type(inner[0]) == "object":
            return inner[0]
    return None


def _is_nested_element(ancestors: tuple[Any, ...]) -> bool:
    """True when the attribute's element sits inside another JSX element."""

    elements = sum(1 for a in ancestors if node_type(a) == "jsx_element")
    own = 1 if ancestors and node_type(ancestors[-1]) == "jsx_opening_element" else 0
    return elements > own


def is_complex_object(obj: Any, *, max_inline_props: int, max_ternary_operations: int) -> bool:
    members = [m for m in named_children(obj) if node_type(m) in _OBJECT_MEMBER_TYPES]
    if len(members) > max_inline_props:
        return True

    found = _Complexity()
    for member in members:
        if node_type(member) == "pair":
            parts = named_children(member)
            if len(parts) >= 2:
                _measure(parts[-1], found)

    return (
        found.ternaries > max_ternary_operations
        or found.template_strings > 0
        or (found.calls > 0 and len(members) > 1)
    )


def _measure(node: Any, found: _Complexity) -> None:
    stack = [node]
    while stack:
        current = stack.pop()
        kind = node_type(current)
        if kind in TERNARY_TYPES:
            found.ternaries += 1
        elif kind == "template_string":
            found.template_strings += 1
        elif kind == "call_expression":
            found.calls += 1
        if kind in FUNCTION_TYPES:
            # Callback bodies are not part of the literal.
            continue
        stack.extend(children(current))
