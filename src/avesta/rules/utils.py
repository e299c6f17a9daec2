from __future__ import annotations

from collections.abc import Iterator
from typing import Any

FUNCTION_TYPES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function",
        "function_expression",
        "generator_function",
        "arrow_function",
        "method_definition",
    }
)
TERNARY_TYPES = frozenset({"ternary_expression", "conditional_expression"})


def node_type(node: Any) -> str | None:
    return getattr(node, "type", None)


def children(node: Any) -> list[Any]:
    return list(getattr(node, "children", []))


def named_children(node: Any) -> list[Any]:
    """Children that are grammar nodes rather than keywords or punctuation."""

    return [c for c in children(node) if getattr(c, "is_named", True) and node_type(c) != "comment"]


def iter_nodes(node: Any) -> Iterator[Any]:
    stack = [node]
    while stack:
        n = stack.pop()
        yield n
        stack.extend(reversed(children(n)))


def iter_with_ancestors(node: Any) -> Iterator[tuple[Any, tuple[Any, ...]]]:
    """Pre-order walk yielding each node with its ancestors (root first)."""

    stack: list[tuple[Any, tuple[Any, ...]]] = [(node, ())]
    while stack:
        n, ancestors = stack.pop()
        yield n, ancestors
        path = (*ancestors, n)
        stack.extend((child, path) for child in reversed(children(n)))


def has_descendant_type(node: Any, types: frozenset[str] | set[str]) -> bool:
    return any(node_type(n) in types for n in iter_nodes(node))


def node_text(node: Any, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def is_async_function(node: Any, source: bytes) -> bool:
    if any(node_type(c) == "async" for c in children(node)):
        return True
    return node_text(node, source).lstrip().startswith("async")


def is_generator_function(node: Any) -> bool:
    if "generator" in (node_type(node) or ""):
        return True
    return any(node_type(c) == "*" for c in children(node))


def object_pairs(node: Any) -> list[Any]:
    return [c for c in named_children(node) if node_type(c) == "pair"]


def pair_key_name(pair: Any, source: bytes) -> str | None:
    """Return the identifier name of an object pair's key, if it is a plain identifier."""

    parts = named_children(pair)
    if not parts or node_type(parts[0]) != "property_identifier":
        return None
    return node_text(parts[0], source)


def pair_value(pair: Any) -> Any | None:
    parts = named_children(pair)
    return parts[-1] if len(parts) >= 2 else None
