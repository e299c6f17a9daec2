from __future__ import annotations

from typing import Any

from avesta.engine.context import FileContext
from avesta.engine.types import Diagnostic
from avesta.rules.base import BaseRule, RuleMeta, loc_from_node
from avesta.rules.utils import (
    iter_nodes,
    node_text,
    node_type,
    object_pairs,
    pair_key_name,
    pair_value,
)

LABELS_KEY = "prometheusLabels"
IDENTIFIER_KEYS = frozenset({"query", "label"})

MSG_INVALID_LABELS = "prometheusLabels must be an object"
MSG_MISSING_IDENTIFIER = "prometheusLabels must contain either a 'query' or 'label' property"
MSG_EMPTY_IDENTIFIER = "prometheusLabels.query or prometheusLabels.label cannot be empty"
MSG_INVALID_IDENTIFIER_TYPE = "prometheusLabels.query or prometheusLabels.label must be a string"

_NON_STRING_LITERALS = frozenset({"number", "true", "false", "null", "regex"})
_EMPTY_STRINGS = frozenset({'""', "''"})


class PrometheusLabelConfig(BaseRule):
    meta = RuleMeta(
        rule_id="prometheus-label-config",
        title="Valid prometheusLabels configuration",
        description="Enforce that `prometheusLabels` in query configs is an object with a non-empty string `query` or `label`.",
        default_severity="error",
    )

    def check_file(self, ctx: FileContext) -> list[Diagnostic]:
        root = ctx.root_node
        if root is None:
            return []
        source = ctx.source_bytes()

        out: list[Diagnostic] = []
        for node in iter_nodes(root):
            if node_type(node) != "object":
                continue
            found = check_labels_object(node, source)
            if found is None:
                continue
            message, target = found
            out.append(self._diagnostic(message=message, location=loc_from_node(ctx, target)))
        return out


def check_labels_object(obj: Any, source: bytes) -> tuple[str, Any] | None:
    """Return (message, offending node) for a config object, or None when it is fine."""

    labels_pair = next((p for p in object_pairs(obj) if pair_key_name(p, source) == LABELS_KEY), None)
    if labels_pair is None:
        return None

    value = pair_value(labels_pair)
    if value is None:
        return None
    if node_type(value) != "object":
        return MSG_INVALID_LABELS, value

    identifier_pair = next((p for p in object_pairs(value) if pair_key_name(p, source) in IDENTIFIER_KEYS), None)
    if identifier_pair is None:
        return MSG_MISSING_IDENTIFIER, value

    identifier = pair_value(identifier_pair)
    if identifier is None:
        return None
    kind = node_type(identifier)
    if kind in _NON_STRING_LITERALS:
        return MSG_INVALID_IDENTIFIER_TYPE, identifier
    if kind == "string" and node_text(identifier, source) in _EMPTY_STRINGS:
        return MSG_EMPTY_IDENTIFIER, identifier
    return None
