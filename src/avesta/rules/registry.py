from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Any

from avesta.config import AvestaConfig, compute_enabled_rule_ids
from avesta.engine.types import Severity
from avesta.rules.base import BaseRule, RuleMeta
from avesta.rules.negative_first import HandleNegativeFirst
from avesta.rules.prometheus_labels import PrometheusLabelConfig
from avesta.rules.react_props import ReactPropsHelper
from avesta.suppressions import is_valid_rule_name

_LOCK = threading.Lock()


def _index(rules: Iterable[BaseRule], *, origin: str, reserved: Mapping[str, BaseRule]) -> dict[str, BaseRule]:
    by_id: dict[str, BaseRule] = {}
    for rule in rules:
        rule_id = rule.meta.rule_id
        # Rule ids double as directive names.
        if not is_valid_rule_name(rule_id):
            raise RuntimeError(f"{origin} rule id must match ^[a-z0-9-]+$: {rule_id!r}")
        if rule_id in reserved:
            raise RuntimeError(f"{origin} rule id conflicts with built-in rule id: {rule_id}")
        if rule_id in by_id:
            raise RuntimeError(f"Duplicate {origin.lower()} rule id: {rule_id}")
        by_id[rule_id] = rule
    return by_id


@lru_cache(maxsize=1)
def _builtin_index() -> Mapping[str, BaseRule]:
    rules = (HandleNegativeFirst(), ReactPropsHelper(), PrometheusLabelConfig())
    return MappingProxyType(_index(rules, origin="Built-in", reserved={}))


_ACTIVE: Mapping[str, BaseRule] = MappingProxyType({})


def builtin_rules() -> tuple[BaseRule, ...]:
    index = _builtin_index()
    return tuple(index[k] for k in sorted(index))


def set_extra_rules(rules: Iterable[BaseRule]) -> None:
    """
    Replace the plugin rules registered for this process.

    The CLI loads plugins once per run; reporters and `explain` then resolve
    plugin rule metadata through the same registry.
    """

    global _ACTIVE  # noqa: PLW0603

    builtins = _builtin_index()
    extra = _index(rules, origin="Plugin", reserved=builtins)
    combined = {**builtins, **extra}
    with _LOCK:
        _ACTIVE = MappingProxyType({k: combined[k] for k in sorted(combined)})


def _active() -> Mapping[str, BaseRule]:
    return _ACTIVE or _builtin_index()


def all_rules() -> tuple[BaseRule, ...]:
    """Built-in and plugin rules, ordered by rule id."""

    active = _active()
    return tuple(active[k] for k in sorted(active))


def rule_ids() -> set[str]:
    return set(_active())


def rule_by_id(rule_id: str) -> BaseRule | None:
    return _active().get(rule_id)


@dataclass(frozen=True, slots=True)
class RuleSummary:
    """A rule's metadata as resolved against one project's configuration."""

    meta: RuleMeta
    enabled: bool
    severity: Severity

    def as_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.meta.rule_id,
            "title": self.meta.title,
            "description": self.meta.description,
            "default_severity": self.meta.default_severity,
            "severity": self.severity,
            "enabled": self.enabled,
            "languages": list(self.meta.languages),
        }


def describe_rules(config: AvestaConfig) -> list[RuleSummary]:
    rules = all_rules()
    enabled = compute_enabled_rule_ids(config, available_rule_ids=(r.meta.rule_id for r in rules))
    return [
        RuleSummary(
            meta=rule.meta,
            enabled=rule.meta.rule_id in enabled,
            severity=config.rule_settings(rule.meta.rule_id).severity or rule.meta.default_severity,
        )
        for rule in rules
    ]
