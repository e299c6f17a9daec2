from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable
from types import ModuleType
from typing import Any

from avesta.rules.base import BaseRule

logger = logging.getLogger(__name__)

PLUGIN_FACTORY = "avesta_rules"
PLUGIN_LIST = "RULES"


class PluginLoadError(RuntimeError):
    """Raised when a configured plugin cannot be imported or doesn't export rules."""


def load_plugin_rules(plugin_specs: Iterable[str]) -> list[BaseRule]:
    """
    Import every `module` or `module:attr` plugin spec and collect its rules.

    A bare module must export `avesta_rules()` or `RULES`. Any export may be
    a list/tuple of rule instances or a zero-argument callable returning one.
    """

    rules: list[BaseRule] = []
    for spec in filter(None, (raw.strip() for raw in plugin_specs)):
        module_name, _, attr = spec.partition(":")
        export = _resolve_export(_import(module_name, spec), attr, spec)
        found = _as_rules(_call_if_factory(export, spec), spec)
        logger.debug("plugin %s: %s", spec, ", ".join(r.meta.rule_id for r in found) or "no rules")
        rules.extend(found)
    return rules


def _import(module_name: str, spec: str) -> ModuleType:
    try:
        return importlib.import_module(module_name)
    except Exception as exc:  # noqa: BLE001
        raise PluginLoadError(f"{spec}: import failed: {exc}") from exc


def _resolve_export(module: ModuleType, attr: str, spec: str) -> Any:
    names = (attr,) if attr else (PLUGIN_FACTORY, PLUGIN_LIST)
    for name in names:
        if hasattr(module, name):
            return getattr(module, name)
    if attr:
        raise PluginLoadError(f"{spec}: module has no attribute {attr!r}")
    raise PluginLoadError(f"{spec}: module must define `{PLUGIN_FACTORY}()` or `{PLUGIN_LIST}`")


def _call_if_factory(export: Any, spec: str) -> Any:
    if isinstance(export, list | tuple) or not callable(export):
        return export
    try:
        return export()
    except Exception as exc:  # noqa: BLE001
        raise PluginLoadError(f"{spec}: rule factory failed: {exc}") from exc


def _as_rules(value: Any, spec: str) -> list[BaseRule]:
    if not isinstance(value, list | tuple):
        raise PluginLoadError(f"{spec}: expected a list of rules, got {type(value).__name__}")
    bad = sorted({type(item).__name__ for item in value if not isinstance(item, BaseRule)})
    if bad:
        raise PluginLoadError(f"{spec}: plugin rules must be BaseRule instances, got: {', '.join(bad)}")
    return list(value)
