from __future__ import annotations

import dataclasses
import fnmatch
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, TypeVar, cast

from avesta.engine.types import SEVERITY_RANK, Severity
from avesta.languages.registry import KNOWN_LANGUAGES
from avesta.suppressions import is_valid_rule_name


class ConfigError(ValueError):
    """Raised when the `[tool.avesta]` table of a pyproject.toml is invalid."""


DEFAULT_LANGUAGES: tuple[str, ...] = ("javascript", "typescript")
DEFAULT_REVIEW_PROMPTS: tuple[str, ...] = ("code-review",)
DEFAULT_REVIEW_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx")
DEFAULT_REVIEW_TIMEOUT = 60

ALL_RULES = "all"
_SEVERITY_ALIASES = {"warning": "warn"}

_OptionsT = TypeVar("_OptionsT")


def _frozen(mapping: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True, slots=True)
class RuleSettings:
    severity: Severity | None = None
    options: Mapping[str, Any] = field(default_factory=_frozen)


@dataclass(frozen=True, slots=True)
class RulesConfig:
    enable: str | tuple[str, ...] = ALL_RULES
    disable: tuple[str, ...] = ()
    settings: Mapping[str, RuleSettings] = field(default_factory=_frozen)


@dataclass(frozen=True, slots=True)
class IgnoreConfig:
    paths: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ReviewConfig:
    model: str | None = None
    prompts: tuple[str, ...] = DEFAULT_REVIEW_PROMPTS
    extensions: tuple[str, ...] = DEFAULT_REVIEW_EXTENSIONS
    timeout: int = DEFAULT_REVIEW_TIMEOUT


@dataclass(frozen=True, slots=True)
class AvestaConfig:
    languages: tuple[str, ...] = DEFAULT_LANGUAGES
    rules: RulesConfig = field(default_factory=RulesConfig)
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    plugins: tuple[str, ...] = ()

    def rule_settings(self, rule_id: str) -> RuleSettings:
        return self.rules.settings.get(rule_id) or RuleSettings()


class _Section:
    """One TOML table plus its dotted name, used for error messages."""

    def __init__(self, data: Mapping[str, Any], name: str) -> None:
        self.data = data
        self.name = name

    def key(self, key: str) -> str:
        return f"{self.name}.{key}"

    def section(self, key: str) -> _Section:
        value = self.data.get(key)
        if value is None:
            value = {}
        if not isinstance(value, dict):
            raise ConfigError(f"`{self.key(key)}` must be a table.")
        return _Section(value, self.key(key))

    def strings(self, key: str, default: Iterable[str] = ()) -> tuple[str, ...]:
        return _string_list(self.data.get(key, list(default)), name=self.key(key))

    def optional_str(self, key: str) -> str | None:
        value = self.data.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ConfigError(f"`{self.key(key)}` must be a string.")
        return value.strip() or None

    def positive_int(self, key: str, default: int) -> int:
        value = self.data.get(key, default)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigError(f"`{self.key(key)}` must be a positive integer (seconds).")
        return value


def _string_list(value: Any, *, name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"`{name}` must be a list of strings.")
    return tuple(item.strip() for item in value)


def _severity(value: Any, *, name: str) -> Severity:
    if not isinstance(value, str):
        raise ConfigError(f"`{name}` must be a string.")
    level = value.strip().lower()
    level = _SEVERITY_ALIASES.get(level, level)
    if level not in SEVERITY_RANK:
        raise ConfigError(f"`{name}` must be one of: info, warn, error.")
    return cast(Severity, level)


def _rule_tokens(values: Iterable[str], *, name: str) -> tuple[str, ...]:
    tokens = tuple(token.strip() for value in values for token in value.split(",") if token.strip())
    for token in tokens:
        if token.lower() != ALL_RULES and not is_valid_rule_name(token):
            raise ConfigError(
                f"`{name}` contains an invalid rule id: {token!r}. "
                "Rule ids are lowercase letters, digits and hyphens (e.g. handle-negative-first)."
            )
    return tokens


def load_config(project_dir: Path | str = ".") -> AvestaConfig:
    """
    Read `[tool.avesta]` from `project_dir/pyproject.toml`.

    A missing file, or a file without the table, yields the defaults.
    """

    pyproject = Path(project_dir) / "pyproject.toml"
    if not pyproject.is_file():
        return AvestaConfig()

    try:
        document = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {pyproject}: {exc}") from exc

    tool = document.get("tool")
    table = tool.get("avesta") if isinstance(tool, dict) else None
    if not isinstance(table, dict) or not table:
        return AvestaConfig()
    return parse_config_table(table)


def parse_config_table(table: Mapping[str, Any]) -> AvestaConfig:
    root = _Section(table, "tool.avesta")

    languages = tuple(lang.lower() for lang in root.strings("languages", DEFAULT_LANGUAGES))
    unsupported = sorted(set(languages) - KNOWN_LANGUAGES)
    if unsupported:
        raise ConfigError(f"`tool.avesta.languages` has unsupported entries: {', '.join(unsupported)}")

    return AvestaConfig(
        languages=languages,
        rules=_rules(root.section("rules")),
        ignore=IgnoreConfig(paths=root.section("ignore").strings("paths")),
        review=_review(root.section("review")),
        plugins=root.strings("plugins"),
    )


def _rules(section: _Section) -> RulesConfig:
    raw_enable = section.data.get("enable", ALL_RULES)
    if isinstance(raw_enable, str):
        enable: str | tuple[str, ...] = _rule_tokens([raw_enable], name=section.key("enable"))
        # A single token stays a plain string; "" means every rule.
        if "," not in raw_enable:
            enable = enable[0] if enable else ALL_RULES
    elif isinstance(raw_enable, list) and all(isinstance(item, str) for item in raw_enable):
        enable = _rule_tokens(raw_enable, name=section.key("enable"))
    else:
        raise ConfigError(f"`{section.key('enable')}` must be a string or a list of strings.")

    disable = _rule_tokens(section.strings("disable"), name=section.key("disable"))

    settings: dict[str, RuleSettings] = {}
    for key in section.data:
        if key in ("enable", "disable"):
            continue
        sub = section.section(key)
        rule_id = str(key).strip()
        if not is_valid_rule_name(rule_id):
            raise ConfigError(f"`{sub.name}` is invalid; expected a rule id like handle-negative-first.")
        severity = sub.data.get("severity")
        settings[rule_id] = RuleSettings(
            severity=None if severity is None else _severity(severity, name=sub.key("severity")),
            options=_frozen({k.strip().replace("-", "_"): v for k, v in sub.data.items() if k != "severity"}),
        )

    return RulesConfig(enable=enable, disable=disable, settings=_frozen(settings))


def _review(section: _Section) -> ReviewConfig:
    extensions = []
    for ext in section.strings("extensions", DEFAULT_REVIEW_EXTENSIONS):
        ext = ext.lower()
        if ext:
            extensions.append(ext if ext.startswith(".") else f".{ext}")

    return ReviewConfig(
        model=section.optional_str("model"),
        prompts=section.strings("prompts", DEFAULT_REVIEW_PROMPTS),
        extensions=tuple(extensions),
        timeout=section.positive_int("timeout", DEFAULT_REVIEW_TIMEOUT),
    )


def build_rule_options(options_cls: type[_OptionsT], raw: Mapping[str, Any], *, field_name: str) -> _OptionsT:
    """
    Turn a rule's option table into its frozen options dataclass.

    Keys may use dashes or underscores. Each value must have the type of
    the field's default; integers must be non-negative and lists become tuples.
    """

    fields = {f.name: f for f in dataclasses.fields(cast(Any, options_cls))}
    values: dict[str, Any] = {}
    for raw_key, value in raw.items():
        name = raw_key.strip().replace("-", "_")
        if name not in fields:
            valid = ", ".join(sorted(n.replace("_", "-") for n in fields)) or "(none)"
            raise ConfigError(f"`{field_name}` has unknown option {raw_key!r}. Valid options: {valid}.")
        spec = fields[name]
        default = spec.default_factory() if spec.default is dataclasses.MISSING else spec.default  # type: ignore[misc]
        values[name] = _option_value(value, default, name=f"{field_name}.{raw_key}")
    return options_cls(**values)


def _option_value(value: Any, default: Any, *, name: str) -> Any:
    if isinstance(default, tuple):
        return _string_list(value, name=name)
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"`{name}` must be a boolean.")
    elif isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{name}` must be an integer.")
        if value < 0:
            raise ConfigError(f"`{name}` must be >= 0.")
    return value


def compute_enabled_rule_ids(config: AvestaConfig, *, available_rule_ids: Iterable[str]) -> set[str]:
    """
    Apply `rules.enable` then `rules.disable` to the available rule ids.

    `"all"` on either side selects every available rule. Ids that are not
    available are dropped from the result.
    """

    available = set(available_rule_ids)
    enable = config.rules.enable
    wanted = {enable} if isinstance(enable, str) else set(enable)
    dropped = set(config.rules.disable)

    enabled = available if ALL_RULES in {t.lower() for t in wanted} else wanted & available
    if ALL_RULES in {t.lower() for t in dropped}:
        return set()
    return enabled - dropped


def path_is_ignored(path: Path, *, project_root: Path, ignore_patterns: Iterable[str]) -> bool:
    """
    Match `path` (relative to `project_root`, POSIX style) against ignore patterns.

    `dir/` ignores everything below that directory, a glob with a slash
    matches the whole relative path, and a glob without one may also match
    the file name alone. Paths outside the project are never ignored.
    """

    try:
        relative = path.resolve().relative_to(project_root.resolve())
    except (ValueError, OSError, RuntimeError):
        return False
    rel = relative.as_posix()

    for raw in ignore_patterns:
        pattern = raw.strip().replace("\\", "/").removeprefix("./")
        if not pattern:
            continue
        if pattern.endswith("/"):
            hit = rel.startswith(pattern)
        elif "/" in pattern:
            hit = fnmatch.fnmatch(rel, pattern)
        else:
            hit = fnmatch.fnmatch(relative.name, pattern) or fnmatch.fnmatch(rel, pattern)
        if hit:
            return True
    return False
