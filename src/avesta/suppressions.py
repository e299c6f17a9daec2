from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from avesta.engine.types import Diagnostic

DIRECTIVE_PREFIX = "avesta"
DIRECTIVE_KEYWORD = f"{DIRECTIVE_PREFIX}-disable"
NEXT_LINE_KEYWORD = f"{DIRECTIVE_KEYWORD}-next-line"

_RULE_NAME_RE = re.compile(r"^[a-z0-9-]+$")
_QUOTED_RE = re.compile(r"(['\"`])(.*?)\1")
_LINE_BREAK_RE = re.compile(r"\r\n?")
_COMMENT_OPENERS = ("//", "/*")
_SINGLE_LINE_TARGET = 2


class DirectiveError(ValueError):
    """Raised when an `avesta-disable` comment cannot be parsed."""

    def __init__(self, message: str, *, filename: str | None = None, line: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.filename = filename
        self.line = line

    def __str__(self) -> str:
        if self.filename is None:
            return self.message if self.line is None else f"line {self.line}: {self.message}"
        if self.line is None:
            return f"{self.filename}: {self.message}"
        return f"{self.filename}:{self.line}: {self.message}"


class InvalidCommentError(DirectiveError):
    """A directive comment is structurally malformed."""

    def __init__(
        self,
        message: str,
        *,
        text: str | None = None,
        filename: str | None = None,
        line: int | None = None,
    ) -> None:
        super().__init__(message, filename=filename, line=line)
        self.text = text


class InvalidRuleNameError(DirectiveError):
    """A directive lists a rule identifier outside `[a-z0-9-]`."""

    def __init__(self, rule_name: str, *, filename: str | None = None, line: int | None = None) -> None:
        super().__init__(
            f"Invalid rule name: {rule_name!r}. Rule names must be lowercase, "
            "and can only contain letters, numbers, and hyphens.",
            filename=filename,
            line=line,
        )
        self.rule_name = rule_name


@dataclass(frozen=True, slots=True)
class SuppressionState:
    """
    Rule suppressions extracted from one file's directive comments.

    Supported directives (case-sensitive):
    - `// avesta-disable-next-line rule-a, rule-b` (next code line only)
    - `/* avesta-disable rule-a, rule-b */` (whole file)

    `line_disabled_rules` is keyed by the 1-based line of the code the
    directive targets, not by the line of the comment itself.
    """

    file_disabled_rules: frozenset[str] = frozenset()
    line_disabled_rules: Mapping[int, frozenset[str]] = field(default_factory=lambda: MappingProxyType({}))
    is_file_fully_disabled: bool = False

    def is_suppressed(self, rule_id: str | None, *, line: int | None) -> bool:
        if rule_id is None:
            return False
        if self.is_file_fully_disabled or rule_id in self.file_disabled_rules:
            return True
        if line is None:
            return False
        disabled = self.line_disabled_rules.get(line)
        return bool(disabled) and rule_id in disabled

    def is_empty(self) -> bool:
        return not (self.file_disabled_rules or self.line_disabled_rules or self.is_file_fully_disabled)


EMPTY_SUPPRESSIONS = SuppressionState()


def is_valid_rule_name(name: str) -> bool:
    return bool(_RULE_NAME_RE.match(name))


def validate_rule_name(name: str) -> str:
    if not is_valid_rule_name(name):
        raise InvalidRuleNameError(name)
    return name


def parse_rule_list(raw: str) -> list[str]:
    """
    Split a directive payload like `"rule1, rule2"` into validated rule ids.

    Misplaced commas are a structural problem and raise `InvalidCommentError`
    before any identifier is looked at. Identifiers are validated in order and
    the first bad one raises `InvalidRuleNameError`.
    """

    stripped = raw.strip()
    if stripped.startswith(",") or stripped.endswith(",") or ",," in stripped:
        raise InvalidCommentError("Invalid comma placement in rule list", text=raw)

    rules = [piece.strip() for piece in stripped.split(",")]
    rules = [rule for rule in rules if rule]
    if not rules:
        raise InvalidCommentError("No rules specified in disable comment", text=raw)

    for rule in rules:
        validate_rule_name(rule)
    return rules


def is_directive_in_string(line: str) -> bool:
    """
    Return True when the directive keyword only appears inside a quoted string.

    Line-local: a string literal opened on a previous line is not tracked.
    """

    if "'" not in line and '"' not in line and "`" not in line:
        return False
    return any(DIRECTIVE_KEYWORD in match.group(0) for match in _QUOTED_RE.finditer(line))


def _comment_body(trimmed: str) -> str | None:
    if not trimmed.startswith(_COMMENT_OPENERS):
        return None
    return trimmed[2:].lstrip()


def opens_directive(line: str) -> bool:
    body = _comment_body(line.strip())
    return body is not None and body.startswith(DIRECTIVE_KEYWORD)


def is_malformed_opener(trimmed: str) -> bool:
    """
    Detect comments that look like a directive but can never be valid.

    - any comment whose text starts with `disable` (missing the prefix)
    - `// avesta-disable-<variant>` where the variant is not `next-line`
    - `/* avesta-disable` with nothing after it
    """

    body = _comment_body(trimmed)
    if body is None:
        return False

    if body.startswith("disable"):
        return True
    if body.startswith(f"{DIRECTIVE_KEYWORD}-") and not body.startswith(NEXT_LINE_KEYWORD):
        return True
    return body.rstrip() == DIRECTIVE_KEYWORD


def next_code_line(lines: Sequence[str], index: int) -> int | None:
    """
    Resolve the 1-based line a next-line directive at `lines[index]` applies to.

    Blank lines and further directive comments are skipped, so stacked
    directives share one target. Returns None when no code follows. A
    single-line source targets line 2, matching how hosts report a virtual
    line after the last one.
    """

    start = index + 1
    if start >= len(lines):
        return _SINGLE_LINE_TARGET if len(lines) == 1 else None

    for idx in range(start, len(lines)):
        candidate = lines[idx].strip()
        if candidate and not opens_directive(candidate):
            return idx + 1
    return None


def _next_line_payload(trimmed: str) -> str | None:
    body = _comment_body(trimmed)
    if body is None or not trimmed.startswith("//") or not body.startswith(NEXT_LINE_KEYWORD):
        return None
    rest = body[len(NEXT_LINE_KEYWORD) :]
    if not rest[:1].isspace() or not rest.strip():
        return None
    return rest


def _file_payload(line: str) -> str | None:
    start = line.find("/*")
    while start != -1:
        body = line[start + 2 :].lstrip()
        if body.startswith(DIRECTIVE_KEYWORD):
            rest = body[len(DIRECTIVE_KEYWORD) :]
            end = rest.find("*/")
            if not rest[:1].isspace() or end == -1 or not rest[:end].strip():
                return None
            return rest[:end]
        start = line.find("/*", start + 2)
    return None


class _ScanBuilder:
    def __init__(self) -> None:
        self.file_rules: set[str] = set()
        self.line_rules: dict[int, set[str]] = {}

    def disable_line(self, line: int, rules: Iterable[str]) -> None:
        self.line_rules.setdefault(line, set()).update(rules)

    def disable_file(self, rules: Iterable[str]) -> None:
        self.file_rules.update(rules)

    def freeze(self) -> SuppressionState:
        frozen = {line: frozenset(rules) for line, rules in self.line_rules.items() if rules}
        return SuppressionState(
            file_disabled_rules=frozenset(self.file_rules),
            line_disabled_rules=MappingProxyType(frozen),
            is_file_fully_disabled=False,
        )


def _process_line(lines: Sequence[str], index: int, builder: _ScanBuilder) -> None:
    line = lines[index]
    trimmed = line.strip()

    if not trimmed or is_directive_in_string(line):
        return

    if is_malformed_opener(trimmed):
        raise InvalidCommentError("Invalid disable comment format", text=line)

    if DIRECTIVE_KEYWORD not in trimmed:
        return

    if "disable-next-line" in trimmed:
        payload = _next_line_payload(trimmed)
        if payload is None:
            raise InvalidCommentError("Invalid disable-next-line comment format", text=line)
        rules = parse_rule_list(payload)
        target = next_code_line(lines, index)
        if target is not None:
            builder.disable_line(target, rules)
        return

    if "/*" in trimmed:
        payload = _file_payload(trimmed)
        if payload is None:
            raise InvalidCommentError("Invalid file-level disable comment format", text=line)
        builder.disable_file(parse_rule_list(payload))
        return

    raise InvalidCommentError("Invalid disable comment format", text=line)


def split_lines(source: str) -> list[str]:
    return _LINE_BREAK_RE.sub("\n", source).split("\n")


def parse_directives(source: str, filename: str | None = None) -> SuppressionState:
    """
    Scan `source` for directive comments and return the resulting state.

    `filename` is only used to give errors context. A malformed directive
    aborts the whole scan: partially parsed suppressions are never returned.
    """

    if not source.strip():
        return SuppressionState()

    lines = split_lines(source)
    builder = _ScanBuilder()
    for index in range(len(lines)):
        try:
            _process_line(lines, index, builder)
        except DirectiveError as exc:
            exc.filename = filename
            exc.line = index + 1
            if isinstance(exc, InvalidCommentError):
                exc.text = lines[index]
            raise
    return builder.freeze()


def filter_diagnostics(diagnostics: Iterable[Diagnostic], state: SuppressionState) -> list[Diagnostic]:
    """Drop diagnostics silenced by `state`; those without a rule id always pass."""

    kept: list[Diagnostic] = []
    for diagnostic in diagnostics:
        line = diagnostic.location.start_line if diagnostic.location is not None else None
        if state.is_suppressed(diagnostic.rule_id, line=line):
            continue
        kept.append(diagnostic)
    return kept
