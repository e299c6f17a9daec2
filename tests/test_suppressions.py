from __future__ import annotations

from pathlib import Path

import pytest

from avesta.engine.types import Diagnostic, Location
from avesta.suppressions import (
    EMPTY_SUPPRESSIONS,
    DirectiveError,
    InvalidCommentError,
    InvalidRuleNameError,
    SuppressionState,
    filter_diagnostics,
    is_directive_in_string,
    is_valid_rule_name,
    next_code_line,
    parse_directives,
    parse_rule_list,
)


def test_next_line_directive_targets_following_code_line() -> None:
    state = parse_directives("// avesta-disable-next-line rule1\nconst a = 1;")

    assert state.line_disabled_rules.get(2) == frozenset({"rule1"})
    assert state.file_disabled_rules == frozenset()
    assert set(state.line_disabled_rules) == {2}


def test_stacked_next_line_directives_share_one_target() -> None:
    state = parse_directives(
        "// avesta-disable-next-line rule1\n"
        "// avesta-disable-next-line rule2\n"
        "const a = 1;\n"
    )

    assert state.line_disabled_rules == {3: frozenset({"rule1", "rule2"})}


def test_blank_lines_between_directive_and_code_are_skipped() -> None:
    state = parse_directives("// avesta-disable-next-line rule1\n\n   \nconst a = 1;")

    assert state.line_disabled_rules == {4: frozenset({"rule1"})}


def test_empty_source_yields_empty_state() -> None:
    state = parse_directives("")

    assert state.file_disabled_rules == frozenset()
    assert dict(state.line_disabled_rules) == {}
    assert state.is_file_fully_disabled is False
    assert state == EMPTY_SUPPRESSIONS
    assert state.is_empty()


def test_single_line_source_targets_virtual_line_two() -> None:
    state = parse_directives("// avesta-disable-next-line rule1")

    assert state.line_disabled_rules == {2: frozenset({"rule1"})}


def test_trailing_directive_without_code_records_nothing() -> None:
    state = parse_directives("const a = 1;\n// avesta-disable-next-line rule1\n\n")

    assert state.is_empty()


def test_mixed_line_endings_resolve_to_normalized_lines() -> None:
    source = (
        "// avesta-disable-next-line rule1\r\n"
        "const a = 1;\r"
        "// avesta-disable-next-line rule2\r"
        "const b = 2;"
    )

    state = parse_directives(source)

    assert state.line_disabled_rules == {2: frozenset({"rule1"}), 4: frozenset({"rule2"})}


def test_file_directive_collects_rules() -> None:
    state = parse_directives("/* avesta-disable rule1, rule2 */\nconst a = 1;\n")

    assert state.file_disabled_rules == frozenset({"rule1", "rule2"})
    assert state.is_suppressed("rule1", line=1)
    assert state.is_suppressed("rule2", line=999)
    assert not state.is_suppressed("rule3", line=2)


def test_file_directive_may_follow_code_and_skip_whitespace() -> None:
    state = parse_directives("const a = 1; /*avesta-disable   rule1 ,rule2*/\n")

    assert state.file_disabled_rules == frozenset({"rule1", "rule2"})


def test_rules_accumulate_across_directives_on_the_same_target() -> None:
    state = parse_directives(
        "/* avesta-disable rule1 */\n"
        "/* avesta-disable rule2 */\n"
        "// avesta-disable-next-line rule3, rule3\n"
        "const a = 1;\n"
    )

    assert state.file_disabled_rules == frozenset({"rule1", "rule2"})
    assert state.line_disabled_rules[4] == frozenset({"rule3"})


@pytest.mark.parametrize(
    "source",
    [
        "`// avesta-disable-next-line rule1`",
        'const s = "// avesta-disable-next-line rule1";',
        "const s = '/* avesta-disable rule1 */';",
        "const s = '// avesta-disable-next-line Not_Valid';",
    ],
)
def test_directive_text_inside_strings_is_ignored(source: str) -> None:
    assert parse_directives(source).is_empty()


def test_is_directive_in_string() -> None:
    assert is_directive_in_string("x = `avesta-disable rule`")
    assert not is_directive_in_string("// avesta-disable-next-line rule1")
    assert not is_directive_in_string("// avesta-disable-next-line rule1 'quoted elsewhere'")


def test_scanning_is_idempotent() -> None:
    source = "/* avesta-disable a */\n// avesta-disable-next-line b, c\nfoo();\n"

    assert parse_directives(source) == parse_directives(source)


@pytest.mark.parametrize("payload", [",rule1", "rule1,,rule2", "rule1,", "Bad,,Names"])
def test_misplaced_commas_are_comment_errors(payload: str) -> None:
    with pytest.raises(InvalidCommentError):
        parse_directives(f"// avesta-disable-next-line {payload}\nconst a = 1;")


@pytest.mark.parametrize("name", ["Rule1", "rule_1", "rule.one", "règle"])
def test_invalid_rule_names_raise(name: str) -> None:
    with pytest.raises(InvalidRuleNameError) as excinfo:
        parse_directives(f"// avesta-disable-next-line ok-rule, {name}\nconst a = 1;")

    assert excinfo.value.rule_name == name


@pytest.mark.parametrize("name", ["a", "rule-1", "no-console", "0-9"])
def test_rule_name_validation_accepts_lowercase_hyphenated(name: str) -> None:
    assert is_valid_rule_name(name)


def test_parse_rule_list_trims_whitespace() -> None:
    assert parse_rule_list("  a ,b,  c-d ") == ["a", "b", "c-d"]


def test_parse_rule_list_rejects_empty_payload() -> None:
    with pytest.raises(InvalidCommentError):
        parse_rule_list("   ")


@pytest.mark.parametrize(
    "source",
    [
        "// disable-next-line rule1\nconst a = 1;",
        "// disable rule1\nconst a = 1;",
        "// avesta-disable-line rule1\nconst a = 1;",
        "/* avesta-disable */\nconst a = 1;",
        "/* avesta-disable\nconst a = 1;",
        "// avesta-disable rule1\nconst a = 1;",
        "// avesta-disable-next-line\nconst a = 1;",
        "/* avesta-disable-next-line rule1 */\nconst a = 1;",
        "const a = 1; // avesta-disable-next-line rule1\nconst b = 2;",
    ],
)
def test_malformed_directives_raise_comment_errors(source: str) -> None:
    with pytest.raises(InvalidCommentError):
        parse_directives(source)


def test_other_tools_directives_are_not_ours() -> None:
    source = "// eslint-disable-next-line no-console\nconsole.log(1);\n/* eslint-disable */\n"

    assert parse_directives(source).is_empty()


@pytest.mark.parametrize(
    "source",
    [
        "// disabled for now\nfoo();",
        "// disableFoo rule1\nfoo();",
        "/* disable,rule1 */\nfoo();",
    ],
)
def test_comments_starting_with_disable_are_rejected(source: str) -> None:
    with pytest.raises(InvalidCommentError):
        parse_directives(source)


def test_comment_errors_report_the_whole_line() -> None:
    with pytest.raises(InvalidCommentError) as excinfo:
        parse_directives("// avesta-disable-next-line a,,b\nfoo();")

    assert excinfo.value.text == "// avesta-disable-next-line a,,b"
    assert excinfo.value.line == 1


def test_errors_carry_filename_and_line() -> None:
    with pytest.raises(DirectiveError) as excinfo:
        parse_directives("const a = 1;\n// avesta-disable-next-line Bad\nconst b = 2;", "src/a.ts")

    err = excinfo.value
    assert err.filename == "src/a.ts"
    assert err.line == 2
    assert str(err).startswith("src/a.ts:2: Invalid rule name")


def test_malformed_directive_aborts_whole_file() -> None:
    source = "/* avesta-disable rule1 */\n// avesta-disable-next-line ,x\nconst a = 1;"

    with pytest.raises(InvalidCommentError) as excinfo:
        parse_directives(source, "a.ts")

    assert excinfo.value.line == 2


def test_next_code_line_returns_none_without_code() -> None:
    lines = ["const a = 1;", "// avesta-disable-next-line r", "", "// avesta-disable-next-line q"]

    assert next_code_line(lines, 1) is None
    assert next_code_line(["// avesta-disable-next-line r"], 0) == 2


def test_suppression_state_lookup() -> None:
    state = SuppressionState(
        file_disabled_rules=frozenset({"a"}),
        line_disabled_rules={3: frozenset({"b"})},
    )

    assert state.is_suppressed("a", line=None)
    assert state.is_suppressed("b", line=3)
    assert not state.is_suppressed("b", line=4)
    assert not state.is_suppressed("b", line=None)
    assert not state.is_suppressed(None, line=3)


def test_fully_disabled_state_suppresses_everything() -> None:
    state = SuppressionState(is_file_fully_disabled=True)

    assert state.is_suppressed("anything", line=1)
    assert not state.is_empty()


def test_filter_diagnostics_drops_only_matching_entries() -> None:
    path = Path("src/a.ts")
    state = parse_directives(
        "/* avesta-disable file-rule */\n// avesta-disable-next-line line-rule\nfoo();\nbar();\n"
    )
    diagnostics = [
        Diagnostic("file-rule", "warn", "dropped", location=Location(path=path, start_line=4)),
        Diagnostic("line-rule", "warn", "dropped", location=Location(path=path, start_line=3)),
        Diagnostic("line-rule", "warn", "kept: other line", location=Location(path=path, start_line=4)),
        Diagnostic(None, "error", "kept: no rule id", location=Location(path=path, start_line=3)),
        Diagnostic("other", "info", "kept: not listed", location=Location(path=path, start_line=3)),
    ]

    kept = filter_diagnostics(diagnostics, state)

    assert [d.message for d in kept] == ["kept: other line", "kept: no rule id", "kept: not listed"]
