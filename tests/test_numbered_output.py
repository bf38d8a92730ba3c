from __future__ import annotations

import pytest

from prai.parsing import NO_OPTIONS_ERROR, ParseResult, parse_numbered_output, sanitize_branch_name


def test_parse_numbered_output_extracts_options_in_line_order() -> None:
    raw = """Here are some ideas:

OPTION_1: feat: add login form
OPTION_2: feat: implement login flow
OPTION_3: feat: add session-based login
"""
    result = parse_numbered_output(raw)

    assert result.success
    assert result.values == (
        "feat: add login form",
        "feat: implement login flow",
        "feat: add session-based login",
    )
    assert result.error is None


def test_parse_numbered_output_keeps_encounter_order_not_numeric_order() -> None:
    raw = "OPTION_2: second\nOPTION_1: first\nOPTION_3: third"

    result = parse_numbered_output(raw)

    assert result.values == ("second", "first", "third")


def test_parse_numbered_output_accepts_markdown_decoration() -> None:
    raw = "**OPTION_1:** fix/a**\n`OPTION_2:` fix/b`\n  option_3:   fix/c  "

    result = parse_numbered_output(raw)

    assert result.values == ("fix/a", "fix/b", "fix/c")


def test_parse_numbered_output_honours_custom_prefix() -> None:
    raw = "TITLE_1: one\nOPTION_2: ignored\nTITLE_2: two"

    result = parse_numbered_output(raw, prefix="TITLE")

    assert result.values == ("one", "two")


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "no structured output here",
        "OPTION_1:    \nOPTION_2: **",
        "OPTION_A: letters are not numbers",
    ],
)
def test_parse_numbered_output_reports_fixed_error(raw: str) -> None:
    result = parse_numbered_output(raw)

    assert not result.success
    assert result.values == ()
    assert result.error == NO_OPTIONS_ERROR


def test_parse_numbered_output_fails_when_sanitizer_empties_everything() -> None:
    result = parse_numbered_output("OPTION_1: __\nOPTION_2: ~~", sanitize=sanitize_branch_name)

    assert not result.success
    assert result.error == NO_OPTIONS_ERROR


def test_parse_numbered_output_drops_only_empty_values() -> None:
    result = parse_numbered_output("OPTION_1: ~~\nOPTION_2: feat/x", sanitize=sanitize_branch_name)

    assert result.values == ("feat/x",)
    assert result.first == "feat/x"


def test_parse_result_enforces_success_invariant() -> None:
    with pytest.raises(ValueError):
        ParseResult(success=True, values=())
    with pytest.raises(ValueError):
        ParseResult(success=False)

    failed = ParseResult.fail("nope")
    assert failed.first is None
