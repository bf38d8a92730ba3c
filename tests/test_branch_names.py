from __future__ import annotations

import pytest

from prai.parsing import extract_branch_candidates, extract_branch_names, sanitize_branch_name
from prai.parsing.branch import BRANCH_EMPTY_ERROR, BRANCH_PARSE_ERROR


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("**feat/test**", "feat/test"),
        ("feat/_test_", "feat/test"),
        ("  feat/test  ", "feat/test"),
        ("`~fix/thing~`", "fix/thing"),
        ("", ""),
    ],
)
def test_sanitize_branch_name_examples(raw: str, expected: str) -> None:
    assert sanitize_branch_name(raw) == expected


@pytest.mark.parametrize("raw", ["**feat/test**", " _ ~ ", "a*b`c_d~e", "  * spaced * ", "plain"])
def test_sanitize_branch_name_is_idempotent(raw: str) -> None:
    once = sanitize_branch_name(raw)
    assert sanitize_branch_name(once) == once


def test_extract_branch_names_numbered_format() -> None:
    result = extract_branch_names("BRANCH_NAME_1: feat/a\nBRANCH_NAME_2: fix/b\nBRANCH_NAME_3: docs/c")

    assert result.success
    assert list(result.values) == ["feat/a", "fix/b", "docs/c"]


def test_extract_branch_names_ignores_indices_past_three() -> None:
    raw = "BRANCH_NAME_4: chore/d\nBRANCH_NAME_2: fix/b"

    result = extract_branch_names(raw)

    assert list(result.values) == ["fix/b"]


def test_extract_branch_names_legacy_format() -> None:
    result = extract_branch_names("BRANCH_NAME: feat/x**")

    assert list(result.values) == ["feat/x"]


def test_extract_branch_names_legacy_value_sanitized_to_empty() -> None:
    result = extract_branch_names("BRANCH_NAME: **__**")

    assert not result.success
    assert result.error == BRANCH_EMPTY_ERROR


def test_extract_branch_names_without_any_shape_fails() -> None:
    result = extract_branch_names("I could not think of a name")

    assert not result.success
    assert result.error == BRANCH_PARSE_ERROR


def test_extract_branch_candidates_prefers_option_lines() -> None:
    raw = "OPTION_1: **feat/PROJ-1-add-login**\nOPTION_2: feat/PROJ-1-login\nBRANCH_NAME: ignored"

    result = extract_branch_candidates(raw)

    assert list(result.values) == ["feat/PROJ-1-add-login", "feat/PROJ-1-login"]


def test_extract_branch_candidates_falls_back_to_branch_name_shapes() -> None:
    result = extract_branch_candidates("BRANCH_NAME_1: fix/a\nBRANCH_NAME_2: fix/b")

    assert list(result.values) == ["fix/a", "fix/b"]
