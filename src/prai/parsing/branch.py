"""Branch-name extraction and sanitisation."""

from __future__ import annotations

import re

from .numbered import ParseResult, parse_numbered_output

MAX_BRANCH_OPTIONS = 3

_DECORATION_RE = re.compile(r"[*`_~]")
_LEGACY_BRANCH_RE = re.compile(r"BRANCH_NAME:\s*(.+)", re.IGNORECASE)

BRANCH_PARSE_ERROR = "Could not parse branch name from AI output"
BRANCH_EMPTY_ERROR = "Branch name is empty after sanitization"


def sanitize_branch_name(raw: str) -> str:
    """Strip markdown emphasis characters (``* ` _ ~``) and surrounding whitespace."""
    return _DECORATION_RE.sub("", raw or "").strip()


def extract_branch_names(raw_text: str) -> ParseResult[str]:
    """Extract up to three ``BRANCH_NAME_i:`` values, or the legacy single value.

    The numbered form is looked up by explicit index (1, 2, 3) rather than by a
    generic scan. The legacy ``BRANCH_NAME:`` form is consulted only when the
    numbered form yields nothing.
    """
    text = raw_text or ""
    names: list[str] = []
    for index in range(1, MAX_BRANCH_OPTIONS + 1):
        match = re.search(rf"BRANCH_NAME_{index}:\s*(.+)", text, re.IGNORECASE)
        if not match:
            continue
        candidate = sanitize_branch_name(match.group(1))
        if candidate:
            names.append(candidate)

    if names:
        return ParseResult.ok(names)

    legacy = _LEGACY_BRANCH_RE.search(text)
    if not legacy or not legacy.group(1):
        return ParseResult.fail(BRANCH_PARSE_ERROR)

    candidate = sanitize_branch_name(legacy.group(1))
    if not candidate:
        return ParseResult.fail(BRANCH_EMPTY_ERROR)
    return ParseResult.ok([candidate])


def extract_branch_candidates(raw_text: str) -> ParseResult[str]:
    """Parse branch suggestions from either the ``OPTION_n`` or ``BRANCH_NAME`` shapes."""
    options = parse_numbered_output(raw_text, sanitize=sanitize_branch_name)
    if options.success:
        return options
    return extract_branch_names(raw_text)


__all__ = [
    "BRANCH_EMPTY_ERROR",
    "BRANCH_PARSE_ERROR",
    "MAX_BRANCH_OPTIONS",
    "extract_branch_candidates",
    "extract_branch_names",
    "sanitize_branch_name",
]
