"""Parsers that turn freeform AI agent output into typed values."""

from .branch import extract_branch_candidates, extract_branch_names, sanitize_branch_name
from .numbered import NO_OPTIONS_ERROR, ParseResult, parse_numbered_output

__all__ = [
    "NO_OPTIONS_ERROR",
    "ParseResult",
    "extract_branch_candidates",
    "extract_branch_names",
    "parse_numbered_output",
    "sanitize_branch_name",
]
