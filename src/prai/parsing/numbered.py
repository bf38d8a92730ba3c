"""Numbered-option extraction for agent responses.

Agents are asked to answer with lines such as ``OPTION_1: feat/add-login``.
In practice the replies arrive wrapped in prose and markdown emphasis
(``**OPTION_1:** value``, ```OPTION_2:` value``), so the scanner accepts
decoration on either side of the label and strips a trailing run of it from
the captured value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")

NO_OPTIONS_ERROR = "No valid options found in AI output"
DEFAULT_PREFIX = "OPTION"

_TRAILING_DECORATION = re.compile(r"[*`]+$")


@dataclass(frozen=True, slots=True)
class ParseResult(Generic[T]):
    """Outcome of a parse: either a non-empty ``values`` tuple or an ``error``."""

    success: bool
    values: Tuple[T, ...] = ()
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.success and not self.values:
            raise ValueError("A successful ParseResult requires at least one value.")
        if not self.success and not self.error:
            raise ValueError("A failed ParseResult requires an error message.")

    @classmethod
    def ok(cls, values: "list[T] | tuple[T, ...]") -> "ParseResult[T]":
        return cls(success=True, values=tuple(values))

    @classmethod
    def fail(cls, error: str) -> "ParseResult[T]":
        return cls(success=False, error=error)

    @property
    def first(self) -> Optional[T]:
        """Return the first value, or ``None`` for failed results."""
        return self.values[0] if self.values else None


def _numbered_pattern(prefix: str) -> re.Pattern[str]:
    return re.compile(
        rf"^[*`]*{re.escape(prefix)}_(\d+):[*`]*\s*(.+)$",
        re.IGNORECASE,
    )


def parse_numbered_output(
    raw_text: str,
    *,
    prefix: str = DEFAULT_PREFIX,
    sanitize: Callable[[str], str] | None = None,
) -> ParseResult[str]:
    """Extract ``PREFIX_n: value`` entries from ``raw_text``.

    Values are returned in the order their lines appear, not sorted by the
    numeric suffix. Entries whose value is empty (before or after
    ``sanitize``) are dropped; when nothing survives the result carries
    :data:`NO_OPTIONS_ERROR`.
    """
    pattern = _numbered_pattern(prefix or DEFAULT_PREFIX)
    values: list[str] = []

    for line in (raw_text or "").strip().splitlines():
        match = pattern.match(line.strip())
        if not match:
            continue
        value = _TRAILING_DECORATION.sub("", match.group(2).strip()).strip()
        if sanitize is not None:
            value = sanitize(value)
        if value:
            values.append(value)

    if not values:
        return ParseResult.fail(NO_OPTIONS_ERROR)
    return ParseResult.ok(values)


__all__ = ["DEFAULT_PREFIX", "NO_OPTIONS_ERROR", "ParseResult", "parse_numbered_output"]
