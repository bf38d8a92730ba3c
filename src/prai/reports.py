"""Weekly activity summaries and PR statistics.

Everything here is pure: the CLI fetches commits from git and PRs from the
forge, then hands them to these helpers for date handling, grouping and
rendering. Dates travel as :class:`datetime.date`; ``today`` is injectable so
the range helpers are deterministic under test.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .tools.forge import PRSummary
from .tools.vcs import CommitInfo

MAX_LISTED_COMMITS = 20
OTHER_COMMIT_TYPE = "other"

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_COMMIT_TYPE_RE = re.compile(r"^(\w+)(?:\(.+\))?:")

_STATE_ICONS = {"open": "🟢", "merged": "🟣", "closed": "🔴"}
_DEFAULT_ICON = "•"


class Period(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True, slots=True)
class DateRange:
    since: date
    until: date

    def describe(self) -> str:
        return format_date_range(self.since, self.until)


# ----------------------------------------------------------------- date ranges
def current_week_range(today: Optional[date] = None) -> DateRange:
    """Monday of the current ISO week through ``today``."""
    today = today or date.today()
    return DateRange(since=today - timedelta(days=today.weekday()), until=today)


def last_week_range(today: Optional[date] = None) -> DateRange:
    """Monday through Sunday of the previous ISO week."""
    this_monday = current_week_range(today).since
    start = this_monday - timedelta(days=7)
    return DateRange(since=start, until=start + timedelta(days=6))


def current_month_range(today: Optional[date] = None) -> DateRange:
    """The first of the current month through ``today``."""
    today = today or date.today()
    return DateRange(since=today.replace(day=1), until=today)


def period_range(period: Period, today: Optional[date] = None) -> DateRange:
    if period is Period.MONTHLY:
        return current_month_range(today)
    return last_week_range(today)


def validate_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string.

    Raises :class:`ValueError` with a user-facing message otherwise.
    """
    message = f"Invalid date format: {value}. Expected format: YYYY-MM-DD"
    text = value.strip()
    if not _DATE_RE.match(text):
        raise ValueError(message)
    try:
        return date.fromisoformat(text)
    except ValueError as error:
        raise ValueError(message) from error


def validate_date_range(since: date, until: date) -> None:
    if since > until:
        raise ValueError("Start date cannot be after end date")


def resolve_summary_range(
    since: Optional[str] = None,
    until: Optional[str] = None,
    *,
    today: Optional[date] = None,
) -> DateRange:
    """Build the summary range, defaulting to the current week for missing bounds."""
    default = current_week_range(today)
    start = validate_date(since) if since else default.since
    end = validate_date(until) if until else default.until
    validate_date_range(start, end)
    return DateRange(since=start, until=end)


def format_date_range(since: date, until: date) -> str:
    return f"{since.isoformat()} to {until.isoformat()}"


def format_period_range(date_range: DateRange, period: Period, *, today: Optional[date] = None) -> str:
    """Human label for a stats period: ``October 2026`` or ``Oct 5 - Oct 11``."""
    if period is Period.MONTHLY:
        return date_range.since.strftime("%B %Y")
    today = today or date.today()
    show_year = date_range.since.year != today.year

    def label(value: date) -> str:
        text = f"{value:%b} {value.day}"
        return f"{text}, {value.year}" if show_year else text

    return f"{label(date_range.since)} - {label(date_range.until)}"


def default_summary_filename(date_range: DateRange) -> str:
    return f"weekly-summary-{date_range.since.isoformat()}-to-{date_range.until.isoformat()}.md"


# --------------------------------------------------------------------- commits
def commit_type(message: str) -> Optional[str]:
    """Return the conventional-commit type prefix of ``message``, if any."""
    match = _COMMIT_TYPE_RE.match(message)
    return match.group(1) if match else None


@dataclass(slots=True)
class CommitStats:
    total: int = 0
    by_author: Dict[str, int] = field(default_factory=dict)
    by_type: Dict[str, int] = field(default_factory=dict)


def commit_stats(commits: Sequence[CommitInfo]) -> CommitStats:
    by_author = Counter(commit.author for commit in commits)
    by_type = Counter(commit_type(commit.message) or OTHER_COMMIT_TYPE for commit in commits)
    return CommitStats(total=len(commits), by_author=dict(by_author), by_type=dict(by_type))


# ------------------------------------------------------------- weekly summary
@dataclass(slots=True)
class SummaryData:
    """What a weekly summary shows; ``None`` sections are left out entirely."""

    date_range: str
    prs: Optional[List[PRSummary]] = None
    commits: Optional[List[CommitInfo]] = None


def state_icon(state: str) -> str:
    return _STATE_ICONS.get(state, _DEFAULT_ICON)


def format_as_text(data: SummaryData) -> str:
    lines: List[str] = [f"=== Weekly Summary ({data.date_range}) ===", ""]

    if data.prs is not None:
        lines.append(f"📝 Pull Requests ({len(data.prs)}):")
        if not data.prs:
            lines.append("  No PRs found in this period")
        for pr in data.prs:
            lines.append(f"  {state_icon(pr.state)} #{pr.number}: {pr.title} ({pr.state}) - {pr.author}")
        lines.append("")

    if data.commits is not None:
        lines.append(f"💾 Commits ({len(data.commits)}):")
        if not data.commits:
            lines.append("  No commits found in this period")
        for commit in data.commits[:MAX_LISTED_COMMITS]:
            lines.append(f"  • {commit.message} ({commit.hash}) - {commit.author}")
        hidden = len(data.commits) - MAX_LISTED_COMMITS
        if hidden > 0:
            lines.append(f"  ... and {hidden} more commits")
        lines.append("")

    return "\n".join(lines)


def format_as_markdown(data: SummaryData) -> str:
    lines: List[str] = [f"# Weekly Summary ({data.date_range})", ""]

    if data.prs is not None:
        lines.extend([f"## 📝 Pull Requests ({len(data.prs)})", ""])
        if not data.prs:
            lines.append("*No PRs found in this period*")
        for pr in data.prs:
            lines.append(f"- {state_icon(pr.state)} **#{pr.number}**: {pr.title} *({pr.state})* - {pr.author}")
        lines.append("")

    if data.commits is not None:
        lines.extend([f"## 💾 Commits ({len(data.commits)})", ""])
        if not data.commits:
            lines.append("*No commits found in this period*")
        for commit in data.commits[:MAX_LISTED_COMMITS]:
            kind = commit_type(commit.message)
            if kind:
                message = _COMMIT_TYPE_RE.sub("", commit.message, count=1).strip()
                lines.append(f"- **{kind}**: {message} *({commit.hash})* - {commit.author}")
            else:
                lines.append(f"- • {commit.message} *({commit.hash})* - {commit.author}")
        hidden = len(data.commits) - MAX_LISTED_COMMITS
        if hidden > 0:
            lines.extend(["", f"*... and {hidden} more commits*"])
        lines.append("")

    return "\n".join(lines)


def _by_count(counts: Dict[str, int]) -> List[tuple[str, int]]:
    # sorted() is stable, so ties keep first-seen order
    return sorted(counts.items(), key=lambda item: -item[1])


def generate_stats(data: SummaryData) -> str:
    """PR counts per state (first-seen order) and commit counts per type (most frequent first)."""
    lines: List[str] = []
    if data.prs:
        lines.append("PR Statistics:")
        for state, count in Counter(pr.state for pr in data.prs).items():
            lines.append(f"  {state}: {count}")
    if data.commits:
        if lines:
            lines.append("")
        lines.append("Commit Statistics:")
        for kind, count in _by_count(commit_stats(data.commits).by_type):
            lines.append(f"  {kind}: {count}")
    return "\n".join(lines)


# ------------------------------------------------------------------ PR stats
@dataclass(slots=True)
class PeriodStats:
    total: int = 0
    authors: Dict[str, int] = field(default_factory=dict)
    open: int = 0
    closed: int = 0
    merged: int = 0


def compute_pr_stats(prs: Sequence[PRSummary]) -> PeriodStats:
    """Count PRs per author and per state; any state other than closed or merged counts as open."""
    stats = PeriodStats(total=len(prs))
    for pr in prs:
        stats.authors[pr.author] = stats.authors.get(pr.author, 0) + 1
        if pr.state == "merged":
            stats.merged += 1
        elif pr.state == "closed":
            stats.closed += 1
        else:
            stats.open += 1
    return stats


def format_pr_stats(
    stats: PeriodStats,
    period: Period,
    date_range: DateRange,
    *,
    today: Optional[date] = None,
) -> str:
    weekly = period is Period.WEEKLY
    lines = [
        f"📊 {'Weekly' if weekly else 'Monthly'} PR Statistics",
        "",
        f"{'Last Week' if weekly else 'This Month'}: {format_period_range(date_range, period, today=today)}",
        f"   Total PRs: {stats.total}",
    ]
    if stats.total:
        lines.append(f"   Status: Open: {stats.open}, Closed: {stats.closed}, Merged: {stats.merged}")
        if stats.authors:
            lines.append("   Authors:")
            lines.extend(f"     {author}: {count}" for author, count in _by_count(stats.authors))
    return "\n".join(lines)


__all__ = [
    "CommitStats",
    "DateRange",
    "MAX_LISTED_COMMITS",
    "Period",
    "PeriodStats",
    "SummaryData",
    "commit_stats",
    "commit_type",
    "compute_pr_stats",
    "current_month_range",
    "current_week_range",
    "default_summary_filename",
    "format_as_markdown",
    "format_as_text",
    "format_date_range",
    "format_pr_stats",
    "format_period_range",
    "generate_stats",
    "last_week_range",
    "period_range",
    "resolve_summary_range",
    "state_icon",
    "validate_date",
    "validate_date_range",
]
