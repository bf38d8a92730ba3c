from __future__ import annotations

from datetime import date

import pytest

from prai.reports import (
    MAX_LISTED_COMMITS,
    DateRange,
    Period,
    SummaryData,
    commit_stats,
    commit_type,
    compute_pr_stats,
    current_month_range,
    current_week_range,
    default_summary_filename,
    format_as_markdown,
    format_as_text,
    format_period_range,
    format_pr_stats,
    generate_stats,
    last_week_range,
    resolve_summary_range,
    validate_date,
    validate_date_range,
)
from prai.tools.forge import PRSummary
from prai.tools.vcs import CommitInfo

# A Wednesday.
TODAY = date(2026, 10, 14)


def _pr(number: int, state: str, author: str = "octo", title: str = "Change") -> PRSummary:
    return PRSummary(number=str(number), title=title, state=state, author=author)


def _commit(message: str, sha: str = "abc1234", author: str = "Prai Tester") -> CommitInfo:
    return CommitInfo(hash=sha, message=message, author=author, date="2026-10-13 10:00:00 +0000")


def test_week_and_month_ranges() -> None:
    assert current_week_range(TODAY) == DateRange(date(2026, 10, 12), TODAY)
    assert last_week_range(TODAY) == DateRange(date(2026, 10, 5), date(2026, 10, 11))
    assert current_month_range(TODAY) == DateRange(date(2026, 10, 1), TODAY)

    monday = date(2026, 10, 12)
    sunday = date(2026, 10, 18)
    assert current_week_range(monday).since == monday
    assert current_week_range(sunday).since == monday
    assert last_week_range(sunday) == DateRange(date(2026, 10, 5), date(2026, 10, 11))


def test_validate_date_is_strict() -> None:
    assert validate_date("2026-02-28") == date(2026, 2, 28)

    for bad in ("2026-2-28", "28/02/2026", "2026-02-30", "yesterday"):
        with pytest.raises(ValueError) as excinfo:
            validate_date(bad)
        assert str(excinfo.value) == f"Invalid date format: {bad}. Expected format: YYYY-MM-DD"


def test_validate_date_range_rejects_reversed_bounds() -> None:
    validate_date_range(TODAY, TODAY)
    with pytest.raises(ValueError, match="Start date cannot be after end date"):
        validate_date_range(date(2026, 10, 15), TODAY)


def test_resolve_summary_range_fills_missing_bounds_from_current_week() -> None:
    assert resolve_summary_range(today=TODAY) == DateRange(date(2026, 10, 12), TODAY)
    assert resolve_summary_range(since="2026-10-01", today=TODAY) == DateRange(date(2026, 10, 1), TODAY)
    assert resolve_summary_range(until="2026-10-13", today=TODAY).until == date(2026, 10, 13)

    with pytest.raises(ValueError, match="Start date cannot be after end date"):
        resolve_summary_range(since="2026-10-20", today=TODAY)


def test_range_labels_and_filename() -> None:
    week = DateRange(date(2026, 10, 5), date(2026, 10, 11))

    assert week.describe() == "2026-10-05 to 2026-10-11"
    assert default_summary_filename(week) == "weekly-summary-2026-10-05-to-2026-10-11.md"
    assert format_period_range(week, Period.WEEKLY, today=TODAY) == "Oct 5 - Oct 11"
    assert format_period_range(week, Period.WEEKLY, today=date(2027, 1, 2)) == "Oct 5, 2026 - Oct 11, 2026"
    assert format_period_range(current_month_range(TODAY), Period.MONTHLY) == "October 2026"


def test_commit_type_and_stats() -> None:
    commits = [
        _commit("feat: add search"),
        _commit("fix(api): handle timeouts", author="Other Dev"),
        _commit("feat(ui): search box"),
        _commit("Update README"),
    ]

    assert commit_type("feat(ui): search box") == "feat"
    assert commit_type("Update README") is None

    stats = commit_stats(commits)
    assert stats.total == 4
    assert stats.by_type == {"feat": 2, "fix": 1, "other": 1}
    assert stats.by_author == {"Prai Tester": 3, "Other Dev": 1}


def test_text_summary_lists_prs_and_commits() -> None:
    data = SummaryData(
        date_range="2026-10-12 to 2026-10-14",
        prs=[_pr(12, "merged", title="Add search"), _pr(13, "draft", title="Spike")],
        commits=[_commit("feat: add search")],
    )

    text = format_as_text(data)

    assert text.splitlines() == [
        "=== Weekly Summary (2026-10-12 to 2026-10-14) ===",
        "",
        "📝 Pull Requests (2):",
        "  🟣 #12: Add search (merged) - octo",
        "  • #13: Spike (draft) - octo",
        "",
        "💾 Commits (1):",
        "  • feat: add search (abc1234) - Prai Tester",
    ]


def test_summary_sections_are_optional_and_empty_sections_say_so() -> None:
    commits_only = format_as_text(SummaryData(date_range="r", commits=[]))
    assert "Pull Requests" not in commits_only
    assert "  No commits found in this period" in commits_only

    prs_only = format_as_markdown(SummaryData(date_range="r", prs=[]))
    assert "Commits" not in prs_only
    assert "*No PRs found in this period*" in prs_only


def test_commit_listing_is_capped() -> None:
    commits = [_commit(f"fix: bug {index}", sha=f"{index:07d}") for index in range(MAX_LISTED_COMMITS + 5)]
    data = SummaryData(date_range="r", commits=commits)

    text = format_as_text(data)
    markdown = format_as_markdown(data)

    assert "💾 Commits (25):" in text
    assert "fix: bug 19 " in text and "fix: bug 20 " not in text
    assert "  ... and 5 more commits" in text
    assert "*... and 5 more commits*" in markdown


def test_markdown_summary_bolds_commit_types() -> None:
    data = SummaryData(
        date_range="2026-10-12 to 2026-10-14",
        prs=[_pr(7, "open", title="WIP")],
        commits=[_commit("feat(ui): search box"), _commit("Update README", sha="def5678")],
    )

    markdown = format_as_markdown(data)

    assert markdown.startswith("# Weekly Summary (2026-10-12 to 2026-10-14)\n")
    assert "## 📝 Pull Requests (1)" in markdown
    assert "- 🟢 **#7**: WIP *(open)* - octo" in markdown
    assert "- **feat**: search box *(abc1234)* - Prai Tester" in markdown
    assert "- • Update README *(def5678)* - Prai Tester" in markdown


def test_generate_stats_orders_commit_types_by_frequency() -> None:
    data = SummaryData(
        date_range="r",
        prs=[_pr(1, "open"), _pr(2, "merged"), _pr(3, "open")],
        commits=[_commit("docs: a"), _commit("fix: b"), _commit("fix: c"), _commit("misc")],
    )

    assert generate_stats(data).splitlines() == [
        "PR Statistics:",
        "  open: 2",
        "  merged: 1",
        "",
        "Commit Statistics:",
        "  fix: 2",
        "  docs: 1",
        "  other: 1",
    ]
    assert generate_stats(SummaryData(date_range="r", prs=[], commits=[])) == ""


def test_pr_stats_counts_states_and_authors() -> None:
    prs = [
        _pr(1, "merged", author="alice"),
        _pr(2, "open", author="bob"),
        _pr(3, "merged", author="alice"),
        _pr(4, "closed", author="carol"),
        _pr(5, "draft", author="bob"),
        _pr(6, "merged", author="alice"),
    ]

    stats = compute_pr_stats(prs)
    week = last_week_range(TODAY)

    assert (stats.total, stats.open, stats.closed, stats.merged) == (6, 2, 1, 3)
    assert format_pr_stats(stats, Period.WEEKLY, week, today=TODAY).splitlines() == [
        "📊 Weekly PR Statistics",
        "",
        "Last Week: Oct 5 - Oct 11",
        "   Total PRs: 6",
        "   Status: Open: 2, Closed: 1, Merged: 3",
        "   Authors:",
        "     alice: 3",
        "     bob: 2",
        "     carol: 1",
    ]


def test_pr_stats_without_prs_only_reports_total() -> None:
    month = current_month_range(TODAY)

    rendered = format_pr_stats(compute_pr_stats([]), Period.MONTHLY, month, today=TODAY)

    assert rendered.splitlines() == ["📊 Monthly PR Statistics", "", "This Month: October 2026", "   Total PRs: 0"]
