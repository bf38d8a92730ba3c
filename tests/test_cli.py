from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from prai.cli import app

PLAN = """# Release prep

1. Make the output directory
```bash
mkdir -p docs/out
```

2. Add release notes
Create file `docs/out/notes.md` for the changelog.

3. Confirm the notes exist
```bash
test -f docs/out/notes.md && echo present
```
"""

FAILING_PLAN = """## Step 1: Break on purpose
```bash
exit 3
```

## Step 2: Never reached
```bash
echo unreachable
```
"""


@pytest.fixture()
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, config_file: Path) -> Path:
    root = tmp_path / "work"
    root.mkdir()
    monkeypatch.chdir(root)
    return root


def test_take_issue_executes_plan_and_writes_summary(workspace: Path) -> None:
    (workspace / "plan.md").write_text(PLAN, encoding="utf-8")

    result = CliRunner().invoke(app, ["take-issue", "--plan-file", "plan.md", "--yes", "--summary", "out/summary.json"])

    assert result.exit_code == 0, result.output
    assert "Loaded 3 step(s) from plan.md:" in result.output
    assert "  2. [create-file] Add release notes" in result.output
    assert "[3/3] Confirm the notes exist (test)" in result.output
    assert (workspace / "docs" / "out").is_dir()
    assert (workspace / "docs" / "out" / "notes.md").is_file()

    summary = json.loads((workspace / "out" / "summary.json").read_text(encoding="utf-8"))
    assert (summary["total"], summary["success_count"], summary["failure_count"]) == (3, 3, 0)
    assert summary["results"][2]["output"] == "present"
    assert not summary["halted"]


def test_take_issue_dry_run_changes_nothing(workspace: Path) -> None:
    (workspace / "plan.md").write_text(PLAN, encoding="utf-8")

    result = CliRunner().invoke(app, ["take-issue", "-p", "plan.md", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "Would create directory: docs/out" in result.output
    assert "Would create file: docs/out/notes.md" in result.output
    assert "Would run: test -f docs/out/notes.md && echo present" in result.output
    assert not (workspace / "docs").exists()


def test_take_issue_halts_when_operator_declines(workspace: Path) -> None:
    (workspace / "plan.md").write_text(FAILING_PLAN, encoding="utf-8")

    result = CliRunner().invoke(
        app,
        ["take-issue", "--plan-file", "plan.md", "--yes", "--summary", "summary.json"],
        input="n\n",
    )

    assert result.exit_code == 1
    assert "FAILED: Command failed with exit code 3" in result.output
    assert "unreachable" not in result.output
    assert "Not run: 1" in result.output
    summary = json.loads((workspace / "summary.json").read_text(encoding="utf-8"))
    assert summary["halted"] is True
    assert summary["total"] == 1


def test_take_issue_can_be_cancelled_before_execution(workspace: Path) -> None:
    (workspace / "plan.md").write_text(PLAN, encoding="utf-8")

    result = CliRunner().invoke(app, ["take-issue", "--plan-file", "plan.md"], input="n\n")

    assert result.exit_code == 0
    assert "Execution cancelled" in result.output
    assert not (workspace / "docs").exists()


def test_take_issue_rejects_plan_without_steps(workspace: Path) -> None:
    (workspace / "plan.md").write_text("Just some prose, no steps.\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["take-issue", "--plan-file", "plan.md", "--yes"])

    assert result.exit_code == 1
    assert "No executable steps found in plan file" in result.output


@pytest.mark.parametrize(
    "arguments",
    [
        ["take-issue"],
        ["take-issue", "--plan-file", "plan.md", "--issue", "4"],
    ],
)
def test_take_issue_requires_exactly_one_source(workspace: Path, arguments: list) -> None:
    result = CliRunner().invoke(app, arguments)

    assert result.exit_code == 1
    assert "Exactly one of --plan-file or --issue is required." in result.output


def test_take_issue_reports_missing_plan_file(workspace: Path) -> None:
    result = CliRunner().invoke(app, ["take-issue", "--plan-file", "absent.md"])

    assert result.exit_code == 1
    assert "Plan file not found" in result.output


@pytest.mark.parametrize(
    "arguments",
    [
        ["create-branch"],
        ["create-branch", "--jira", "PROJ-1", "--prompt", "login page"],
    ],
)
def test_create_branch_requires_exactly_one_source(workspace: Path, arguments: list) -> None:
    result = CliRunner().invoke(app, arguments)

    assert result.exit_code == 1
    assert "Exactly one option must be used: --jira, --git-diff, or --prompt" in result.output


def test_config_commands_round_trip(workspace: Path, config_file: Path) -> None:
    runner = CliRunner()

    assert runner.invoke(app, ["config", "set-agent", "gemini"]).exit_code == 0
    assert runner.invoke(app, ["config", "set-model", "create-branch", "gemini-2.5-flash"]).exit_code == 0
    jira = runner.invoke(
        app,
        ["config", "set-jira", "--base-url", "https://acme.atlassian.net", "--email", "dev@acme.test", "--api-token", "s3cret"],
    )
    assert jira.exit_code == 0, jira.output

    stored = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    assert stored["agent"] == "gemini"
    assert stored["models"] == {"create_branch": {"gemini": "gemini-2.5-flash"}}
    assert stored["jira"]["api_token"] == "s3cret"

    shown = runner.invoke(app, ["config", "show"])
    assert shown.exit_code == 0
    assert f"# {config_file}" in shown.output
    assert "s3cret" not in shown.output
    assert "****" in shown.output


def test_config_rejects_unknown_values(workspace: Path, config_file: Path) -> None:
    runner = CliRunner()

    agent = runner.invoke(app, ["config", "set-agent", "copilot"])
    assert agent.exit_code != 0
    assert "Unsupported agent 'copilot'" in agent.output

    model = runner.invoke(app, ["config", "set-model", "deploy", "m1"])
    assert model.exit_code != 0
    assert not config_file.exists()


class _ScriptedAgent:
    def __init__(self, reply: str = "", plan: object = None) -> None:
        self.reply = reply
        self.plan = plan
        self.prompts: list = []

    def invoke(self, prompt: str, use_language: bool = True) -> str:
        self.prompts.append(prompt)
        return self.reply

    def invoke_json(self, prompt: str, response_model: object) -> object:
        self.prompts.append(prompt)
        return self.plan


def test_create_branch_from_prompt(tiny_repo, config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    agent = _ScriptedAgent("OPTION_1: feat/login-page\nOPTION_2: feat/add-login\nOPTION_3: feat/login-ui")
    monkeypatch.setattr("prai.cli._agent", lambda config, command, yolo=False: agent)
    monkeypatch.chdir(tiny_repo.root)

    result = CliRunner().invoke(app, ["create-branch", "--prompt", "add a login page"], input="2\n")

    assert result.exit_code == 0, result.output
    assert "Created and switched to branch: feat/add-login" in result.output
    assert tiny_repo.git("branch", "--show-current") == "feat/add-login"
    assert "add a login page" in agent.prompts[0]


def test_ai_commit_commits_selected_message(tiny_repo, config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    agent = _ScriptedAgent("OPTION_1: feat: add login form\nOPTION_2: chore: tweak readme")
    monkeypatch.setattr("prai.cli._agent", lambda config, command, yolo=False: agent)
    monkeypatch.chdir(tiny_repo.root)
    tiny_repo.write("README.md", "# tiny\n<form id=\"login\"></form>\n")

    result = CliRunner().invoke(app, ["ai-commit"], input="1\n")

    assert result.exit_code == 0, result.output
    assert "Commit created:" in result.output
    assert tiny_repo.git("log", "-1", "--format=%s") == "feat: add login form"
    assert "form id" in agent.prompts[0]


def test_ai_commit_without_changes_fails(tiny_repo, config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tiny_repo.root)

    result = CliRunner().invoke(app, ["ai-commit"])

    assert result.exit_code == 1
    assert "No changes detected" in result.output


class _RecordingProvider:
    name = "github"

    def __init__(self, issue) -> None:
        self.issue = issue
        self.updates: list = []
        self.comments: list = []

    def get_issue(self, number: int):
        return self.issue

    def update_issue_body(self, number: int, body: str) -> None:
        self.updates.append((number, body))

    def comment_issue(self, number: int, body: str) -> None:
        self.comments.append((number, body))


@pytest.fixture()
def planned_issue(workspace: Path, monkeypatch: pytest.MonkeyPatch) -> _RecordingProvider:
    from prai.planning import ImplementationPlan
    from prai.tools.forge import IssueDetails

    plan = ImplementationPlan.model_validate(
        {
            "overview": "Speed up search",
            "tasks": [{"title": "Add an index", "description": "Index the title column", "priority": "high"}],
            "suggestedBranchName": "feat/issue-8-search-index",
        }
    )
    provider = _RecordingProvider(IssueDetails(number=8, title="Search is slow", body="It takes 5s."))
    monkeypatch.setattr("prai.cli._repository", lambda: None)
    monkeypatch.setattr("prai.cli._provider", lambda repo: provider)
    monkeypatch.setattr("prai.cli._agent", lambda config, command, yolo=False: _ScriptedAgent(plan=plan))
    return provider


def test_plan_issue_saves_markdown(workspace: Path, planned_issue: _RecordingProvider) -> None:
    result = CliRunner().invoke(app, ["plan-issue", "--issue", "8", "--action", "save"])

    assert result.exit_code == 0, result.output
    assert "Implementation plan saved to issue-8-plan.md" in result.output
    saved = (workspace / "issue-8-plan.md").read_text(encoding="utf-8")
    assert saved.startswith("# Implementation plan for #8")
    assert "## Step 1: Add an index" in saved


def test_plan_issue_appends_plan_to_issue_body(workspace: Path, planned_issue: _RecordingProvider) -> None:
    result = CliRunner().invoke(app, ["plan-issue", "-i", "8", "-a", "update"])

    assert result.exit_code == 0, result.output
    number, body = planned_issue.updates[0]
    assert number == 8
    assert body.startswith("It takes 5s.\n\n---\n\n# Implementation plan for #8")
    assert planned_issue.comments == []


class _ActivitySource:
    name = "github"

    def __init__(self, prs=(), commits=()) -> None:
        self.prs = list(prs)
        self.commits = list(commits)
        self.ranges: list = []

    def authored_prs(self, since, until):
        self.ranges.append((since, until))
        return self.prs

    def search_prs_by_date_range(self, start, end):
        self.ranges.append((start, end))
        return self.prs

    def commits_in_range(self, since: str, until: str):
        self.ranges.append((since, until))
        return self.commits


@pytest.fixture()
def activity(workspace: Path, monkeypatch: pytest.MonkeyPatch) -> _ActivitySource:
    from prai.tools.forge import PRSummary
    from prai.tools.vcs import CommitInfo

    source = _ActivitySource(
        prs=[
            PRSummary(number="12", title="Add search", state="merged", author="octo"),
            PRSummary(number="13", title="Search box", state="open", author="alice"),
        ],
        commits=[CommitInfo(hash="abc1234", message="feat: add search", author="Prai Tester", date="2026-10-13")],
    )
    monkeypatch.setattr("prai.cli._repository", lambda: source)
    monkeypatch.setattr("prai.cli._provider", lambda repo: source)
    return source


def test_weekly_summary_prints_both_sections_with_stats(workspace: Path, activity: _ActivitySource) -> None:
    result = CliRunner().invoke(
        app, ["weekly-summary", "--since", "2026-10-12", "--until", "2026-10-14", "--stats"]
    )

    assert result.exit_code == 0, result.output
    assert "=== Weekly Summary (2026-10-12 to 2026-10-14) ===" in result.output
    assert "  🟣 #12: Add search (merged) - octo" in result.output
    assert "  • feat: add search (abc1234) - Prai Tester" in result.output
    assert "PR Statistics:" in result.output and "  feat: 1" in result.output
    assert activity.ranges[1] == ("2026-10-12", "2026-10-14")


def test_weekly_summary_commit_only_markdown_to_file(workspace: Path, activity: _ActivitySource) -> None:
    result = CliRunner().invoke(
        app, ["weekly-summary", "--commit", "--since", "2026-10-12", "--until", "2026-10-14", "--save"]
    )

    assert result.exit_code == 0, result.output
    saved = workspace / "weekly-summary-2026-10-12-to-2026-10-14.md"
    assert f"Weekly summary saved to: {saved.resolve()}" in result.output
    content = saved.read_text(encoding="utf-8")
    assert content.startswith("# Weekly Summary (2026-10-12 to 2026-10-14)")
    assert "- **feat**: add search *(abc1234)* - Prai Tester" in content
    assert "Pull Requests" not in content
    assert activity.ranges == [("2026-10-12", "2026-10-14")]


@pytest.mark.parametrize(
    ("arguments", "message"),
    [
        (["--since", "12/10/2026"], "Invalid date format: 12/10/2026. Expected format: YYYY-MM-DD"),
        (["--since", "2026-10-15", "--until", "2026-10-14"], "Start date cannot be after end date"),
    ],
)
def test_weekly_summary_rejects_bad_dates(workspace: Path, activity: _ActivitySource, arguments: list, message: str) -> None:
    result = CliRunner().invoke(app, ["weekly-summary", *arguments])

    assert result.exit_code == 1
    assert message in result.output
    assert activity.ranges == []


def test_pr_stats_defaults_to_last_week(workspace: Path, activity: _ActivitySource) -> None:
    from prai.reports import last_week_range

    result = CliRunner().invoke(app, ["pr-stats"])

    assert result.exit_code == 0, result.output
    assert "Analyzing PR activity for last week..." in result.output
    assert "📊 Weekly PR Statistics" in result.output
    assert "   Total PRs: 2" in result.output
    assert "   Status: Open: 1, Closed: 0, Merged: 1" in result.output
    week = last_week_range()
    assert activity.ranges == [(week.since, week.until)]


def test_pr_stats_monthly_and_conflicting_flags(workspace: Path, activity: _ActivitySource) -> None:
    monthly = CliRunner().invoke(app, ["pr-stats", "--monthly"])
    assert monthly.exit_code == 0, monthly.output
    assert "📊 Monthly PR Statistics" in monthly.output
    assert activity.ranges[0][0].day == 1

    both = CliRunner().invoke(app, ["pr-stats", "--weekly", "--monthly"])
    assert both.exit_code == 1
    assert "Please specify either --weekly or --monthly, not both" in both.output
