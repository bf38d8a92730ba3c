"""CLI commands for the AI-assisted pull-request workflow."""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence, cast

import typer
import yaml

from .agents.client import AgentClient, AgentError
from .config import (
    COMMAND_NAMES,
    SUPPORTED_AGENTS,
    SUPPORTED_LANGUAGES,
    AppConfig,
    JiraConfig,
    default_config_path,
    load_config,
    save_config,
)
from .integrations.jira import JiraClient, TicketDetails, extract_jira_ticket, parse_ticket_reference
from .naming import build_pr_title, generate_branch_candidates, generate_commit_candidates
from .planning import (
    ExecutionResult,
    ImplementationPlan,
    PlanRunner,
    PlanRunSummary,
    PlanStep,
    StepExecutor,
    parse_markdown_plan,
    render_markdown_plan,
)
from .reports import (
    Period,
    SummaryData,
    compute_pr_stats,
    default_summary_filename,
    format_as_markdown,
    format_as_text,
    format_pr_stats,
    generate_stats,
    period_range,
    resolve_summary_range,
)
from .prompts import (
    custom_branch_prompt,
    diff_branch_prompt,
    implementation_plan_prompt,
    jira_branch_prompt,
    review_prompt,
    take_issue_prompt,
    take_plan_prompt,
    update_description_prompt,
)
from .tools.forge import ForgeError, ForgeProvider, detect_provider
from .tools.vcs import GitError, GitRepository

LOGGER = logging.getLogger(__name__)

APP_HELP = "AI-assisted branch, commit, pull-request and issue-plan workflows."

app = typer.Typer(help=APP_HELP)
config_app = typer.Typer(help="Inspect and edit the prai configuration file.")
app.add_typer(config_app, name="config")


class PlanAction(str, Enum):
    DISPLAY = "display"
    UPDATE = "update"
    COMMENT = "comment"
    SAVE = "save"


@dataclass(slots=True)
class CliState:
    config_path: Optional[Path] = None
    verbose: bool = False


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to the configuration file (defaults to ~/.git-pr-ai/config.yaml).",
    ),
) -> None:
    """Configure logging and remember global options for subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CliState(config_path=config, verbose=verbose)


# --------------------------------------------------------------------- helpers
def _fail(message: str) -> NoReturn:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


def _config_path(ctx: typer.Context) -> Path:
    state = ctx.obj if isinstance(ctx.obj, CliState) else CliState()
    return state.config_path or default_config_path()


def _load(ctx: typer.Context) -> AppConfig:
    try:
        return load_config(_config_path(ctx))
    except ValueError as error:
        _fail(f"Invalid configuration: {error}")


def _repository() -> GitRepository:
    try:
        return GitRepository.discover()
    except GitError as error:
        _fail(str(error))


def _provider(repo: GitRepository) -> ForgeProvider:
    provider = detect_provider(repo.remote_url(), repo.root)
    try:
        provider.check_cli()
    except ForgeError as error:
        _fail(str(error))
    return provider


def _agent(config: AppConfig, command: str, *, yolo: bool = False) -> AgentClient:
    return AgentClient(
        config.agent,
        model=config.model_for_command(command),
        language=config.language,
        yolo=yolo,
    )


def _ticket(config: AppConfig, key: str) -> TicketDetails:
    if config.jira is None:
        typer.echo("No JIRA configuration found, using ticket key only")
        return TicketDetails(key=key)
    client = JiraClient(base_url=config.jira.base_url, email=config.jira.email, api_token=config.jira.api_token)
    details = client.get_ticket_details(key)
    if details is None:
        typer.echo(f"Could not fetch JIRA title for {key}")
        return TicketDetails(key=key)
    typer.echo(f"JIRA Title: {details.title}")
    return details


def _choose(label: str, options: Sequence[str]) -> str:
    if len(options) == 1:
        return options[0]
    for index, option in enumerate(options, start=1):
        typer.echo(f"  {index}. {option}")
    choice = typer.prompt(label, type=typer.IntRange(1, len(options)), default=1)
    return options[choice - 1]


# -------------------------------------------------------------------- branches
@app.command("create-branch")
def create_branch(
    ctx: typer.Context,
    jira: Optional[str] = typer.Option(None, "--jira", "-j", help="JIRA ticket key or browse URL."),
    git_diff: bool = typer.Option(False, "--git-diff", "-g", help="Name the branch after the current diff."),
    prompt: Optional[str] = typer.Option(None, "--prompt", "-p", help="Free-form description of the work."),
    move: bool = typer.Option(False, "--move", "-m", help="Rename the current branch instead of creating one."),
) -> None:
    """Generate branch names with the AI agent and create (or rename to) the chosen one."""
    selected = sum(1 for flag in (jira, git_diff, prompt) if flag)
    if selected != 1:
        _fail("Exactly one option must be used: --jira, --git-diff, or --prompt")

    config = _load(ctx)
    repo = _repository()
    current = repo.current_branch()
    typer.echo(f"Current branch: {current or '(detached)'}")

    if git_diff:
        diff = repo.pending_diff()
        if not diff:
            _fail("No changes detected. Stage or make some changes first.")
        agent_prompt = diff_branch_prompt(diff)
    elif prompt:
        agent_prompt = custom_branch_prompt(prompt)
    else:
        key = parse_ticket_reference(jira or "") or (jira or "").strip()
        typer.echo(f"JIRA Ticket: {key}")
        ticket = _ticket(config, key)
        agent_prompt = jira_branch_prompt(key, ticket.title)

    try:
        result = generate_branch_candidates(_agent(config, "create_branch"), agent_prompt)
    except AgentError as error:
        _fail(f"Failed to generate branch names: {error}")
    if not result.success:
        _fail(result.error or "Could not parse AI output")

    branch = _choose("Select a branch name", list(result.values))
    try:
        if move:
            force = False
            if repo.branch_exists(branch):
                if not typer.confirm(f"Branch '{branch}' already exists. Overwrite it?", default=False):
                    typer.echo("Branch rename cancelled")
                    return
                force = True
            repo.rename_current_branch(branch, force=force)
            typer.echo(f"Renamed branch to: {branch}")
        elif repo.branch_exists(branch):
            if not typer.confirm(f"Switch to the existing branch '{branch}'?", default=True):
                typer.echo("Branch creation cancelled")
                return
            repo.switch_branch(branch)
            typer.echo(f"Switched to existing branch: {branch}")
        else:
            repo.create_branch(branch, current)
            typer.echo(f"Created and switched to branch: {branch}")
    except GitError as error:
        _fail(str(error))


# --------------------------------------------------------------------- commits
@app.command("ai-commit")
def ai_commit(
    ctx: typer.Context,
    jira: Optional[str] = typer.Option(None, "--jira", "-j", help="Tag the commit with this JIRA ticket."),
    prompt: Optional[str] = typer.Option(None, "--prompt", "-p", help="Extra context for the agent."),
) -> None:
    """Suggest commit messages for the pending diff and commit the chosen one."""
    config = _load(ctx)
    repo = _repository()
    diff = repo.pending_diff()
    if not diff:
        _fail('No changes detected. Stage your changes with "git add" or make some changes first.')

    ticket: Optional[TicketDetails] = None
    if jira:
        key = parse_ticket_reference(jira)
        if key is None:
            raise typer.BadParameter(f"Not a JIRA ticket key or URL: {jira}", param_hint="--jira")
        ticket = _ticket(config, key)

    try:
        result = generate_commit_candidates(_agent(config, "ai_commit"), diff, ticket, extra_context=prompt)
    except AgentError as error:
        _fail(f"Failed to generate commit messages: {error}")
    if not result.success:
        _fail(result.error or "Could not parse AI output")

    message = _choose("Select a commit message", list(result.values))
    try:
        sha = repo.commit(message)
    except GitError as error:
        _fail(str(error))
    if sha is None:
        typer.echo("Nothing to commit.")
        return
    typer.echo(f"Commit created: {sha[:7]} {message}")


# ---------------------------------------------------------------- pull requests
@app.command("open-pr")
def open_pr(
    ctx: typer.Context,
    jira: Optional[str] = typer.Option(None, "--jira", "-j", help="JIRA ticket key overriding the branch name."),
) -> None:
    """Open the PR for the current branch, creating it when none exists."""
    config = _load(ctx)
    repo = _repository()
    provider = _provider(repo)
    branch = repo.current_branch()
    if not branch:
        _fail("Cannot open a pull request from a detached HEAD.")

    key = parse_ticket_reference(jira) if jira else extract_jira_ticket(branch)
    ticket = _ticket(config, key) if key else None
    typer.echo(f"Branch: {branch}" + (f" | JIRA: {key}" if key else ""))

    try:
        existing = provider.existing_pr_url(branch)
        if existing:
            typer.echo(f"Opening existing pull request: {existing}")
            provider.open_pr()
            return
        base = provider.default_branch()
        title = build_pr_title(branch, ticket)
        typer.echo(f"Creating pull request '{title}' into {base}")
        provider.create_pr(title, branch, base)
    except ForgeError as error:
        _fail(str(error))


def _hand_off_pr_prompt(ctx: typer.Context, command: str, context: Optional[List[str]]) -> None:
    config = _load(ctx)
    repo = _repository()
    provider = _provider(repo)
    try:
        pr = provider.pr_details()
    except ForgeError as error:
        _fail(f"No pull request found for the current branch: {error}")
    extra = " ".join(context or []).strip() or None
    if command == "pr_review":
        agent_prompt = review_prompt(pr, provider.name, extra)
    else:
        agent_prompt = update_description_prompt(pr, provider.name, extra)
    typer.echo(f"PR #{pr.number}: {pr.title}")
    try:
        _agent(config, command).invoke_interactive(agent_prompt)
    except AgentError as error:
        _fail(str(error))


@app.command("update-pr-desc")
def update_pr_desc(
    ctx: typer.Context,
    context: Optional[List[str]] = typer.Argument(None, help="Additional context for the description."),
) -> None:
    """Let the agent rewrite the description of the current PR."""
    _hand_off_pr_prompt(ctx, "update_pr_desc", context)


@app.command("pr-review")
def pr_review(
    ctx: typer.Context,
    context: Optional[List[str]] = typer.Argument(None, help="Additional context for the review."),
) -> None:
    """Let the agent review the current PR."""
    _hand_off_pr_prompt(ctx, "pr_review", context)


# ----------------------------------------------------------------------- issues
@app.command("plan-issue")
def plan_issue(
    ctx: typer.Context,
    issue: int = typer.Option(..., "--issue", "-i", help="Issue number to plan."),
    action: PlanAction = typer.Option(
        PlanAction.DISPLAY,
        "--action",
        "-a",
        case_sensitive=False,
        help="What to do with the generated plan.",
    ),
) -> None:
    """Generate an implementation plan for an issue."""
    config = _load(ctx)
    repo = _repository()
    provider = _provider(repo)
    try:
        details = provider.get_issue(issue)
    except ForgeError as error:
        _fail(str(error))
    typer.echo(f"Fetched issue #{details.number}: {details.title}")

    try:
        plan = _agent(config, "plan_issue").invoke_json(implementation_plan_prompt(details), ImplementationPlan)
    except AgentError as error:
        _fail(f"Could not generate plan: {error}")

    rendered = render_markdown_plan(plan, heading=f"Implementation plan for #{details.number}")
    typer.echo(rendered)

    try:
        if action is PlanAction.UPDATE:
            body = f"{details.body.rstrip()}\n\n---\n\n{rendered}" if details.body.strip() else rendered
            provider.update_issue_body(details.number, body)
            typer.echo(f"Updated issue #{details.number} with implementation plan")
        elif action is PlanAction.COMMENT:
            provider.comment_issue(details.number, rendered)
            typer.echo(f"Added implementation plan comment to issue #{details.number}")
        elif action is PlanAction.SAVE:
            target = Path.cwd() / f"issue-{details.number}-plan.md"
            target.write_text(rendered, encoding="utf-8")
            typer.echo(f"Implementation plan saved to {target.name}")
    except ForgeError as error:
        _fail(str(error))


def _echo_step_start(step: PlanStep, index: int, total: int) -> None:
    typer.echo(f"\n[{index}/{total}] {step.title} ({step.type_label})")


def _echo_step_result(result: ExecutionResult) -> None:
    if result.success:
        typer.echo(f"  OK ({result.duration_ms} ms){': ' + result.output if result.output else ''}")
    else:
        typer.echo(f"  FAILED: {result.error}")


def render_plan_run(summary: PlanRunSummary) -> None:
    """Render the per-step outcome list and the totals."""
    typer.echo("")
    for result in summary.results:
        label = "OK" if result.success else "FAILED"
        typer.echo(f"- {result.step.number}. {result.step.title} -> {label}")
        if result.error:
            typer.echo(f"    ! {result.error.splitlines()[0]}")
    typer.echo(summary.format_summary())


@app.command("take-issue")
def take_issue(
    ctx: typer.Context,
    plan_file: Optional[Path] = typer.Option(None, "--plan-file", "-p", help="Markdown plan to execute."),
    issue: Optional[int] = typer.Option(None, "--issue", "-i", help="Hand an issue to the agent instead."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what each step would do without doing it."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation before execution starts."),
    summary_path: Optional[Path] = typer.Option(None, "--summary", help="Write the run summary as JSON."),
    use_agent: bool = typer.Option(False, "--use-agent", help="Give the plan file to the agent instead of executing it."),
) -> None:
    """Execute a markdown plan step by step, or hand an issue to the agent."""
    if (plan_file is None) == (issue is None):
        _fail("Exactly one of --plan-file or --issue is required.")

    config = _load(ctx)

    if plan_file is None:
        provider = _provider(_repository())
        try:
            details = provider.get_issue(cast(int, issue))
        except ForgeError as error:
            _fail(str(error))
        typer.echo(f"Target issue: #{details.number} - {details.title}")
        try:
            _agent(config, "take_issue").invoke_interactive(take_issue_prompt(details))
        except AgentError as error:
            _fail(str(error))
        return

    if not plan_file.is_file():
        _fail(f"Plan file not found: {plan_file.resolve()}")
    content = plan_file.read_text(encoding="utf-8")

    if use_agent:
        try:
            _agent(config, "take_issue").invoke_interactive(take_plan_prompt(content))
        except AgentError as error:
            _fail(str(error))
        return

    steps = parse_markdown_plan(content)
    if not steps:
        _fail("No executable steps found in plan file")

    typer.echo(f"Loaded {len(steps)} step(s) from {plan_file}:")
    for step in steps:
        typer.echo(f"  {step.number}. [{step.type_label}] {step.title}")

    if not (dry_run or yes) and not typer.confirm("Execute these steps?", default=True):
        typer.echo("Execution cancelled")
        return

    executor = StepExecutor(
        workdir=Path.cwd(),
        default_test_command=config.plan.default_test_command,
        default_build_command=config.plan.default_build_command,
        dry_run=dry_run,
    )
    runner = PlanRunner(executor, on_step_start=_echo_step_start, on_result=_echo_step_result)
    summary = runner.run(steps)
    render_plan_run(summary)

    if summary_path is not None:
        summary_path.parent.mkdir(parents=True, exist_ok=True)
        summary_path.write_text(json.dumps(summary.to_dict(), indent=2) + "\n", encoding="utf-8")
        typer.echo(f"Summary written to {summary_path}")

    if not summary.ok:
        raise typer.Exit(code=1)


# -------------------------------------------------------------------- reports
@app.command("weekly-summary")
def weekly_summary(
    pr: bool = typer.Option(False, "--pr", help="Include pull requests (both sections when neither flag is given)."),
    commit: bool = typer.Option(False, "--commit", help="Include commits (both sections when neither flag is given)."),
    since: Optional[str] = typer.Option(None, "--since", help="Start date, YYYY-MM-DD (defaults to this Monday)."),
    until: Optional[str] = typer.Option(None, "--until", help="End date, YYYY-MM-DD (defaults to today)."),
    markdown: bool = typer.Option(False, "--md", help="Render as markdown."),
    stats: bool = typer.Option(False, "--stats", help="Append per-state and per-type counts."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the summary to this file."),
    save: bool = typer.Option(False, "--save", help="Write markdown to weekly-summary-SINCE-to-UNTIL.md."),
) -> None:
    """Summarise your pull requests and commits over a date range."""
    include_prs = pr or not commit
    include_commits = commit or not pr
    try:
        date_range = resolve_summary_range(since, until)
    except ValueError as error:
        _fail(f"Error: {error}")

    repo = _repository()
    data = SummaryData(date_range=date_range.describe())
    try:
        if include_prs:
            data.prs = _provider(repo).authored_prs(date_range.since, date_range.until)
        if include_commits:
            data.commits = repo.commits_in_range(date_range.since.isoformat(), date_range.until.isoformat())
    except (ForgeError, GitError) as error:
        _fail(f"Failed to generate weekly summary: {error}")

    rendered = format_as_markdown(data) if (markdown or save) else format_as_text(data)
    if stats:
        extra = generate_stats(data)
        if extra:
            rendered = f"{rendered}\n{extra}\n"

    target = output or (Path(default_summary_filename(date_range)) if save else None)
    if target is None:
        typer.echo(rendered)
        return
    try:
        target.write_text(rendered, encoding="utf-8")
    except OSError as error:
        _fail(f"Failed to write file: {target.resolve()} ({error})")
    typer.echo(f"Weekly summary saved to: {target.resolve()}")


@app.command("pr-stats")
def pr_stats(
    weekly: bool = typer.Option(False, "--weekly", help="Statistics for last week, Monday to Sunday (default)."),
    monthly: bool = typer.Option(False, "--monthly", help="Statistics for this month so far."),
) -> None:
    """Count the repository's pull requests per state and author."""
    if weekly and monthly:
        _fail("Please specify either --weekly or --monthly, not both")
    period = Period.MONTHLY if monthly else Period.WEEKLY

    provider = _provider(_repository())
    date_range = period_range(period)
    typer.echo(f"Analyzing PR activity for {'this month' if monthly else 'last week'}...")
    try:
        prs = provider.search_prs_by_date_range(date_range.since, date_range.until)
    except ForgeError as error:
        _fail(str(error))
    typer.echo(format_pr_stats(compute_pr_stats(prs), period, date_range))


# ----------------------------------------------------------------------- config
@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Print the effective configuration (API token masked)."""
    config = _load(ctx)
    data = config.to_dict()
    if "jira" in data:
        data["jira"]["api_token"] = "****"
    typer.echo(f"# {_config_path(ctx)}")
    typer.echo(yaml.safe_dump(data, sort_keys=False).rstrip())


def _update(ctx: typer.Context, **changes: object) -> None:
    try:
        updated = dataclasses.replace(_load(ctx), **changes)
    except ValueError as error:
        raise typer.BadParameter(str(error)) from error
    path = save_config(updated, _config_path(ctx))
    typer.echo(f"Configuration saved to {path}")


@config_app.command("set-agent")
def config_set_agent(
    ctx: typer.Context,
    agent: str = typer.Argument(..., help=f"One of: {', '.join(SUPPORTED_AGENTS)}"),
) -> None:
    """Select the AI agent CLI."""
    _update(ctx, agent=agent)


@config_app.command("set-language")
def config_set_language(
    ctx: typer.Context,
    language: str = typer.Argument(..., help=f"One of: {', '.join(SUPPORTED_LANGUAGES)}"),
) -> None:
    """Select the language the agent should answer in."""
    _update(ctx, language=language)


@config_app.command("set-jira")
def config_set_jira(
    ctx: typer.Context,
    base_url: str = typer.Option(..., "--base-url", prompt=True, help="e.g. https://acme.atlassian.net"),
    email: str = typer.Option(..., "--email", prompt=True),
    api_token: str = typer.Option(..., "--api-token", prompt=True, hide_input=True),
) -> None:
    """Store JIRA credentials used for ticket title lookups."""
    _update(ctx, jira=JiraConfig(base_url=base_url.strip(), email=email.strip(), api_token=api_token.strip()))


@config_app.command("set-model")
def config_set_model(
    ctx: typer.Context,
    command: str = typer.Argument(..., help=f"One of: {', '.join(COMMAND_NAMES)}"),
    model: str = typer.Argument(..., help="Model name passed to the agent CLI."),
    agent: Optional[str] = typer.Option(None, "--agent", help="Agent the model applies to (defaults to the active one)."),
) -> None:
    """Pin the model an agent uses for one command."""
    key = command.replace("-", "_")
    if key not in COMMAND_NAMES:
        raise typer.BadParameter(f"Unknown command '{command}'. Expected one of: {', '.join(COMMAND_NAMES)}")
    config = _load(ctx)
    target_agent = agent or config.agent
    if target_agent not in SUPPORTED_AGENTS:
        raise typer.BadParameter(f"Unsupported agent '{target_agent}'")
    models = {name: dict(per_agent) for name, per_agent in config.models.items()}
    models.setdefault(key, {})[target_agent] = model
    _update(ctx, models=models)


if __name__ == "__main__":
    app()
