"""Prompt templates sent to the AI agent by each workflow."""

from __future__ import annotations

from typing import Optional

from .tools.forge import IssueDetails, PRDetails

CONVENTIONAL_TYPES = (
    "   - feat: new features\n"
    "   - fix: bug fixes\n"
    "   - docs: documentation changes\n"
    "   - style: formatting changes\n"
    "   - refactor: code refactoring\n"
    "   - perf: performance improvements\n"
    "   - test: adding/updating tests\n"
    "   - chore: maintenance tasks\n"
    "   - ci: CI/CD changes\n"
    "   - build: build system changes"
)

OPTION_FORMAT = (
    "Please respond with exactly this format:\n"
    "OPTION_1: {first}\n"
    "OPTION_2: {second}\n"
    "OPTION_3: {third}"
)


def _option_block(kind: str) -> str:
    return OPTION_FORMAT.format(
        first=f"{{first_generated_{kind}}}",
        second=f"{{second_generated_{kind}}}",
        third=f"{{third_generated_{kind}}}",
    )


def _option_examples(first: str, second: str, third: str) -> str:
    return f"OPTION_1: {first}\nOPTION_2: {second}\nOPTION_3: {third}"


def jira_branch_prompt(ticket: str, title: Optional[str]) -> str:
    """Branch names for a JIRA ticket, keeping the ticket key verbatim."""
    return f"""Based on the following JIRA ticket information, generate 3 git branch name options:

JIRA Ticket: {ticket}
JIRA Title: {title or 'Not available'}

Please analyze the ticket and provide 3 branch name options:
1. A branch type prefix following commitlint conventional types:
{CONVENTIONAL_TYPES}
2. Branch names following the format: {{prefix}}/{{ticket-id}}-{{description}}
   - Option 1: Most straightforward interpretation
   - Option 2: Alternative wording
   - Option 3: Most detailed

Requirements:
- Use kebab-case for the description (max 30 characters)
- Use only lowercase letters, numbers and hyphens for the description part
- Keep the ticket-id exactly as provided (do not convert to lowercase)
- Prefer 'feat' over 'feature' and 'fix' over 'bugfix'

{_option_block("branch_name")}

Example:
{_option_examples("feat/PROJ-123-add-user-auth", "feat/PROJ-123-implement-authentication", "feat/PROJ-123-user-authentication-system")}"""


def custom_branch_prompt(description: str) -> str:
    """Branch names from a free-form description."""
    return f"""Based on the following prompt, generate 3 git branch name options:

{description}

Please analyze the request and provide 3 branch name options:
1. A branch type prefix following commitlint conventional types:
{CONVENTIONAL_TYPES}
2. Branch names following the format: {{prefix}}/{{description}}

Requirements:
- Use kebab-case for the description (max 40 characters)
- Use only lowercase letters, numbers and hyphens

{_option_block("branch_name")}

Example:
{_option_examples("feat/add-user-authentication", "feat/implement-user-auth-system", "feat/user-authentication-module")}"""


def diff_branch_prompt(diff: str) -> str:
    """Branch names inferred from a diff, reusing any ticket key found in it."""
    return f"""Based on the following git diff, generate 3 git branch name options:

{diff}

Please analyze the changes and provide 3 branch name options:
1. First, look for JIRA ticket IDs in the diff (format: PROJECT-123)
2. A branch type prefix following commitlint conventional types:
{CONVENTIONAL_TYPES}
3. Branch names following the format:
   - If a JIRA ticket is found: {{prefix}}/{{ticket-id}}-{{description}}
   - Otherwise: {{prefix}}/{{description}}

Requirements:
- Include the exact ticket ID when one is found (preserve case)
- Use kebab-case for the description
- Use only lowercase letters, numbers and hyphens for the description part

{_option_block("branch_name")}

Examples:
{_option_examples("feat/KB2CW-123-add-user-auth", "feat/KB2CW-123-implement-authentication", "feat/KB2CW-123-user-authentication-system")}
Or without JIRA:
{_option_examples("fix/update-validation-logic", "fix/improve-form-validation", "fix/validation-error-handling")}"""


def commit_message_prompt(diff: str, extra_context: Optional[str] = None) -> str:
    """Three conventional commit subjects for ``diff``."""
    context = (extra_context or "").strip()
    context_block = f"\nAdditional context from user:\n{context}\n" if context else "\n"
    return f"""Based on the following git diff, generate 3 commit message options:

{diff}
{context_block}
Please analyze the changes and provide 3 commit message options:
1. A commit type prefix following commitlint conventional types:
{CONVENTIONAL_TYPES}
2. Messages following the format: {{type}}: {{description}}

Requirements:
- Keep the description clear and concise (max 72 characters)
- Use imperative mood ("add feature", not "added feature")
- Do not end the subject line with a period
- Focus on what changed and why, not how

{_option_block("commit_message")}

Examples:
{_option_examples("feat: add user authentication module", "feat: implement login and signup functionality", "feat: add JWT-based authentication system for users")}"""


def implementation_plan_prompt(issue: IssueDetails) -> str:
    """Ask for a JSON implementation plan for ``issue``."""
    lines = [
        "You are a senior software engineer creating an implementation plan for an issue.",
        "",
        "Issue Details:",
        f"- Number: #{issue.number}",
        f"- Title: {issue.title}",
        f"- Description: {issue.body}",
        f"- Labels: {', '.join(issue.labels)}",
    ]
    if issue.assignee:
        lines.append(f"- Assignee: {issue.assignee}")
    if issue.milestone:
        lines.append(f"- Milestone: {issue.milestone}")
    lines.extend(
        [
            "",
            "Include an overview, actionable tasks (title, description, priority high|medium|low,",
            "estimated time), a suggested branch name (e.g. feat/issue-123-short-description),",
            "prerequisites and a testing strategy.",
            "",
            "Respond in JSON format matching this structure:",
            "{",
            '  "overview": "string",',
            '  "tasks": [{"title": "string", "description": "string", "priority": "high|medium|low", "estimatedTime": "string"}],',
            '  "suggestedBranchName": "string",',
            '  "prerequisites": ["string"],',
            '  "testingStrategy": ["string"]',
            "}",
        ]
    )
    return "\n".join(lines)


def take_issue_prompt(issue: IssueDetails) -> str:
    return (
        f"Implement the issue: #{issue.number} - {issue.title}\n\n"
        f"Issue Description:\n{issue.body or 'No description provided'}\n\n"
        "Please analyze the issue and implement the necessary changes to the codebase."
    )


def take_plan_prompt(plan_content: str) -> str:
    return (
        f"Execute the following development plan:\n\n{plan_content}\n\n"
        "Please analyze the plan and implement the necessary changes to the codebase."
    )


def _pr_header(pr: PRDetails) -> str:
    return (
        f"- PR #{pr.number}: {pr.title}\n"
        f"- URL: {pr.url}\n"
        f"- Target branch: {pr.base_branch}\n"
        f"- Source branch: {pr.head_branch}"
    )


def update_description_prompt(pr: PRDetails, provider: str, extra_context: Optional[str] = None) -> str:
    """Ask the agent to write and apply a new PR description."""
    if provider == "gitlab":
        update_step = "Update the MR: `glab mr update --description \"$(cat description.md)\"`"
    else:
        update_step = "Update the PR: `gh pr edit --body-file description.md`"
    prompt = f"""You are an expert technical writer updating a pull request description.

## PR Information
{_pr_header(pr)}

1. Examine the code changes: purpose, scope and impact.
2. Write a description with sections for Description, Type of Change, Testing and Breaking Changes.
3. Save the description to description.md. {update_step}

You must complete all three steps; run the CLI command rather than describing it."""
    context = (extra_context or "").strip()
    if context:
        prompt += f"\n\n## Additional Context\n{context}\n\nPlease incorporate this context into your description."
    return prompt


def review_prompt(pr: PRDetails, provider: str, extra_context: Optional[str] = None) -> str:
    """Ask the agent to review the PR and submit its findings."""
    diff_command = f"glab mr diff {pr.number}" if provider == "gitlab" else f"gh pr diff {pr.number}"
    prompt = f"""You are a senior software engineer conducting a code review.

## PR Information
{_pr_header(pr)}

1. Fetch the diff with `{diff_command}`.
2. Look for correctness, security, performance and maintainability issues.
3. Quote the code you comment on and suggest a concrete fix.
4. Submit the review with an overall summary and a decision (APPROVE, REQUEST_CHANGES or COMMENT)."""
    context = (extra_context or "").strip()
    if context:
        prompt += f"\n\n## Additional Context from User\n\n{context}\n\nPlease incorporate this context into your review."
    return prompt


__all__ = [
    "commit_message_prompt",
    "custom_branch_prompt",
    "diff_branch_prompt",
    "implementation_plan_prompt",
    "jira_branch_prompt",
    "review_prompt",
    "take_issue_prompt",
    "take_plan_prompt",
    "update_description_prompt",
]
