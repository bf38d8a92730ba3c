"""Branch, commit and PR title generation on top of the agent and parsers."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from .agents.client import AgentClient
from .integrations.jira import TicketDetails
from .parsing import ParseResult, extract_branch_candidates, parse_numbered_output
from .prompts import commit_message_prompt

LOGGER = logging.getLogger(__name__)

FALLBACK_COMMIT_TYPE = "chore"

_COMMIT_TYPE_RE = re.compile(r"^(\w+)(?:\([^)]*\))?!?:\s*(.*)$")
_TICKET_TAG_RE = re.compile(r"^\[[A-Z]+-\d+\]\s*")
_CONVENTIONAL_BRANCH_RE = re.compile(r"^(feat|fix|docs|style|refactor|perf|test|chore|ci|build)/(.+)$")
_BRANCH_TICKET_PREFIX_RE = re.compile(r"^[A-Z]+-\d+-")


def format_commit_message(candidate: str, ticket: Optional[TicketDetails] = None) -> str:
    """Return ``candidate`` rewritten as ``type: [KEY] description`` when a ticket is given."""

    message = candidate.strip()
    if ticket is None:
        return message

    match = _COMMIT_TYPE_RE.match(message)
    if match:
        commit_type = match.group(1).lower()
        own_description = match.group(2)
    else:
        commit_type = FALLBACK_COMMIT_TYPE
        own_description = message
    own_description = _TICKET_TAG_RE.sub("", own_description).strip()

    description = (ticket.title or "").strip() or own_description or ticket.key
    return f"{commit_type}: [{ticket.key}] {description}"


def _unique(values: List[str]) -> List[str]:
    seen: set[str] = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def generate_branch_candidates(agent: AgentClient, prompt: str) -> ParseResult[str]:
    """Ask ``agent`` for branch names and parse the reply."""

    output = agent.invoke(prompt)
    result = extract_branch_candidates(output)
    if not result.success:
        LOGGER.debug("Unparseable branch suggestions:\n%s", output)
    return result


def generate_commit_candidates(
    agent: AgentClient,
    diff: str,
    ticket: Optional[TicketDetails] = None,
    *,
    extra_context: Optional[str] = None,
) -> ParseResult[str]:
    """Ask ``agent`` for commit messages, applying ticket formatting when given."""

    output = agent.invoke(commit_message_prompt(diff, extra_context))
    result = parse_numbered_output(output)
    if not result.success:
        LOGGER.debug("Unparseable commit suggestions:\n%s", output)
        return result
    if ticket is None:
        return result
    return ParseResult.ok(_unique([format_commit_message(value, ticket) for value in result.values]))


def convert_branch_name_to_pr_title(branch: str) -> str:
    """``fix/PROJ-1-update-x`` becomes ``fix: update x``; other names pass through."""

    match = _CONVENTIONAL_BRANCH_RE.match(branch)
    if not match:
        return branch
    commit_type, description = match.groups()
    description = _BRANCH_TICKET_PREFIX_RE.sub("", description)
    return f"{commit_type}: {' '.join(description.split('-')).lower()}"


def build_pr_title(branch: str, ticket: Optional[TicketDetails] = None) -> str:
    """Title for a new PR from ``branch``, tagged with the ticket key when known."""

    if ticket is None:
        return convert_branch_name_to_pr_title(branch)
    if ticket.title:
        return f"[{ticket.key}] {ticket.title}"
    return f"[{ticket.key}] {convert_branch_name_to_pr_title(branch)}"


__all__ = [
    "FALLBACK_COMMIT_TYPE",
    "build_pr_title",
    "convert_branch_name_to_pr_title",
    "format_commit_message",
    "generate_branch_candidates",
    "generate_commit_candidates",
]
