"""Forge CLI wrappers (GitHub via ``gh``, GitLab via ``glab``)."""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import Field

from ..planning.schema import RecordModel

LOGGER = logging.getLogger(__name__)

CommandRunner = Callable[[Sequence[str], Path], "subprocess.CompletedProcess[str]"]

DEFAULT_BASE_BRANCH = "main"
SEARCH_LIMIT = 200
PAGE_SIZE = 100

_GITLAB_STATES = {"opened": "open", "locked": "closed"}


class ForgeError(RuntimeError):
    """Raised when a forge CLI call fails."""


class IssueDetails(RecordModel):
    number: int
    title: str
    body: str = ""
    labels: List[str] = Field(default_factory=list)
    assignee: Optional[str] = None
    milestone: Optional[str] = None


class PRDetails(RecordModel):
    number: str
    title: str
    url: str
    base_branch: str
    head_branch: str


class PRSummary(RecordModel):
    """A pull or merge request as listed by the activity reports."""

    number: str
    title: str
    url: str = ""
    state: str
    author: str = ""
    created_at: str = ""
    updated_at: str = ""
    repository: Optional[str] = None

    def touched_between(self, since: date, until: date) -> bool:
        """Return ``True`` when the PR was created or updated within the inclusive range."""

        low, high = since.isoformat(), until.isoformat()
        return any(low <= stamp[:10] <= high for stamp in (self.created_at, self.updated_at) if stamp)


def _run_cli(args: Sequence[str], cwd: Path) -> "subprocess.CompletedProcess[str]":
    LOGGER.debug("Running %s", " ".join(args))
    try:
        process = subprocess.run(list(args), cwd=cwd, capture_output=True, text=False, check=False)
    except FileNotFoundError as error:
        raise ForgeError(f"{args[0]} executable not found on PATH") from error
    stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
    stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
    return subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)


class ForgeProvider:
    """Common plumbing for forge CLIs; subclasses provide the argument lists."""

    name = "forge"
    executable = ""
    install_hint = ""

    def __init__(self, root: Path | str | None = None, *, runner: CommandRunner = _run_cli) -> None:
        self.root = Path(root or Path.cwd()).resolve()
        self._runner = runner

    def _call(self, *args: str, check: bool = True) -> "subprocess.CompletedProcess[str]":
        result = self._runner([self.executable, *args], self.root)
        if check and result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip() or "unknown error"
            raise ForgeError(f"{self.executable} {' '.join(args[:2])} failed: {message}")
        return result

    def _call_json(self, *args: str) -> Any:
        result = self._call(*args)
        try:
            return json.loads(result.stdout or "null")
        except json.JSONDecodeError as error:
            raise ForgeError(f"{self.executable} returned invalid JSON: {error}") from error

    def check_cli(self) -> None:
        """Raise :class:`ForgeError` when the CLI is missing or unauthenticated."""

        if shutil.which(self.executable) is None:
            raise ForgeError(f"{self.executable} is not installed. {self.install_hint}".strip())
        status = self._call("auth", "status", check=False)
        if status.returncode != 0:
            raise ForgeError(f"{self.executable} is not authenticated. Run '{self.executable} auth login'.")

    # Subclasses implement the operations below.
    def default_branch(self) -> str:
        raise NotImplementedError

    def existing_pr_url(self, branch: str) -> str | None:
        raise NotImplementedError

    def create_pr(self, title: str, branch: str, base: str) -> None:
        raise NotImplementedError

    def open_pr(self) -> None:
        raise NotImplementedError

    def pr_details(self, number: str | None = None) -> PRDetails:
        raise NotImplementedError

    def get_issue(self, number: int) -> IssueDetails:
        raise NotImplementedError

    def update_issue_body(self, number: int, body: str) -> None:
        raise NotImplementedError

    def comment_issue(self, number: int, body: str) -> None:
        raise NotImplementedError

    def current_user(self) -> str:
        raise NotImplementedError

    def authored_prs(self, since: date, until: date) -> List[PRSummary]:
        """PRs by the current user created or updated between ``since`` and ``until``."""
        raise NotImplementedError

    def search_prs_by_date_range(self, start: date, end: date) -> List[PRSummary]:
        """PRs of this repository created between ``start`` and ``end``."""
        raise NotImplementedError


class GitHubProvider(ForgeProvider):
    name = "github"
    executable = "gh"
    install_hint = "Install it from https://cli.github.com/"

    def default_branch(self) -> str:
        try:
            payload = self._call_json("repo", "view", "--json", "defaultBranchRef")
        except ForgeError as error:
            LOGGER.warning("Could not determine default branch, falling back to '%s': %s", DEFAULT_BASE_BRANCH, error)
            return DEFAULT_BASE_BRANCH
        ref = (payload or {}).get("defaultBranchRef") or {}
        return ref.get("name") or DEFAULT_BASE_BRANCH

    def existing_pr_url(self, branch: str) -> str | None:
        try:
            payload = self._call_json(
                "pr", "list", "--state", "open", "--head", branch, "--json", "url", "--limit", "1"
            )
        except ForgeError as error:
            LOGGER.debug("PR lookup failed: %s", error)
            return None
        if isinstance(payload, list) and payload:
            return payload[0].get("url")
        return None

    def create_pr(self, title: str, branch: str, base: str) -> None:
        self._call("pr", "create", "--title", title, "--base", base, "--head", branch, "--web")

    def open_pr(self) -> None:
        self._call("pr", "view", "--web")

    def pr_details(self, number: str | None = None) -> PRDetails:
        args = ["pr", "view"]
        if number:
            args.append(number)
        data = self._call_json(*args, "--json", "number,title,url,baseRefName,headRefName")
        return PRDetails(
            number=str(data["number"]),
            title=data.get("title", ""),
            url=data.get("url", ""),
            base_branch=data.get("baseRefName", ""),
            head_branch=data.get("headRefName", ""),
        )

    def get_issue(self, number: int) -> IssueDetails:
        try:
            data = self._call_json(
                "issue", "view", str(number), "--json", "number,title,body,labels,assignees,milestone"
            )
        except ForgeError as error:
            raise ForgeError(
                f"Could not fetch issue #{number}. Make sure it exists and you have access to it."
            ) from error
        assignees = data.get("assignees") or []
        return IssueDetails(
            number=data["number"],
            title=data.get("title", ""),
            body=data.get("body") or "",
            labels=[label["name"] for label in data.get("labels") or []],
            assignee=assignees[0]["login"] if assignees else None,
            milestone=(data.get("milestone") or {}).get("title"),
        )

    def update_issue_body(self, number: int, body: str) -> None:
        self._call("issue", "edit", str(number), "--body", body)

    def comment_issue(self, number: int, body: str) -> None:
        self._call("issue", "comment", str(number), "--body", body)

    # ------------------------------------------------------------- activity
    def current_user(self) -> str:
        return self._call("api", "user", "--jq", ".login").stdout.strip()

    def authored_prs(self, since: date, until: date) -> List[PRSummary]:
        user = self.current_user()
        payload = self._call_json(
            "search", "prs", f"--author={user}",
            "--json", "number,title,url,state,author,createdAt,updatedAt,repository",
            "--limit", str(SEARCH_LIMIT),
        )
        prs = [self._summary(item) for item in payload or []]
        return [pr for pr in prs if pr.touched_between(since, until)]

    def search_prs_by_date_range(self, start: date, end: date) -> List[PRSummary]:
        payload = self._call_json(
            "pr", "list", "--state", "all",
            "--search", f"created:{start.isoformat()}..{end.isoformat()}",
            "--json", "number,title,url,state,author,createdAt,updatedAt",
            "--limit", str(SEARCH_LIMIT),
        )
        return [self._summary(item) for item in payload or []]

    @staticmethod
    def _summary(data: Dict[str, Any]) -> PRSummary:
        return PRSummary(
            number=str(data["number"]),
            title=data.get("title", ""),
            url=data.get("url", ""),
            state=str(data.get("state", "")).lower(),
            author=(data.get("author") or {}).get("login", ""),
            created_at=data.get("createdAt") or "",
            updated_at=data.get("updatedAt") or "",
            repository=(data.get("repository") or {}).get("nameWithOwner"),
        )


class GitLabProvider(ForgeProvider):
    name = "gitlab"
    executable = "glab"
    install_hint = "Install it from https://gitlab.com/gitlab-org/cli"

    def default_branch(self) -> str:
        try:
            payload = self._call_json("repo", "view", "-F", "json")
        except ForgeError as error:
            LOGGER.warning("Could not determine default branch, falling back to '%s': %s", DEFAULT_BASE_BRANCH, error)
            return DEFAULT_BASE_BRANCH
        return (payload or {}).get("default_branch") or DEFAULT_BASE_BRANCH

    def existing_pr_url(self, branch: str) -> str | None:
        try:
            payload = self._call_json("mr", "list", "-s", "opened", "--source-branch", branch, "-F", "json")
        except ForgeError as error:
            LOGGER.debug("MR lookup failed: %s", error)
            return None
        entry = payload[0] if isinstance(payload, list) and payload else payload
        if isinstance(entry, dict):
            return entry.get("web_url")
        return None

    def create_pr(self, title: str, branch: str, base: str) -> None:
        self._call(
            "mr", "create", "--title", title, "--target-branch", base,
            "--source-branch", branch, "--description", "", "--web",
        )

    def open_pr(self) -> None:
        self._call("mr", "view", "--web")

    def pr_details(self, number: str | None = None) -> PRDetails:
        args = ["mr", "view"]
        if number:
            args.append(number)
        data = self._call_json(*args, "-F", "json")
        return PRDetails(
            number=str(data["iid"]),
            title=data.get("title", ""),
            url=data.get("web_url", ""),
            base_branch=data.get("target_branch", ""),
            head_branch=data.get("source_branch", ""),
        )

    def get_issue(self, number: int) -> IssueDetails:
        try:
            data = self._call_json("issue", "view", str(number), "-F", "json")
        except ForgeError as error:
            raise ForgeError(
                f"Could not fetch issue #{number}. Make sure it exists and you have access to it."
            ) from error
        return IssueDetails(
            number=data["iid"],
            title=data.get("title", ""),
            body=data.get("description") or "",
            labels=list(data.get("labels") or []),
            assignee=(data.get("assignee") or {}).get("username"),
            milestone=(data.get("milestone") or {}).get("title"),
        )

    def update_issue_body(self, number: int, body: str) -> None:
        self._call("issue", "update", str(number), "--description", body)

    def comment_issue(self, number: int, body: str) -> None:
        self._call("issue", "note", str(number), "--message", body)

    # ------------------------------------------------------------- activity
    def current_user(self) -> str:
        data = self._call_json("api", "user")
        return (data or {}).get("username", "")

    def authored_prs(self, since: date, until: date) -> List[PRSummary]:
        payload = self._call_json(
            "api",
            "merge_requests?scope=created_by_me&state=all"
            f"&updated_after={since.isoformat()}T00:00:00Z&per_page={PAGE_SIZE}",
        )
        prs = [self._summary(item) for item in payload or []]
        return [pr for pr in prs if pr.touched_between(since, until)]

    def search_prs_by_date_range(self, start: date, end: date) -> List[PRSummary]:
        payload = self._call_json(
            "api",
            "projects/:id/merge_requests?state=all"
            f"&created_after={start.isoformat()}T00:00:00Z"
            f"&created_before={end.isoformat()}T23:59:59Z&per_page={PAGE_SIZE}",
        )
        return [self._summary(item) for item in payload or []]

    @staticmethod
    def _summary(data: Dict[str, Any]) -> PRSummary:
        state = str(data.get("state", "")).lower()
        return PRSummary(
            number=str(data["iid"]),
            title=data.get("title", ""),
            url=data.get("web_url", ""),
            state=_GITLAB_STATES.get(state, state),
            author=(data.get("author") or {}).get("username", ""),
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
            repository=(data.get("references") or {}).get("full"),
        )


def provider_name_for_remote(remote_url: str | None) -> str:
    """Return ``"gitlab"`` for GitLab remotes and ``"github"`` otherwise."""

    if remote_url and "gitlab" in remote_url.lower():
        return GitLabProvider.name
    return GitHubProvider.name


def detect_provider(
    remote_url: str | None,
    root: Path | str | None = None,
    *,
    runner: CommandRunner = _run_cli,
) -> ForgeProvider:
    """Pick the forge wrapper matching ``remote_url``."""

    if provider_name_for_remote(remote_url) == GitLabProvider.name:
        return GitLabProvider(root, runner=runner)
    return GitHubProvider(root, runner=runner)


__all__ = [
    "CommandRunner",
    "DEFAULT_BASE_BRANCH",
    "ForgeError",
    "ForgeProvider",
    "GitHubProvider",
    "GitLabProvider",
    "IssueDetails",
    "PRDetails",
    "PRSummary",
    "detect_provider",
    "provider_name_for_remote",
]
