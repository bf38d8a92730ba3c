"""Minimal git helpers
The helpers below cover branch lookup, branch creation and renaming, diff
retrieval, committing and reading the author's recent history, which is all
the naming, PR and summary workflows need.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

import logging
import subprocess

LOGGER = logging.getLogger(__name__)

_FIELD_SEPARATOR = "\x1f"
_LOG_FORMAT = _FIELD_SEPARATOR.join(("%H", "%s", "%an", "%ai"))
SHORT_HASH_LENGTH = 7


class GitError(RuntimeError):
    """Raised when a git command fails or the repository cannot be used."""


@dataclass(frozen=True, slots=True)
class CommitInfo:
    """A commit as listed by ``git log``, with a short hash."""

    hash: str
    message: str
    author: str
    date: str


class GitRepository:
    """Lightweight wrapper around ``git`` commands."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()
        if not (self.root / ".git").exists():
            raise GitError(f"Not a git repository: {self.root}")

    @classmethod
    def discover(cls, start: Path | str | None = None) -> "GitRepository":
        """Locate the nearest git repository starting from ``start``."""

        path = Path(start or Path.cwd()).resolve()
        for candidate in (path, *path.parents):
            if (candidate / ".git").exists():
                return cls(candidate)
        raise GitError(f"Unable to locate a git repository from {path}")

    # ------------------------------------------------------------------ git IO
    def _run_git(self, args: Sequence[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
        command = ["git", *args]
        LOGGER.debug("git %s", " ".join(args))
        try:
            process = subprocess.run(
                command,
                cwd=self.root,
                capture_output=True,
                text=False,
                check=False,
            )
        except FileNotFoundError as error:
            raise GitError("git executable not found on PATH") from error
        stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
        stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
        result = subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)
        if check and result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip() or "unknown git error"
            raise GitError(f"git {' '.join(args)} failed: {message}")
        return result

    # -------------------------------------------------------------- branches
    def current_branch(self) -> str | None:
        """Return the current branch name or ``None`` when detached."""

        result = self._run_git(["branch", "--show-current"], check=False)
        if result.returncode != 0:
            return None
        branch = result.stdout.strip()
        return branch or None

    def branch_exists(self, name: str) -> bool:
        """Return ``True`` when a local branch called ``name`` exists."""

        result = self._run_git(["show-ref", "--verify", "--quiet", f"refs/heads/{name}"], check=False)
        return result.returncode == 0

    def create_branch(self, name: str, base: str | None = None) -> None:
        """Create ``name`` from ``base`` (or ``HEAD``) and switch to it."""

        args: List[str] = ["checkout", "-b", name]
        if base:
            args.append(base)
        self._run_git(args, check=True)

    def switch_branch(self, name: str) -> None:
        """Check out an existing branch."""

        self._run_git(["checkout", name], check=True)

    def rename_current_branch(self, new_name: str, *, force: bool = False) -> None:
        """Rename the checked-out branch, overwriting ``new_name`` when ``force``."""

        self._run_git(["branch", "-M" if force else "-m", new_name], check=True)

    def config_value(self, key: str) -> str | None:
        """Return a git config value or ``None`` when unset."""

        result = self._run_git(["config", "--get", key], check=False)
        value = result.stdout.strip()
        return value or None

    def remote_url(self, remote: str = "origin") -> str | None:
        """Return the fetch URL configured for ``remote``."""

        result = self._run_git(["remote", "get-url", remote], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    # ----------------------------------------------------------- diff helpers
    def diff(self, *args: str) -> str:
        """Return ``git diff`` output for ``args`` (defaults to the working tree)."""

        result = self._run_git(["diff", *args], check=True)
        return result.stdout

    def staged_diff(self) -> str:
        """Return the diff of staged changes."""

        return self.diff("--cached")

    def has_staged_changes(self) -> bool:
        """Return ``True`` when the index differs from ``HEAD``."""

        result = self._run_git(["diff", "--cached", "--quiet"], check=False)
        return result.returncode != 0

    def pending_diff(self) -> str:
        """Return staged changes, falling back to unstaged ones."""

        staged = self.staged_diff().strip()
        if staged:
            return staged
        return self.diff().strip()

    # --------------------------------------------------------------- commits
    def commit(self, message: str, *, stage_all_if_empty: bool = True) -> str | None:
        """Create a commit from the index.

        When nothing is staged and ``stage_all_if_empty`` is set, every change
        is staged first. Returns the new commit SHA, or ``None`` when there was
        nothing to commit.
        """

        if stage_all_if_empty and not self.has_staged_changes():
            self._run_git(["add", "-A"], check=True)

        commit = self._run_git(["commit", "-m", message], check=False)
        if commit.returncode != 0:
            output = "\n".join(part for part in (commit.stdout.strip(), commit.stderr.strip()) if part)
            if "nothing to commit" in output.lower() or "nothing added to commit" in output.lower():
                return None
            raise GitError(f"git commit failed: {output}")

        rev = self._run_git(["rev-parse", "HEAD"], check=True)
        return rev.stdout.strip()

    # --------------------------------------------------------------- history
    def commits_in_range(self, since: str, until: str, *, author: str | None = None) -> List[CommitInfo]:
        """Return non-merge commits made from ``since`` through the end of ``until``.

        Both bounds are ``YYYY-MM-DD`` dates. ``author`` defaults to the
        configured ``user.name``; with neither, every author is included.
        """

        author = author or self.config_value("user.name")
        args = [
            "log",
            f"--since={since} 00:00:00",
            f"--until={until} 23:59:59",
            f"--pretty=format:{_LOG_FORMAT}",
            "--no-merges",
        ]
        if author:
            args.append(f"--author={author}")
        result = self._run_git(args, check=False)
        if result.returncode != 0:
            if "does not have any commits" in result.stderr:
                return []
            message = result.stderr.strip() or "unknown git error"
            raise GitError(f"git log failed: {message}")

        commits: List[CommitInfo] = []
        for line in result.stdout.splitlines():
            fields = line.split(_FIELD_SEPARATOR)
            if len(fields) != 4:
                LOGGER.debug("Skipping malformed git log line: %r", line)
                continue
            sha, subject, name, stamp = (field.strip() for field in fields)
            commits.append(CommitInfo(hash=sha[:SHORT_HASH_LENGTH], message=subject, author=name, date=stamp))
        return commits


__all__ = ["CommitInfo", "GitError", "GitRepository"]
