"""Wrappers around the external command-line tools the workflows drive."""

from .forge import (
    ForgeError,
    ForgeProvider,
    GitHubProvider,
    GitLabProvider,
    IssueDetails,
    PRDetails,
    PRSummary,
    detect_provider,
)
from .shell import ShellResult, run_shell_command
from .vcs import CommitInfo, GitError, GitRepository

__all__ = [
    "CommitInfo",
    "ForgeError",
    "ForgeProvider",
    "GitError",
    "GitHubProvider",
    "GitLabProvider",
    "GitRepository",
    "IssueDetails",
    "PRDetails",
    "PRSummary",
    "ShellResult",
    "detect_provider",
    "run_shell_command",
]
