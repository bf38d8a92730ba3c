"""Shell command execution helpers used by plan steps."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ShellResult:
    """Captured outcome of a shell invocation."""

    command: str
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def failure_message(self) -> str:
        detail = self.stderr.strip() or self.stdout.strip()
        message = f"Command failed with exit code {self.exit_code}: {self.command}"
        if detail:
            message = f"{message}\n{detail}"
        return message


ShellRunner = Callable[[str, Path], ShellResult]


def _merge_env(extra: Mapping[str, str] | None) -> dict[str, str]:
    env = os.environ.copy()
    if extra:
        env.update({str(key): str(value) for key, value in extra.items()})
    return env


def run_shell_command(
    command: str,
    cwd: Path | str | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> ShellResult:
    """Run ``command`` through the system shell and capture its output."""
    workdir = Path(cwd) if cwd is not None else Path.cwd()
    LOGGER.debug("Running shell command in %s: %s", workdir, command)
    process = subprocess.run(  # noqa: S602 - plan commands are shell snippets
        command,
        shell=True,
        cwd=workdir,
        env=_merge_env(env),
        capture_output=True,
        text=False,
        check=False,
    )
    stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
    stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
    result = ShellResult(command=command, exit_code=process.returncode, stdout=stdout, stderr=stderr)
    LOGGER.debug("Shell command exited with %d", result.exit_code)
    return result


__all__ = ["ShellResult", "ShellRunner", "run_shell_command"]
