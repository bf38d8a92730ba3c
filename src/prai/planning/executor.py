"""Single-step interpreter for parsed plans.

:class:`StepExecutor` dispatches on :class:`StepType` and always returns an
:class:`ExecutionResult`. Each handler reports through a :class:`StepOutcome`
value instead of raising, and the few I/O calls that can raise are converted
at the handler boundary.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

import typer

from ..tools.shell import ShellResult, ShellRunner, run_shell_command
from .schema import ExecutionResult, PlanStep, StepType, utc_now

LOGGER = logging.getLogger(__name__)

DEFAULT_TEST_COMMAND = "npm test"
DEFAULT_BUILD_COMMAND = "npm run build"

ManualConfirm = Callable[[PlanStep, int], bool]


@dataclass(slots=True)
class StepOutcome:
    """Result of a single handler before timing is attached."""

    ok: bool
    output: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, output: str) -> "StepOutcome":
        return cls(ok=True, output=output)

    @classmethod
    def failure(cls, error: str, output: Optional[str] = None) -> "StepOutcome":
        return cls(ok=False, output=output, error=error)


def prompt_manual_step(step: PlanStep, step_number: int) -> bool:
    """Ask the operator whether a manual step has been completed."""
    typer.echo(f"\nManual step {step_number}: {step.title}")
    if step.description:
        for line in step.description.splitlines():
            typer.echo(f"   {line}")
    return typer.confirm("Have you completed this manual step?", default=False)


class StepExecutor:
    """Run plan steps against a working directory."""

    def __init__(
        self,
        *,
        workdir: Path | str | None = None,
        shell: ShellRunner = run_shell_command,
        confirm_manual: ManualConfirm = prompt_manual_step,
        default_test_command: str = DEFAULT_TEST_COMMAND,
        default_build_command: str = DEFAULT_BUILD_COMMAND,
        dry_run: bool = False,
    ) -> None:
        self.workdir = Path(workdir or Path.cwd()).resolve()
        self._shell = shell
        self._confirm_manual = confirm_manual
        self._default_test_command = default_test_command
        self._default_build_command = default_build_command
        self.dry_run = dry_run
        self._handlers: Dict[StepType, Callable[[PlanStep, int], StepOutcome]] = {
            StepType.COMMAND: self._run_command,
            StepType.GIT: self._run_command,
            StepType.NPM: self._run_command,
            StepType.TEST: self._run_tests,
            StepType.BUILD: self._run_build,
            StepType.CREATE_FILE: self._create_file,
            StepType.EDIT_FILE: self._edit_file,
            StepType.DELETE_FILE: self._delete_file,
            StepType.MKDIR: self._make_directory,
            StepType.MANUAL: self._manual_step,
        }

    def execute(self, step: PlanStep, step_number: Optional[int] = None) -> ExecutionResult:
        """Run ``step`` and return its result; never raises."""
        number = step_number if step_number is not None else step.number
        started = time.monotonic()
        handler = self._handlers.get(step.type) if isinstance(step.type, StepType) else None

        if handler is None:
            outcome = StepOutcome.failure(f"Unknown step type: {step.type_label}")
        else:
            try:
                outcome = handler(step, number)
            except Exception as error:  # noqa: BLE001 - failures are reported through the result
                LOGGER.debug("Step %d raised %s", number, error, exc_info=True)
                outcome = StepOutcome.failure(str(error) or error.__class__.__name__)

        duration_ms = max(int((time.monotonic() - started) * 1000), 0)
        if outcome.ok:
            LOGGER.info("Step %d (%s) succeeded in %d ms", number, step.type_label, duration_ms)
        else:
            LOGGER.warning("Step %d (%s) failed: %s", number, step.type_label, outcome.error)
        return ExecutionResult(
            step=step,
            success=outcome.ok,
            duration_ms=duration_ms,
            timestamp=utc_now(),
            output=outcome.output,
            error=outcome.error,
        )

    # ---------------------------------------------------------------- shell
    def _shell_outcome(self, command: str) -> StepOutcome:
        if self.dry_run:
            return StepOutcome.success(f"Would run: {command}")
        try:
            result: ShellResult = self._shell(command, self.workdir)
        except OSError as error:
            return StepOutcome.failure(f"Unable to run command '{command}': {error}")
        if not result.ok:
            return StepOutcome.failure(result.failure_message(), output=result.stdout.strip() or None)
        return StepOutcome.success(result.stdout.strip())

    def _run_command(self, step: PlanStep, number: int) -> StepOutcome:
        command = (step.command or "").strip()
        if not command:
            return StepOutcome.failure(f"Step {number} ({step.type_label}) has no command to run")
        return self._shell_outcome(command)

    def _run_tests(self, step: PlanStep, number: int) -> StepOutcome:
        return self._shell_outcome((step.command or "").strip() or self._default_test_command)

    def _run_build(self, step: PlanStep, number: int) -> StepOutcome:
        return self._shell_outcome((step.command or "").strip() or self._default_build_command)

    # ----------------------------------------------------------------- files
    def _resolve(self, step: PlanStep, number: int) -> Path | StepOutcome:
        raw = (step.file_path or "").strip()
        if not raw:
            return StepOutcome.failure(f"Step {number} ({step.type_label}) is missing a file path")
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = self.workdir / path
        return path

    @staticmethod
    def _payload(step: PlanStep) -> str:
        return step.content or step.command or ""

    def _create_file(self, step: PlanStep, number: int) -> StepOutcome:
        target = self._resolve(step, number)
        if isinstance(target, StepOutcome):
            return target
        if self.dry_run:
            return StepOutcome.success(f"Would create file: {step.file_path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(self._payload(step), encoding="utf-8")
        except OSError as error:
            return StepOutcome.failure(f"Failed to create file {step.file_path}: {error}")
        return StepOutcome.success(f"Created file: {step.file_path}")

    def _edit_file(self, step: PlanStep, number: int) -> StepOutcome:
        target = self._resolve(step, number)
        if isinstance(target, StepOutcome):
            return target
        if not target.is_file():
            return StepOutcome.failure(f"File not found: {target}")
        if self.dry_run:
            return StepOutcome.success(f"Would edit file: {step.file_path}")
        try:
            target.write_text(self._payload(step), encoding="utf-8")
        except OSError as error:
            return StepOutcome.failure(f"Failed to edit file {step.file_path}: {error}")
        return StepOutcome.success(f"Edited file: {step.file_path}")

    def _delete_file(self, step: PlanStep, number: int) -> StepOutcome:
        target = self._resolve(step, number)
        if isinstance(target, StepOutcome):
            return target
        if not target.exists():
            LOGGER.warning("File not found (already deleted?): %s", step.file_path)
            return StepOutcome.success(f"File already absent: {step.file_path}")
        if self.dry_run:
            return StepOutcome.success(f"Would delete file: {step.file_path}")
        try:
            target.unlink()
        except OSError as error:
            return StepOutcome.failure(f"Failed to delete file {step.file_path}: {error}")
        return StepOutcome.success(f"Deleted file: {step.file_path}")

    def _make_directory(self, step: PlanStep, number: int) -> StepOutcome:
        target = self._resolve(step, number)
        if isinstance(target, StepOutcome):
            return target
        if self.dry_run:
            return StepOutcome.success(f"Would create directory: {step.file_path}")
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            return StepOutcome.failure(f"Failed to create directory {step.file_path}: {error}")
        return StepOutcome.success(f"Created directory: {step.file_path}")

    # ---------------------------------------------------------------- manual
    def _manual_step(self, step: PlanStep, number: int) -> StepOutcome:
        if self.dry_run:
            return StepOutcome.success(f"Would ask for confirmation: {step.title}")
        if self._confirm_manual(step, number):
            return StepOutcome.success("Completed by user")
        return StepOutcome.failure("Manual step was not completed", output="Skipped by user")


def execute_step(step: PlanStep, step_number: int, **executor_options: object) -> ExecutionResult:
    """Run one step with a throwaway :class:`StepExecutor`."""
    return StepExecutor(**executor_options).execute(step, step_number)  # type: ignore[arg-type]


__all__ = [
    "DEFAULT_BUILD_COMMAND",
    "DEFAULT_TEST_COMMAND",
    "ManualConfirm",
    "StepExecutor",
    "StepOutcome",
    "execute_step",
    "prompt_manual_step",
]
