"""Sequential plan runner with continue-or-abort handling on failures."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import typer

from .executor import StepExecutor
from .schema import ExecutionResult, PlanStep

LOGGER = logging.getLogger(__name__)

ContinueConfirm = Callable[[ExecutionResult], bool]
ResultCallback = Callable[[ExecutionResult], None]
StepCallback = Callable[[PlanStep, int, int], None]


def prompt_continue_after_failure(result: ExecutionResult) -> bool:
    """Ask the operator whether to continue after ``result`` failed."""
    return typer.confirm("Step failed. Do you want to continue with the remaining steps?", default=False)


@dataclass(slots=True)
class PlanRunSummary:
    """Results collected over one plan run."""

    results: List[ExecutionResult] = field(default_factory=list)
    success_count: int = 0
    failure_count: int = 0
    planned_steps: int = 0
    halted: bool = False

    @classmethod
    def from_results(cls, results: Sequence[ExecutionResult], *, planned_steps: Optional[int] = None) -> "PlanRunSummary":
        """Aggregate counts over ``results``; pure and repeatable."""
        successes = sum(1 for result in results if result.success)
        total_planned = len(results) if planned_steps is None else planned_steps
        return cls(
            results=list(results),
            success_count=successes,
            failure_count=len(results) - successes,
            planned_steps=total_planned,
            halted=len(results) < total_planned,
        )

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def ok(self) -> bool:
        return self.failure_count == 0 and not self.halted

    def format_summary(self) -> str:
        lines = [
            "Execution summary:",
            f"  Total steps: {self.total}",
            f"  Successful: {self.success_count}",
            f"  Failed: {self.failure_count}",
        ]
        if self.halted:
            lines.append(f"  Not run: {self.planned_steps - self.total}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "planned_steps": self.planned_steps,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "halted": self.halted,
            "results": [result.to_dict() for result in self.results],
        }


class PlanRunner:
    """Drive a :class:`StepExecutor` over a list of steps in sequence order."""

    def __init__(
        self,
        executor: StepExecutor,
        *,
        confirm_continue: ContinueConfirm = prompt_continue_after_failure,
        on_step_start: Optional[StepCallback] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> None:
        self._executor = executor
        self._confirm_continue = confirm_continue
        self._on_step_start = on_step_start
        self._on_result = on_result

    def run(self, steps: Sequence[PlanStep]) -> PlanRunSummary:
        """Execute ``steps`` in list order and return the collected summary.

        Execution order follows the sequence, not ``PlanStep.number``. After a
        failure the run stops unless ``confirm_continue`` returns ``True``.
        """
        summary = PlanRunSummary(planned_steps=len(steps))
        total = len(steps)

        for index, step in enumerate(steps, start=1):
            if self._on_step_start is not None:
                self._on_step_start(step, index, total)
            result = self._executor.execute(step, index)
            summary.results.append(result)
            if result.success:
                summary.success_count += 1
            else:
                summary.failure_count += 1
            if self._on_result is not None:
                self._on_result(result)

            if result.success or index == total:
                continue
            if not self._confirm_continue(result):
                LOGGER.info("Plan run stopped after step %d of %d", index, total)
                summary.halted = True
                break

        return summary


def run_plan(steps: Sequence[PlanStep], executor: StepExecutor, **runner_options: Any) -> PlanRunSummary:
    """Convenience wrapper around :class:`PlanRunner`."""
    return PlanRunner(executor, **runner_options).run(steps)


__all__ = [
    "ContinueConfirm",
    "PlanRunSummary",
    "PlanRunner",
    "prompt_continue_after_failure",
    "run_plan",
]
