"""Plan parsing and execution: markdown plans in, execution summaries out."""

from .executor import StepExecutor, StepOutcome, execute_step
from .markdown import (
    infer_step_type,
    parse_markdown_plan,
    render_markdown_plan,
    steps_from_implementation_plan,
)
from .runner import PlanRunner, PlanRunSummary, run_plan
from .schema import ExecutionResult, ImplementationPlan, PlanStep, PlanTask, StepType

__all__ = [
    "ExecutionResult",
    "ImplementationPlan",
    "PlanRunSummary",
    "PlanRunner",
    "PlanStep",
    "PlanTask",
    "StepExecutor",
    "StepOutcome",
    "StepType",
    "execute_step",
    "infer_step_type",
    "parse_markdown_plan",
    "render_markdown_plan",
    "run_plan",
    "steps_from_implementation_plan",
]
