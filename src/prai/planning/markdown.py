"""Markdown plan parsing.

A plan document is a loosely structured markdown file: numbered items,
``## Step N`` headings or bullets mark step boundaries, prose lines become the
step description, and fenced code blocks supply the command to run. The
parser is a two-state scanner (outside/inside a fence) that builds one step
at a time and finalises it on the next boundary or at end of input.

Writes to a step's ``type`` happen in scan order: a ``create``/``edit`` file
reference sets a file type, and a later fence close in the same step
overwrites it (and vice versa).
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .schema import ImplementationPlan, PlanStep, StepType

LOGGER = logging.getLogger(__name__)

FENCE = "```"
SHELL_FENCE_LANGUAGES = frozenset({"bash", "sh", "shell"})

_NUMBERED_ITEM_RE = re.compile(r"^\d+\.\s")
_HEADING_STEP_RE = re.compile(r"^#{2,}\s*(?:step\s*)?(\d+|\w+)", re.IGNORECASE)
_BULLET_STEP_RE = re.compile(r"^[-*]\s*(?:step\s*)?(\d+|\w+)", re.IGNORECASE)

_TITLE_HEADING_RE = re.compile(r"^#{2,}\s*")
_TITLE_NUMBER_RE = re.compile(r"^\d+\.\s*")
_TITLE_BULLET_RE = re.compile(r"^[-*]\s*")
_TITLE_STEP_RE = re.compile(r"^(?:step\s*)?(\d+)\.?\s*", re.IGNORECASE)
_TITLE_SEPARATOR_RE = re.compile(r"^[:\-]\s*")
_TITLE_EMPHASIS_RE = re.compile(r"^[*`]+|[*`]+$")

_FILE_REFERENCE_RE = re.compile(
    r"(?:create|edit|modify|update)\s+(?:file\s+)?`?([^`\s]+\.[a-zA-Z0-9]+)`?",
    re.IGNORECASE,
)


class _ScanState(Enum):
    SCANNING = "scanning"
    IN_FENCE = "in_fence"


@dataclass(slots=True)
class _StepBuilder:
    """Mutable accumulator for the step currently being parsed."""

    number: int
    title: str
    type: StepType = StepType.MANUAL
    description_lines: List[str] = field(default_factory=list)
    pending_break: bool = False
    command: Optional[str] = None
    file_path: Optional[str] = None
    content: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)

    def add_description(self, line: str) -> None:
        if self.pending_break and self.description_lines:
            self.description_lines.append("")
        self.pending_break = False
        self.description_lines.append(line)

    def mark_blank(self) -> None:
        if self.description_lines:
            self.pending_break = True

    def build(self) -> PlanStep:
        description = "\n".join(self.description_lines) or None
        return PlanStep(
            number=self.number,
            title=self.title,
            type=self.type,
            description=description,
            command=self.command,
            file_path=self.file_path,
            content=self.content,
            params=dict(self.params),
        )


def is_step_boundary(line: str) -> bool:
    """Return ``True`` when the trimmed ``line`` opens a new step."""
    return bool(
        _NUMBERED_ITEM_RE.match(line)
        or _HEADING_STEP_RE.match(line)
        or _BULLET_STEP_RE.match(line)
    )


def extract_step_title(line: str) -> str:
    """Strip heading, list and ``Step N`` markup from a boundary line."""
    title = _TITLE_HEADING_RE.sub("", line)
    title = _TITLE_NUMBER_RE.sub("", title)
    title = _TITLE_BULLET_RE.sub("", title)
    title = _TITLE_STEP_RE.sub("", title)
    title = _TITLE_SEPARATOR_RE.sub("", title)
    title = _TITLE_EMPHASIS_RE.sub("", title.strip()).strip()
    if title:
        return title
    bare = _TITLE_BULLET_RE.sub("", _TITLE_HEADING_RE.sub("", line)).strip()
    return bare or line.strip()


def infer_step_type(language: str, command: str) -> StepType:
    """Infer the executable type of a fenced block.

    Only shell fences are inspected; the checks run in priority order, so a
    command starting with ``npm `` is ``npm`` even if it mentions tests.
    """
    if language.strip().lower() not in SHELL_FENCE_LANGUAGES:
        return StepType.COMMAND

    lowered = command.strip().lower()
    if lowered.startswith("git "):
        return StepType.GIT
    if lowered.startswith(("npm ", "yarn ", "pnpm ")):
        return StepType.NPM
    if any(keyword in lowered for keyword in ("test", "jest", "vitest")):
        return StepType.TEST
    if any(keyword in lowered for keyword in ("build", "webpack", "vite")):
        return StepType.BUILD
    if lowered.startswith("mkdir"):
        return StepType.MKDIR
    return StepType.COMMAND


def mkdir_target(command: str) -> Optional[str]:
    """Return the directory operand of a ``mkdir`` command, if one is present."""
    first_line = command.strip().splitlines()[0] if command.strip() else ""
    try:
        tokens = shlex.split(first_line)
    except ValueError:
        tokens = first_line.split()
    operands = [token for token in tokens[1:] if not token.startswith("-")]
    return operands[-1] if operands else None


def parse_markdown_plan(markdown_text: str) -> List[PlanStep]:
    """Convert a markdown plan document into ordered :class:`PlanStep` records.

    Returns an empty list when the document contains no step boundaries.
    """
    steps: List[PlanStep] = []
    state = _ScanState.SCANNING
    fence_language = ""
    fence_lines: List[str] = []
    current: Optional[_StepBuilder] = None

    def finalise() -> None:
        if current is not None and current.title:
            steps.append(current.build())

    for raw_line in (markdown_text or "").splitlines():
        stripped = raw_line.strip()

        if state is _ScanState.IN_FENCE:
            if stripped.startswith(FENCE):
                body = "\n".join(fence_lines).strip()
                if current is None:
                    LOGGER.debug("Discarding %s fence outside of any step", fence_language or "plain")
                elif body:
                    current.command = body
                    current.type = infer_step_type(fence_language, body)
                    if current.type is StepType.MKDIR and not current.file_path:
                        current.file_path = mkdir_target(body)
                state = _ScanState.SCANNING
                fence_language = ""
                fence_lines = []
            else:
                fence_lines.append(raw_line)
            continue

        if stripped.startswith(FENCE):
            state = _ScanState.IN_FENCE
            fence_language = stripped[len(FENCE):].strip()
            fence_lines = []
            continue

        if is_step_boundary(stripped):
            finalise()
            current = _StepBuilder(number=len(steps) + 1, title=extract_step_title(stripped))
            continue

        if current is None:
            continue
        if not stripped:
            current.mark_blank()
            continue

        current.add_description(stripped)
        reference = _FILE_REFERENCE_RE.search(stripped)
        if reference:
            current.file_path = reference.group(1)
            if "create" in stripped.lower():
                current.type = StepType.CREATE_FILE
            else:
                current.type = StepType.EDIT_FILE

    if state is _ScanState.IN_FENCE:
        LOGGER.debug("Plan ended inside an unterminated %s fence", fence_language or "plain")
    finalise()
    return steps


def steps_from_implementation_plan(plan: ImplementationPlan) -> List[PlanStep]:
    """Turn the tasks of an AI implementation plan into manual steps."""
    steps: List[PlanStep] = []
    for task in plan.tasks:
        title = task.title.strip()
        if not title:
            continue
        steps.append(
            PlanStep(
                number=len(steps) + 1,
                title=title,
                type=StepType.MANUAL,
                description=task.description.strip() or None,
                params={"priority": task.priority, "estimated_time": task.estimated_time},
            )
        )
    return steps


def _quoted(text: str) -> List[str]:
    """Blockquote every line so free text never reads as a step boundary or fence."""
    return [f"> {line.strip()}" if line.strip() else ">" for line in text.strip().splitlines()]


def render_markdown_plan(plan: ImplementationPlan, *, heading: str = "Implementation Plan") -> str:
    """Render ``plan`` as markdown; each task becomes a ``## Step N`` section.

    Overview and task descriptions are written as blockquotes, so the result
    parses back into exactly one step per task.
    """
    lines: List[str] = [f"# {heading}", ""]
    if plan.overview.strip():
        lines.extend(_quoted(plan.overview))
        lines.append("")
    if plan.suggested_branch_name.strip():
        lines.extend([f"Suggested branch: `{plan.suggested_branch_name.strip()}`", ""])

    # Preamble lines precede the first boundary and must not look like bullets.
    for label, items in (("Prerequisites", plan.prerequisites), ("Testing strategy", plan.testing_strategy)):
        if items:
            lines.append(f"{label}:")
            lines.extend(f"> {item}" for item in items)
            lines.append("")

    for index, task in enumerate(plan.tasks, start=1):
        lines.append(f"## Step {index}: {task.title.strip()}")
        meta = f"Priority: {task.priority}"
        if task.estimated_time:
            meta += f" | Estimate: {task.estimated_time}"
        lines.append(meta)
        if task.description.strip():
            lines.extend(_quoted(task.description))
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


__all__ = [
    "extract_step_title",
    "infer_step_type",
    "is_step_boundary",
    "mkdir_target",
    "parse_markdown_plan",
    "render_markdown_plan",
    "steps_from_implementation_plan",
]
