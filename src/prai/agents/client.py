"""Subprocess client for AI agent CLIs (``claude``, ``gemini``, ``cursor-agent``)."""

from __future__ import annotations

import json
import logging
import re
import shutil
import subprocess
from typing import Callable, List, Optional, Sequence, Type, TypeVar

from pydantic import ValidationError
from pydantic.type_adapter import TypeAdapter

__all__ = [
    "AgentClient",
    "AgentError",
    "AgentInvocationError",
    "AgentResponseFormatError",
    "AgentUnavailableError",
    "LANGUAGE_PROMPTS",
    "create_language_prompt",
    "extract_json_from_output",
]

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

CaptureRunner = Callable[[Sequence[str], str], "subprocess.CompletedProcess[str]"]
InteractiveRunner = Callable[[Sequence[str]], int]

LANGUAGE_PROMPTS = {
    "en": (
        "Please respond in English.",
        "Please provide your response in English.",
    ),
    "zh-TW": (
        "請用繁體中文回應。",
        "請用繁體中文提供你的回應。",
    ),
}

_INSTALL_HINTS = {
    "claude": "Install Claude Code: https://claude.ai/code",
    "gemini": "Install Gemini CLI: https://github.com/google-gemini/gemini-cli",
    "cursor-agent": "Install Cursor CLI: https://cursor.com/cli",
}

_YOLO_FLAGS = {
    "claude": ["--dangerously-skip-permissions"],
    "gemini": ["--yolo"],
    "cursor-agent": ["--force"],
}


class AgentError(RuntimeError):
    """Base error raised for AI agent failures."""


class AgentUnavailableError(AgentError):
    """Raised when the agent executable cannot be found."""


class AgentInvocationError(AgentError):
    """Raised when the agent process exits with a non-zero status."""


class AgentResponseFormatError(AgentError):
    """Raised when the agent output does not contain the expected JSON."""


def create_language_prompt(prompt: str, language: str) -> str:
    """Wrap ``prompt`` with response-language instructions."""

    instruction, response_format = LANGUAGE_PROMPTS.get(language, LANGUAGE_PROMPTS["en"])
    return f"IMPORTANT: {instruction}\n\n{prompt}\n\n{response_format}"


def extract_json_from_output(output: str) -> str:
    """Return the text between the first ``{`` and the last ``}``."""

    first = output.find("{")
    last = output.rfind("}")
    if first == -1 or last == -1 or first >= last:
        raise AgentResponseFormatError("No valid JSON object found in AI response")
    return output[first : last + 1]


def _normalise_json_string(payload: str) -> str:
    """Normalise typographic characters agents like to emit."""
    translation = {
        0x201C: '"',
        0x201D: '"',
        0x2018: "'",
        0x2019: "'",
        0x00A0: " ",
        0xFEFF: "",
    }
    return payload.translate(str.maketrans(translation))


def _strip_trailing_commas(payload: str) -> str:
    return re.sub(r",(\s*[}\]])", r"\1", payload)


def _decode_json(candidate: str) -> object:
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass
    repaired = _strip_trailing_commas(_normalise_json_string(candidate))
    try:
        return json.loads(repaired)
    except json.JSONDecodeError as error:
        snippet = candidate[:200]
        raise AgentResponseFormatError(f"Agent returned invalid JSON: {snippet}") from error


def _run_captured(command: Sequence[str], stdin: str) -> "subprocess.CompletedProcess[str]":
    process = subprocess.run(
        list(command),
        input=stdin.encode("utf-8"),
        capture_output=True,
        check=False,
    )
    stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
    stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
    return subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)


def _run_interactive(command: Sequence[str]) -> int:
    return subprocess.run(list(command), check=False).returncode


class AgentClient:
    """Invoke the configured agent CLI with a prompt."""

    def __init__(
        self,
        agent: str,
        *,
        model: Optional[str] = None,
        language: str = "en",
        yolo: bool = False,
        runner: CaptureRunner = _run_captured,
        interactive_runner: InteractiveRunner = _run_interactive,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        if agent not in _YOLO_FLAGS:
            raise ValueError(f"Unsupported AI agent: {agent}")
        self.agent = agent
        self.model = model
        self.language = language
        self.yolo = yolo
        self._runner = runner
        self._interactive_runner = interactive_runner
        self._which = which

    # ------------------------------------------------------------ commands
    def _base_command(self) -> List[str]:
        command = [self.agent]
        if self.agent == "cursor-agent":
            command.append("--print")
        if self.yolo:
            command.extend(_YOLO_FLAGS[self.agent])
        if self.model:
            command.extend(["--model", self.model])
        return command

    def capture_command(self) -> List[str]:
        """Command used when the prompt is piped on stdin and output captured."""
        return self._base_command()

    def interactive_command(self, prompt: str) -> List[str]:
        """Command used when the agent takes over the terminal."""
        command = [self.agent]
        if self.yolo:
            command.extend(_YOLO_FLAGS[self.agent])
        if self.model:
            command.extend(["--model", self.model])
        if self.agent == "gemini":
            command.append("--prompt-interactive")
        command.append(prompt)
        return command

    def check_available(self) -> None:
        if self._which(self.agent) is None:
            raise AgentUnavailableError(f"{self.agent} CLI not found. {_INSTALL_HINTS[self.agent]}")

    def _prepare(self, prompt: str, use_language: bool) -> str:
        return create_language_prompt(prompt, self.language) if use_language else prompt

    # ---------------------------------------------------------- invocation
    def invoke(self, prompt: str, *, use_language: bool = True) -> str:
        """Run the agent non-interactively and return its trimmed stdout."""

        self.check_available()
        command = self.capture_command()
        LOGGER.debug("Invoking %s (model=%s)", self.agent, self.model or "default")
        result = self._runner(command, self._prepare(prompt, use_language))
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise AgentInvocationError(f"{self.agent} exited with code {result.returncode}: {detail}")
        return (result.stdout or "").strip()

    def invoke_interactive(self, prompt: str, *, use_language: bool = True) -> None:
        """Hand the terminal to the agent with ``prompt`` as the opening message."""

        self.check_available()
        exit_code = self._interactive_runner(self.interactive_command(self._prepare(prompt, use_language)))
        if exit_code != 0:
            raise AgentInvocationError(f"{self.agent} exited with code {exit_code}")

    def invoke_json(self, prompt: str, response_model: Type[T], *, use_language: bool = True) -> T:
        """Run the agent and validate the embedded JSON object against ``response_model``."""

        output = self.invoke(prompt, use_language=use_language)
        payload = _decode_json(extract_json_from_output(output))
        try:
            return TypeAdapter(response_model).validate_python(payload)
        except ValidationError as error:
            raise AgentResponseFormatError(f"Agent response failed validation: {error}") from error
