"""Convenience exports for the AI agent CLI client."""

from .client import (
    AgentClient,
    AgentError,
    AgentInvocationError,
    AgentResponseFormatError,
    AgentUnavailableError,
    create_language_prompt,
    extract_json_from_output,
)

__all__ = [
    "AgentClient",
    "AgentError",
    "AgentInvocationError",
    "AgentResponseFormatError",
    "AgentUnavailableError",
    "create_language_prompt",
    "extract_json_from_output",
]
