"""User configuration stored as YAML under ``~/.git-pr-ai``."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .planning.executor import DEFAULT_BUILD_COMMAND, DEFAULT_TEST_COMMAND

LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PRAI_CONFIG"
DEFAULT_CONFIG_NAME = "config.yaml"

SUPPORTED_AGENTS = ("claude", "gemini", "cursor-agent")
SUPPORTED_LANGUAGES = ("en", "zh-TW")
COMMAND_NAMES = (
    "create_branch",
    "ai_commit",
    "pr_review",
    "update_pr_desc",
    "plan_issue",
    "take_issue",
)


def default_config_path() -> Path:
    """Return the config path, honouring ``PRAI_CONFIG`` when set."""

    override = os.getenv(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".git-pr-ai" / DEFAULT_CONFIG_NAME


@dataclass(slots=True)
class JiraConfig:
    base_url: str
    email: str
    api_token: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Optional["JiraConfig"]:
        base_url = str(data.get("base_url") or data.get("baseUrl") or "").strip()
        email = str(data.get("email") or "").strip()
        api_token = str(data.get("api_token") or data.get("apiToken") or "").strip()
        if not (base_url and email and api_token):
            LOGGER.warning("Ignoring incomplete jira section in configuration")
            return None
        return cls(base_url=base_url, email=email, api_token=api_token)


@dataclass(slots=True)
class PlanDefaults:
    default_test_command: str = DEFAULT_TEST_COMMAND
    default_build_command: str = DEFAULT_BUILD_COMMAND


@dataclass(slots=True)
class AppConfig:
    """Effective configuration for one invocation."""

    agent: str = "claude"
    language: str = "en"
    models: Dict[str, Dict[str, str]] = field(default_factory=dict)
    jira: Optional[JiraConfig] = None
    plan: PlanDefaults = field(default_factory=PlanDefaults)

    def __post_init__(self) -> None:
        if self.agent not in SUPPORTED_AGENTS:
            raise ValueError(
                f"Unsupported agent '{self.agent}'. Expected one of: {', '.join(SUPPORTED_AGENTS)}"
            )
        if self.language not in SUPPORTED_LANGUAGES:
            raise ValueError(
                f"Unsupported language '{self.language}'. Expected one of: {', '.join(SUPPORTED_LANGUAGES)}"
            )

    def model_for_command(self, command: str) -> str | None:
        """Return the model configured for ``command`` under the active agent."""

        return (self.models.get(command) or {}).get(self.agent)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AppConfig":
        models: Dict[str, Dict[str, str]] = {}
        for command, per_agent in (data.get("models") or {}).items():
            if isinstance(per_agent, Mapping):
                models[str(command)] = {str(agent): str(model) for agent, model in per_agent.items()}

        jira_data = data.get("jira")
        jira = JiraConfig.from_mapping(jira_data) if isinstance(jira_data, Mapping) else None

        plan_data = data.get("plan") or {}
        plan = PlanDefaults(
            default_test_command=str(plan_data.get("default_test_command") or DEFAULT_TEST_COMMAND),
            default_build_command=str(plan_data.get("default_build_command") or DEFAULT_BUILD_COMMAND),
        )
        return cls(
            agent=str(data.get("agent") or "claude"),
            language=str(data.get("language") or "en"),
            models=models,
            jira=jira,
            plan=plan,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "agent": self.agent,
            "language": self.language,
            "models": {command: dict(per_agent) for command, per_agent in self.models.items()},
            "plan": {
                "default_test_command": self.plan.default_test_command,
                "default_build_command": self.plan.default_build_command,
            },
        }
        if self.jira is not None:
            payload["jira"] = {
                "base_url": self.jira.base_url,
                "email": self.jira.email,
                "api_token": self.jira.api_token,
            }
        return payload


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration from ``config_path``; missing or broken files yield defaults."""

    path = config_path or default_config_path()
    if not path.exists():
        LOGGER.debug("No configuration at %s, using defaults", path)
        return AppConfig()

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as error:
        LOGGER.warning("Failed to parse %s, using default configuration: %s", path, error)
        return AppConfig()

    if not isinstance(data, dict):
        LOGGER.warning("Configuration in %s is not a mapping, using defaults", path)
        return AppConfig()

    return AppConfig.from_mapping(data)


def save_config(config: AppConfig, config_path: Path | None = None) -> Path:
    """Persist ``config`` with stable key ordering and return the path written."""

    path = config_path or default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config.to_dict(), handle, sort_keys=False)
    return path


__all__ = [
    "AppConfig",
    "COMMAND_NAMES",
    "CONFIG_ENV_VAR",
    "JiraConfig",
    "PlanDefaults",
    "SUPPORTED_AGENTS",
    "SUPPORTED_LANGUAGES",
    "default_config_path",
    "load_config",
    "save_config",
]
