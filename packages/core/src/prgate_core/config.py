import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from prgate_core.errors import ConfigurationError

DEFAULT_CONFIG: dict = {
    "check_workflow": "Check",
    "assign_workflow": "Assign",
    "trigger_phrase": "run ci",
    "timeout": 60,  # seconds for the whole invocation
    "reviewers": None,  # JSON string or mapping; falls back to $PRGATE_REVIEWERS
}


@dataclass(frozen=True)
class Settings:
    """The part of the configuration the decision logic depends on."""

    check_workflow: str = DEFAULT_CONFIG["check_workflow"]
    assign_workflow: str = DEFAULT_CONFIG["assign_workflow"]
    trigger_phrase: str = DEFAULT_CONFIG["trigger_phrase"]
    timeout: float = DEFAULT_CONFIG["timeout"]

    @classmethod
    def from_config(cls, config: dict) -> "Settings":
        timeout = config.get("timeout", DEFAULT_CONFIG["timeout"])
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ConfigurationError(f"timeout must be a positive number of seconds, got {timeout!r}")
        for key in ("check_workflow", "assign_workflow", "trigger_phrase"):
            if not config.get(key):
                raise ConfigurationError(f"missing configuration value {key!r}")
        return cls(
            check_workflow=config["check_workflow"],
            assign_workflow=config["assign_workflow"],
            trigger_phrase=config["trigger_phrase"],
            timeout=timeout,
        )


def load_config(config_path: str = ".prgate.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prgate.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping")
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if not config.get("reviewers"):
        config["reviewers"] = os.environ.get("PRGATE_REVIEWERS")

    # Resolve credentials and CI context from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["event_path"] = os.environ.get("GITHUB_EVENT_PATH")
    config["repository"] = os.environ.get("GITHUB_REPOSITORY")

    return config


def split_repository(repository: Optional[str]) -> tuple[str, str]:
    """Split ``owner/name`` as found in $GITHUB_REPOSITORY."""
    if not repository:
        raise ConfigurationError("environment variable GITHUB_REPOSITORY is not set")
    parts = repository.split("/")
    if len(parts) != 2 or not all(parts):
        raise ConfigurationError(
            f"GITHUB_REPOSITORY {repository!r} is not in the correct format, the valid format is '<owner>/<name>'"
        )
    return parts[0], parts[1]
