"""Wiring shared by all commands: host, policy, pull request and error reporting."""

from __future__ import annotations

import logging
from contextlib import contextmanager

import click
from rich.console import Console
from rich.markup import escape

from prgate_core.bot import Evaluation
from prgate_core.config import Settings
from prgate_core.errors import ConfigurationError, PolicyViolation, PrGateError
from prgate_core.gh.events import load_event, pull_request_from_event
from prgate_core.gh.host import Deadline, GitHubHost
from prgate_core.policy import load_policy

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)


class CommandFailed(click.ClickException):
    """A failed CI step. Policy violations show in yellow, anything else in red."""

    def __init__(self, message: str, style: str = "red"):
        super().__init__(message)
        self.style = style

    def show(self, file=None):
        err_console.print(f"[{self.style}]Error: {escape(self.format_message())}[/{self.style}]", soft_wrap=True)


def build_host(config: dict) -> GitHubHost:
    token = config.get("github_token")
    if not token:
        raise click.UsageError("No GitHub token found. Pass --token, set GITHUB_TOKEN or run `gh auth login` first.")
    settings = Settings.from_config(config)
    return GitHubHost(token, deadline=Deadline(settings.timeout))


def build_evaluation(config: dict, host: GitHubHost, event: dict | None = None) -> Evaluation:
    """Resolve the reviewer policy and the pull request of the triggering event."""
    settings = Settings.from_config(config)
    policy = load_policy(config.get("reviewers"), host=host)
    if event is None:
        event = load_event(config.get("event_path"))
    pull = pull_request_from_event(event, host=host)
    logger.debug("Evaluating %s authored by %s at %s", pull, pull.author, pull.head_sha[:7])
    return Evaluation(host=host, policy=policy, pull=pull, settings=settings)


@contextmanager
def reporting():
    """Turn prgate errors into a failed CI step carrying the error message."""
    try:
        yield
    except ConfigurationError as e:
        raise click.UsageError(str(e)) from e
    except PolicyViolation as e:
        raise CommandFailed(str(e), style="yellow") from e
    except PrGateError as e:
        raise CommandFailed(str(e)) from e
