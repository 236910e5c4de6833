"""CLI entry point for prgate.

Commands:
  assign: request reviews from the required reviewers
  check: check required approvals (and invalidate stale ones)
  authorize: comment gate for workflows triggered by external contributors
  prune: delete superseded runs for the triggering pull request
  dismiss-runs: delete superseded runs for every open pull request
  rerun: re-run the latest check and assign runs
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.logging import RichHandler

from prgate_cli.commands.authorize import authorize_cmd
from prgate_cli.commands.check import assign_cmd, check_cmd
from prgate_cli.commands.runs import dismiss_runs_cmd, prune_cmd, rerun_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("prgate"),
    prog_name="prgate",
)
@click.option(
    "--config",
    "config_path",
    default=".prgate.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRGATE_CONFIG",
)
@click.option("--token", default=None, help="GitHub token. Defaults to $GITHUB_TOKEN or the gh CLI session.")
@click.option(
    "--reviewers",
    default=None,
    help='JSON object mapping authors to required reviewers, e.g. \'{"alice": ["bob"], "": ["admin"]}\'. '
    "The empty key holds the default reviewers.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every decision.")
@click.pass_context
def main(ctx: click.Context, config_path: str, token: str | None, reviewers: str | None, verbose: bool):
    """Review policy enforcement for GitHub Actions."""
    from prgate_core.config import load_config
    from prgate_cli.auth import resolve_github_token
    from prgate_cli.session import reporting

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", handlers=[RichHandler(show_path=False)])

    ctx.ensure_object(dict)

    with reporting():
        config = load_config(config_path, cli_overrides={"reviewers": reviewers})

    # Resolve token early so all subcommands share the same resolution.
    resolved = resolve_github_token(token)
    if resolved:
        config["github_token"] = resolved

    ctx.obj["config"] = config


main.add_command(assign_cmd)
main.add_command(check_cmd)
main.add_command(authorize_cmd)
main.add_command(prune_cmd)
main.add_command(dismiss_runs_cmd)
main.add_command(rerun_cmd)
