"""Workflow run commands: prune stale runs and re-run the latest ones."""

from __future__ import annotations

import click
from rich.console import Console

from prgate_core import bot
from prgate_core.config import Settings, split_repository
from prgate_cli.session import build_evaluation, build_host, reporting

console = Console()


@click.command("prune")
@click.option("--branch", default=None, help="Branch to prune. Defaults to the pull request branch.")
@click.option("--workflow", "workflow_name", default=None, help="Workflow name. Defaults to the check workflow.")
@click.pass_context
def prune_cmd(ctx, branch: str | None, workflow_name: str | None):
    """Delete superseded runs of a workflow for the triggering pull request."""
    config = ctx.obj["config"]
    with reporting():
        ev = build_evaluation(config, build_host(config))
        deleted = bot.prune_stale_runs(ev, branch=branch, workflow_name=workflow_name)
    console.print(f"Deleted {len(deleted)} stale run(s).")


@click.command("dismiss-runs")
@click.option(
    "--repo",
    "repository",
    default=None,
    help="Repository in owner/name format. Defaults to $GITHUB_REPOSITORY.",
)
@click.pass_context
def dismiss_runs_cmd(ctx, repository: str | None):
    """Delete stale check runs on every open pull request.

    Meant for a cron workflow: runs triggered from forks cannot delete their
    own stale runs.
    """
    config = ctx.obj["config"]
    with reporting():
        owner, repo = split_repository(repository or config.get("repository"))
        settings = Settings.from_config(config)
        deleted = bot.prune_stale_runs_for_repository(build_host(config), owner, repo, settings.check_workflow)

    total = sum(len(ids) for ids in deleted.values())
    console.print(f"Stale workflow run removal completed: {total} run(s) across {len(deleted)} pull request(s).")


@click.command("rerun")
@click.pass_context
def rerun_cmd(ctx):
    """Re-run the latest check and assign workflow runs."""
    config = ctx.obj["config"]
    with reporting():
        ev = build_evaluation(config, build_host(config))
        rerun_ids = bot.rerun_workflows(ev)
    console.print(f"Re-running workflow run(s) {', '.join(str(i) for i in rerun_ids)}.")
