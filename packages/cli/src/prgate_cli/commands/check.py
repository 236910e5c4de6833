"""check and assign commands: review requirements for the triggering pull request."""

from __future__ import annotations

import click
from rich.console import Console

from prgate_core import bot
from prgate_cli.session import build_evaluation, build_host, reporting

console = Console()


@click.command("check")
@click.pass_context
def check_cmd(ctx):
    """Check that the required reviewers approved the pull request.

    Run on pull_request, pull_request_review and push events. For external
    contributors, approvals given before a new, non-empty commit are
    dismissed and the step fails.
    """
    config = ctx.obj["config"]
    with reporting():
        ev = build_evaluation(config, build_host(config))
        console.print(f"Checking reviewers for [bold]{ev.pull}[/bold]")
        bot.check(ev)
    console.print("[green]Check completed: all required reviewers approved.[/green]")


@click.command("assign")
@click.pass_context
def assign_cmd(ctx):
    """Request reviews from the required reviewers of the pull request author."""
    config = ctx.obj["config"]
    with reporting():
        ev = build_evaluation(config, build_host(config))
        assigned = bot.assign(ev)
    if assigned:
        console.print(f"[green]Assigned {', '.join(assigned)} to {ev.pull}.[/green]")
    else:
        console.print(f"[yellow]No reviewers to assign to {ev.pull}.[/yellow]")
