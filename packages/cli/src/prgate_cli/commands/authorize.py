"""authorize command: comment override gate for external contributors."""

from __future__ import annotations

from datetime import datetime, timezone

import click
from rich.console import Console

from prgate_core import bot
from prgate_core.gh.events import comment_from_event, load_event
from prgate_cli.session import build_evaluation, build_host, reporting

console = Console()


@click.command("authorize")
@click.option(
    "--from-event",
    is_flag=True,
    help="Only consider the comment in the triggering event instead of every comment on the pull request.",
)
@click.pass_context
def authorize_cmd(ctx, from_event: bool):
    """Allow the rest of a pull_request_target workflow to run.

    Internal contributors always pass. For everybody else, a repository owner
    listed as a default reviewer must comment the trigger phrase on the
    current head commit.
    """
    config = ctx.obj["config"]
    with reporting():
        event = load_event(config.get("event_path"))
        ev = build_evaluation(config, build_host(config), event=event)
        comment = comment_from_event(event) if from_event else None
        approved_by = bot.authorize_comment(ev, now=datetime.now(timezone.utc), comment=comment)

    if approved_by is None:
        console.print(f"[green]{ev.pull.author} is an internal contributor, no approval needed.[/green]")
    else:
        console.print(f"[green]Workflow run approved by {approved_by.author}.[/green]")
