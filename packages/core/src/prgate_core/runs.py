"""Workflow-run reconciliation: drop superseded runs, re-trigger the latest one.

Only the most recent run of a workflow on a branch reflects the current state
of a pull request. Older runs are deleted so the checks tab never shows a
stale failure next to the current result.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from prgate_core.errors import NotFoundError, PrGateError, with_context
from prgate_core.models import Workflow, WorkflowRun

if TYPE_CHECKING:
    from prgate_core.gh.host import RepositoryHost

logger = logging.getLogger(__name__)


def find_workflow(host: RepositoryHost, owner: str, repo: str, name: str) -> Workflow:
    for workflow in host.list_workflows(owner, repo):
        if workflow.name == name:
            return workflow
    raise NotFoundError(f"workflow {name} not found in {owner}/{repo}")


def sorted_runs(
    host: RepositoryHost, owner: str, repo: str, workflow_id: int, branch: str | None = None
) -> list[WorkflowRun]:
    """Return the workflow's runs, oldest first."""
    runs = host.list_workflow_runs(owner, repo, workflow_id, branch)
    return sorted(runs, key=lambda run: run.created_at)


def prune(host: RepositoryHost, owner: str, repo: str, branch: str, workflow_name: str) -> list[int]:
    """Delete all runs of ``workflow_name`` on ``branch`` except the newest.

    Returns the ids of the deleted runs. The newest run is the one executing
    right now and is never touched, even if a deletion fails halfway.
    """
    workflow = find_workflow(host, owner, repo, workflow_name)
    runs = sorted_runs(host, owner, repo, workflow.id, branch)

    deleted = []
    for run in runs[:-1]:
        host.delete_workflow_run(owner, repo, run.id)
        logger.info("Deleted stale %s run %s on %s/%s:%s", workflow_name, run.id, owner, repo, branch)
        deleted.append(run.id)
    return deleted


def rerun(host: RepositoryHost, owner: str, repo: str, workflow_name: str, branch: str | None = None) -> int:
    """Re-run the most recent run of ``workflow_name`` and return its id."""
    workflow = find_workflow(host, owner, repo, workflow_name)
    runs = sorted_runs(host, owner, repo, workflow.id, branch)
    if not runs:
        raise NotFoundError(f"workflow run not found for {workflow_name} in {owner}/{repo}")

    latest = runs[-1]
    host.rerun_workflow_run(owner, repo, latest.id)
    logger.info("Re-running %s run %s in %s/%s", workflow_name, latest.id, owner, repo)
    return latest.id


def prune_for_repository(host: RepositoryHost, owner: str, repo: str, workflow_name: str) -> dict[int, list[int]]:
    """Prune stale runs for every open pull request in the repository.

    Runs from a cron workflow: events from forks get a read-only token, so
    their own check run cannot delete anything. Returns deleted run ids per
    pull request number.
    """
    deleted: dict[int, list[int]] = {}
    for pull in host.list_open_pull_requests(owner, repo):
        try:
            deleted[pull.number] = prune(host, pull.repo_owner, pull.repo_name, pull.branch_name, workflow_name)
        except PrGateError as e:
            raise with_context(e, f"pruning runs for {pull}") from e
    return deleted
