"""Operations exposed to the CI trigger layer.

Each operation receives an ``Evaluation`` built once per invocation. It holds
no state that changes between calls, so the same value can be passed to
several operations, and tests can build one around a fake host.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from prgate_core import gate, integrity, reviews, runs
from prgate_core.config import Settings
from prgate_core.errors import CommitNotVerified, PrGateError, with_context
from prgate_core.gh.host import RepositoryHost
from prgate_core.models import Comment, PullRequestContext
from prgate_core.policy import ReviewerPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Evaluation:
    host: RepositoryHost
    policy: ReviewerPolicy
    pull: PullRequestContext
    settings: Settings = field(default_factory=Settings)


def check(ev: Evaluation) -> None:
    """Fail unless the pull request has every required approval.

    For internal contributors, stale runs of the check workflow are pruned
    first. Workflows triggered from forks lack the permission to do so, and
    rely on the ``dismiss-runs`` cron sweep instead.
    """
    pr = ev.pull
    if ev.policy.is_internal(pr.author):
        prune_stale_runs(ev)

    try:
        _check_reviews(ev)
    except PrGateError as e:
        raise with_context(e, f"checking {pr}") from e


def _check_reviews(ev: Evaluation) -> None:
    pr = ev.pull
    required = ev.policy.required_reviewers_for(pr.author)
    latest = reviews.aggregate(ev.host.list_reviews(pr.repo_owner, pr.repo_name, pr.number))

    logger.info("Checking if %s has approvals from the required reviewers %s", pr.author, list(required))
    reviews.check_approvals(latest, required)

    if ev.policy.is_internal(pr.author) or not integrity.has_new_commit(pr.head_sha, latest.values()):
        return

    try:
        integrity.verify_safe_commit(ev.host, pr)
    except CommitNotVerified:
        integrity.invalidate_approvals(ev.host, pr, latest.values(), required)
        raise


def assign(ev: Evaluation) -> list[str]:
    """Request reviews from the author's required reviewers and return them."""
    pr = ev.pull
    reviewers = [login for login in ev.policy.required_reviewers_for(pr.author) if login != pr.author]
    if not reviewers:
        logger.info("No reviewers to assign on %s", pr)
        return []
    try:
        ev.host.request_reviewers(pr.repo_owner, pr.repo_name, pr.number, reviewers)
    except PrGateError as e:
        raise with_context(e, f"assigning reviewers to {pr}") from e
    logger.info("Assigned %s to %s", ", ".join(reviewers), pr)
    return reviewers


def authorize_comment(ev: Evaluation, now: datetime | None = None, comment: Comment | None = None) -> Comment | None:
    """Fail unless the workflow run is approved for this pull request.

    Internal contributors need no approval (returns None). Otherwise either the
    given comment, or the first qualifying comment on the pull request, must
    pass the comment gate.
    """
    pr = ev.pull
    if ev.policy.is_internal(pr.author):
        return None

    phrase = ev.settings.trigger_phrase
    try:
        if comment is not None:
            gate.authorize(pr, ev.policy, comment, now=now, trigger_phrase=phrase)
            return comment
        comments = ev.host.list_comments(pr.repo_owner, pr.repo_name, pr.number)
        return gate.find_authorizing_comment(pr, ev.policy, comments, now=now, trigger_phrase=phrase)
    except PrGateError as e:
        raise with_context(e, f"authorizing workflow run for {pr}") from e


def prune_stale_runs(ev: Evaluation, branch: str | None = None, workflow_name: str | None = None) -> list[int]:
    pr = ev.pull
    branch = branch or pr.branch_name
    workflow_name = workflow_name or ev.settings.check_workflow
    try:
        return runs.prune(ev.host, pr.repo_owner, pr.repo_name, branch, workflow_name)
    except PrGateError as e:
        raise with_context(e, f"pruning stale {workflow_name} runs for {pr}") from e


def prune_stale_runs_for_repository(
    host: RepositoryHost, owner: str, repo: str, workflow_name: str = Settings.check_workflow
) -> dict[int, list[int]]:
    """Sweep every open pull request of a repository. Needs no pull request context."""
    return runs.prune_for_repository(host, owner, repo, workflow_name)


def rerun_workflows(ev: Evaluation) -> list[int]:
    """Re-run the latest check run, then the latest assign run."""
    pr = ev.pull
    rerun_ids = []
    for name in (ev.settings.check_workflow, ev.settings.assign_workflow):
        try:
            rerun_ids.append(runs.rerun(ev.host, pr.repo_owner, pr.repo_name, name))
        except PrGateError as e:
            raise with_context(e, f"re-running {name} for {pr}") from e
    return rerun_ids
