"""Commit verification and approval invalidation for external contributors.

Approvals on a pull request from an external contributor are only valid for
the commit they were given on. The one exception is an empty commit created
and signed by GitHub itself (e.g. "Update branch" from the web UI), which
cannot introduce new code.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Sequence

from prgate_core.errors import CommitNotVerified
from prgate_core.models import APPROVED, PullRequestContext, Review

if TYPE_CHECKING:
    from prgate_core.gh.host import RepositoryHost

logger = logging.getLogger(__name__)

# Committer line GitHub writes into the signed payload of web-flow commits.
GITHUB_COMMIT_MARKER = "GitHub <noreply@github.com>"


def has_new_commit(head_sha: str, reviews: Iterable[Review]) -> bool:
    """Return True if any review was made against a commit other than head_sha."""
    return any(review.commit_id != head_sha for review in reviews)


def verify_safe_commit(host: RepositoryHost, pr: PullRequestContext) -> None:
    """Raise CommitNotVerified unless the head commit is empty and signed by GitHub."""
    changed = host.compare_commits(pr.repo_owner, pr.repo_name, pr.base_sha, pr.head_sha)
    if changed != 0:
        raise CommitNotVerified("detected file change")

    verification = host.get_commit_verification(pr.repo_owner, pr.repo_name, pr.head_sha)
    if (
        verification.payload is not None
        and GITHUB_COMMIT_MARKER in verification.payload
        and verification.verified is True
    ):
        logger.debug("Head commit %s of %s is an empty GitHub-signed commit", pr.head_sha[:7], pr)
        return
    raise CommitNotVerified("commit is not verified and/or is not signed by GitHub")


def dismiss_message(required: Sequence[str]) -> str:
    mentions = " ".join(f"@{login}" for login in required)
    return f"new commit pushed, please re-review {mentions}".rstrip()


def invalidate_approvals(
    host: RepositoryHost,
    pr: PullRequestContext,
    reviews: Iterable[Review],
    required: Sequence[str],
) -> list[int]:
    """Dismiss every approving review and return the dismissed review ids.

    Stops at the first failed dismissal. Re-running is safe: dismissed
    reviews are no longer APPROVED the next time they are fetched.
    """
    message = dismiss_message(required)
    dismissed = []
    for review in reviews:
        if review.state != APPROVED:
            continue
        host.dismiss_review(pr.repo_owner, pr.repo_name, pr.number, review.id, message)
        logger.info("Dismissed approval %s by %s on %s", review.id, review.reviewer, pr)
        dismissed.append(review.id)
    return dismissed
