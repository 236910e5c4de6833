"""Comment override gate for workflows triggered by external contributors.

Workflows on ``pull_request_target`` run with a privileged token, and GitHub
offers no button to approve such runs for forks. Instead, a repository owner
who is also an admin in the reviewer policy comments the trigger phrase on
the pull request's current head commit.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from prgate_core.errors import (
    CommentRejected,
    FutureComment,
    MissingTriggerPhrase,
    NotAnAdmin,
    NotRepositoryOwner,
    PolicyViolation,
    StaleComment,
)
from prgate_core.models import OWNER, Comment, PullRequestContext
from prgate_core.policy import ReviewerPolicy

logger = logging.getLogger(__name__)

DEFAULT_TRIGGER_PHRASE = "run ci"


def authorize(
    pr: PullRequestContext,
    policy: ReviewerPolicy,
    comment: Comment,
    now: datetime | None = None,
    trigger_phrase: str = DEFAULT_TRIGGER_PHRASE,
) -> None:
    """Raise a CommentRejected subclass unless ``comment`` authorizes the run.

    ``now`` is optional; when given, comments dated after it are rejected.
    """
    if comment.commit_id != pr.head_sha:
        raise StaleComment(
            f"comment by {comment.author} was made on {comment.commit_id[:7]}, not on head {pr.head_sha[:7]}"
        )
    if trigger_phrase not in comment.body:
        raise MissingTriggerPhrase(f"comment by {comment.author} does not contain {trigger_phrase!r}")
    if comment.author_association != OWNER:
        raise NotRepositoryOwner(
            f"{comment.author} is {comment.author_association}, only {OWNER} may approve workflow runs"
        )
    if comment.author not in policy.admins:
        raise NotAnAdmin(f"{comment.author} is not allowed to approve workflow runs")
    if now is not None and comment.created_at > now:
        raise FutureComment(
            f"comment by {comment.author} is dated {comment.created_at.isoformat()}, after {now.isoformat()}"
        )


def find_authorizing_comment(
    pr: PullRequestContext,
    policy: ReviewerPolicy,
    comments: Iterable[Comment],
    now: datetime | None = None,
    trigger_phrase: str = DEFAULT_TRIGGER_PHRASE,
) -> Comment:
    """Return the first comment that authorizes the run."""
    for comment in comments:
        try:
            authorize(pr, policy, comment, now=now, trigger_phrase=trigger_phrase)
        except CommentRejected as e:
            logger.debug("Comment %s", e)
            continue
        logger.info("Workflow run on %s approved by %s", pr, comment.author)
        return comment
    raise PolicyViolation("workflow runs have not been approved for this pull request")
