"""Snapshot types for pull request state fetched from GitHub.

Nothing here is persisted: every evaluation fetches fresh objects and
throws them away when the invocation ends.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

APPROVED = "APPROVED"
CHANGES_REQUESTED = "CHANGES_REQUESTED"
OWNER = "OWNER"


@dataclass(frozen=True)
class PullRequestContext:
    """The pull request a CI event refers to."""

    author: str
    repo_owner: str
    repo_name: str
    number: int
    head_sha: str
    base_sha: str
    branch_name: str

    @property
    def full_name(self) -> str:
        return f"{self.repo_owner}/{self.repo_name}"

    def __str__(self) -> str:
        return f"{self.full_name}#{self.number}"


@dataclass(frozen=True)
class Review:
    """A single submitted pull request review.

    Fields are Optional because GitHub occasionally omits them (e.g. a pending
    review has no submission time); ``reviews.aggregate`` rejects such reviews.
    """

    reviewer: str | None
    state: str | None
    commit_id: str | None
    id: int | None
    submitted_at: datetime | None


@dataclass(frozen=True)
class Comment:
    author: str
    author_association: str
    commit_id: str
    body: str
    created_at: datetime


@dataclass(frozen=True)
class Workflow:
    id: int
    name: str


@dataclass(frozen=True)
class WorkflowRun:
    id: int
    workflow_id: int
    branch: str
    created_at: datetime


@dataclass(frozen=True)
class CommitVerification:
    """The ``verification`` block GitHub attaches to a commit."""

    payload: str | None
    verified: bool | None
