"""Shared fixtures: an in-memory RepositoryHost and a sample pull request."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from prgate_core.errors import ExternalServiceError
from prgate_core.gh.host import RepositoryHost
from prgate_core.models import CommitVerification, PullRequestContext, Workflow, WorkflowRun

HEAD_SHA = "ec26c3e57ca3a959ca5aad62de7213c562f8c821"
BASE_SHA = "f95f852bd8fca8fcc58a9a2d6c842781e32a215e"
T0 = datetime(2021, 9, 27, 9, 57, tzinfo=timezone.utc)


class FakeHost(RepositoryHost):
    """Keeps repository state in plain attributes and records every mutation."""

    def __init__(self):
        self.reviews = []
        self.comments = []
        self.changed_files = 0
        self.verification = CommitVerification(payload=None, verified=None)
        self.workflows = [Workflow(id=1, name="Check"), Workflow(id=2, name="Assign")]
        self.runs: list[WorkflowRun] = []
        self.pulls: list[PullRequestContext] = []
        self.users: set[str] | None = None  # None means every login exists

        self.dismissed: list[tuple[int, str]] = []
        self.deleted: list[int] = []
        self.rerun: list[int] = []
        self.requested: list[list[str]] = []
        self.fail_on: dict[str, int | None] = {}

    def _maybe_fail(self, operation: str, item=None):
        if operation in self.fail_on and self.fail_on[operation] in (None, item):
            raise ExternalServiceError(f"{operation}: 500 boom", operation=operation)

    def list_reviews(self, owner, repo, number):
        self._maybe_fail("list_reviews")
        return list(self.reviews)

    def list_comments(self, owner, repo, number):
        self._maybe_fail("list_comments")
        return list(self.comments)

    def compare_commits(self, owner, repo, base, head):
        self._maybe_fail("compare_commits")
        return self.changed_files

    def get_commit_verification(self, owner, repo, sha):
        self._maybe_fail("get_commit_verification")
        return self.verification

    def dismiss_review(self, owner, repo, number, review_id, message):
        self._maybe_fail("dismiss_review", review_id)
        self.dismissed.append((review_id, message))

    def list_workflows(self, owner, repo):
        return list(self.workflows)

    def list_workflow_runs(self, owner, repo, workflow_id, branch=None):
        return [
            r
            for r in self.runs
            if r.workflow_id == workflow_id and (branch is None or r.branch == branch) and r.id not in self.deleted
        ]

    def delete_workflow_run(self, owner, repo, run_id):
        self._maybe_fail("delete_workflow_run", run_id)
        self.deleted.append(run_id)

    def rerun_workflow_run(self, owner, repo, run_id):
        self._maybe_fail("rerun_workflow_run", run_id)
        self.rerun.append(run_id)

    def list_open_pull_requests(self, owner, repo):
        return list(self.pulls)

    def get_pull_request(self, owner, repo, number):
        for pull in self.pulls:
            if pull.number == number:
                return pull
        raise ExternalServiceError("get pull request: 404 Not Found", operation="get_pull_request")

    def request_reviewers(self, owner, repo, number, reviewers):
        self._maybe_fail("request_reviewers")
        self.requested.append(list(reviewers))

    def user_exists(self, login):
        return self.users is None or login in self.users

    def add_run(self, run_id, branch="changes", workflow_id=1, minutes=0):
        self.runs.append(
            WorkflowRun(id=run_id, workflow_id=workflow_id, branch=branch, created_at=T0 + timedelta(minutes=minutes))
        )


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def pull():
    return PullRequestContext(
        author="Codertocat",
        repo_owner="Codertocat",
        repo_name="Hello-World",
        number=2,
        head_sha=HEAD_SHA,
        base_sha=BASE_SHA,
        branch_name="changes",
    )
