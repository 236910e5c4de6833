"""Repository host capability and its GitHub implementation.

The decision logic only talks to ``RepositoryHost``. ``GitHubHost`` is the
PyGithub-backed implementation used in CI; tests substitute an in-memory one.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, TypeVar

import requests
from github import Auth, Github, GithubException, UnknownObjectException

from prgate_core.errors import ExternalServiceError, OperationTimeout, ValidationError
from prgate_core.gh.events import make_pull_request
from prgate_core.models import (
    Comment,
    CommitVerification,
    PullRequestContext,
    Review,
    Workflow,
    WorkflowRun,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

GITHUB_API_HOSTNAME = "api.github.com"
SCHEME = "https"

DEFAULT_TIMEOUT = 60.0


class RepositoryHost(ABC):
    """Everything prgate needs from the repository host, and nothing more."""

    @abstractmethod
    def list_reviews(self, owner: str, repo: str, number: int) -> list[Review]:
        """Return all reviews of a pull request in the order GitHub returns them."""

    @abstractmethod
    def list_comments(self, owner: str, repo: str, number: int) -> list[Comment]:
        """Return the review comments of a pull request."""

    @abstractmethod
    def compare_commits(self, owner: str, repo: str, base: str, head: str) -> int:
        """Return the number of files changed between two commits."""

    @abstractmethod
    def get_commit_verification(self, owner: str, repo: str, sha: str) -> CommitVerification:
        """Return the signature verification metadata of a commit."""

    @abstractmethod
    def dismiss_review(self, owner: str, repo: str, number: int, review_id: int, message: str) -> None:
        pass

    @abstractmethod
    def list_workflows(self, owner: str, repo: str) -> list[Workflow]:
        pass

    @abstractmethod
    def list_workflow_runs(
        self, owner: str, repo: str, workflow_id: int, branch: str | None = None
    ) -> list[WorkflowRun]:
        """Return runs of a workflow, optionally restricted to one branch."""

    @abstractmethod
    def delete_workflow_run(self, owner: str, repo: str, run_id: int) -> None:
        pass

    @abstractmethod
    def rerun_workflow_run(self, owner: str, repo: str, run_id: int) -> None:
        pass

    @abstractmethod
    def list_open_pull_requests(self, owner: str, repo: str) -> list[PullRequestContext]:
        pass

    @abstractmethod
    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestContext:
        pass

    @abstractmethod
    def request_reviewers(self, owner: str, repo: str, number: int, reviewers: list[str]) -> None:
        pass

    @abstractmethod
    def user_exists(self, login: str) -> bool:
        pass


class Deadline:
    """Wall-clock budget shared by all host calls of one invocation."""

    def __init__(self, seconds: float = DEFAULT_TIMEOUT, clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    def check(self, operation: str) -> None:
        if self.remaining() <= 0:
            raise OperationTimeout(
                f"{operation}: deadline of {self.seconds:g}s exceeded", operation=operation
            )


def workflow_run_url(owner: str, repo: str, run_id: int) -> str:
    return f"{SCHEME}://{GITHUB_API_HOSTNAME}/repos/{owner}/{repo}/actions/runs/{run_id}"


class GitHubHost(RepositoryHost):
    """RepositoryHost on top of PyGithub.

    Retries are disabled: a failed call surfaces as ExternalServiceError and
    the next CI event re-runs the whole check.
    """

    def __init__(self, token: str, deadline: Deadline | None = None, client: Github | None = None):
        self.deadline = deadline or Deadline()
        self._auth = Auth.Token(token)
        self._client = client
        self._gh = client

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _call(self, operation: str, fn: Callable[[], T]) -> T:
        """Run ``fn`` against the API, mapping failures to ExternalServiceError.

        ``fn`` must fully materialize paginated results, since pages are only
        fetched while iterating. Each operation gets a client whose socket
        timeout is the time left on the deadline.
        """
        self.deadline.check(operation)
        self._gh = self._client or self._connect()
        try:
            return fn()
        except GithubException as e:
            message = e.data.get("message") if isinstance(e.data, dict) else e.data
            raise ExternalServiceError(f"{operation}: {e.status} {message}", operation=operation) from e
        except requests.Timeout as e:
            raise OperationTimeout(f"{operation}: {e}", operation=operation) from e
        except requests.RequestException as e:
            raise ExternalServiceError(f"{operation}: {e}", operation=operation) from e

    def _connect(self) -> Github:
        return Github(auth=self._auth, timeout=self.deadline.remaining(), retry=None)

    def _repo(self, owner: str, repo: str):
        return self._gh.get_repo(f"{owner}/{repo}", lazy=True)

    @staticmethod
    def _to_pull_request(pr) -> PullRequestContext:
        base_repo = pr.base.repo if pr.base else None
        return make_pull_request(
            number=pr.number,
            author=pr.user.login if pr.user else None,
            repo_owner=base_repo.owner.login if base_repo and base_repo.owner else None,
            repo_name=base_repo.name if base_repo else None,
            head_sha=pr.head.sha if pr.head else None,
            base_sha=pr.base.sha if pr.base else None,
            branch_name=pr.head.ref if pr.head else None,
        )

    @staticmethod
    def _to_review(review) -> Review:
        return Review(
            reviewer=review.user.login if review.user else None,
            state=review.state,
            commit_id=review.commit_id,
            id=review.id,
            submitted_at=review.submitted_at,
        )

    @staticmethod
    def _to_comment(comment) -> Comment:
        association = comment.raw_data.get("author_association")
        if comment.user is None or not association or not comment.commit_id or comment.created_at is None:
            raise ValidationError(f"pull request comment {comment.id} is missing required fields")
        return Comment(
            author=comment.user.login,
            author_association=association,
            commit_id=comment.commit_id,
            body=comment.body or "",
            created_at=comment.created_at,
        )

    # ------------------------------------------------------------------ #
    # RepositoryHost                                                       #
    # ------------------------------------------------------------------ #

    def list_reviews(self, owner, repo, number):
        return self._call(
            f"list reviews of {owner}/{repo}#{number}",
            lambda: [self._to_review(r) for r in self._repo(owner, repo).get_pull(number).get_reviews()],
        )

    def list_comments(self, owner, repo, number):
        return self._call(
            f"list comments of {owner}/{repo}#{number}",
            lambda: [self._to_comment(c) for c in self._repo(owner, repo).get_pull(number).get_review_comments()],
        )

    def compare_commits(self, owner, repo, base, head):
        return self._call(
            f"compare {base[:7]}...{head[:7]} in {owner}/{repo}",
            lambda: len(list(self._repo(owner, repo).compare(base, head).files)),
        )

    def get_commit_verification(self, owner, repo, sha):
        def fetch():
            commit = self._repo(owner, repo).get_commit(sha)
            verification = commit.commit.raw_data.get("verification") or {}
            return CommitVerification(payload=verification.get("payload"), verified=verification.get("verified"))

        return self._call(f"get commit {sha[:7]} in {owner}/{repo}", fetch)

    def dismiss_review(self, owner, repo, number, review_id, message):
        self._call(
            f"dismiss review {review_id} on {owner}/{repo}#{number}",
            lambda: self._repo(owner, repo).get_pull(number).get_review(review_id).dismiss(message),
        )

    def list_workflows(self, owner, repo):
        return self._call(
            f"list workflows of {owner}/{repo}",
            lambda: [Workflow(id=w.id, name=w.name) for w in self._repo(owner, repo).get_workflows()],
        )

    def list_workflow_runs(self, owner, repo, workflow_id, branch=None):
        def fetch():
            workflow = self._repo(owner, repo).get_workflow(workflow_id)
            runs = workflow.get_runs(branch=branch) if branch else workflow.get_runs()
            return [
                WorkflowRun(id=r.id, workflow_id=r.workflow_id, branch=r.head_branch, created_at=r.created_at)
                for r in runs
            ]

        return self._call(f"list runs of workflow {workflow_id} in {owner}/{repo}", fetch)

    def delete_workflow_run(self, owner, repo, run_id):
        # Raw request: the delete endpoint is addressed directly on the API host.
        url = workflow_run_url(owner, repo, run_id)
        self._call(
            f"delete run {run_id} in {owner}/{repo}",
            lambda: self._gh.requester.requestJsonAndCheck("DELETE", url),
        )

    def rerun_workflow_run(self, owner, repo, run_id):
        def rerun():
            if not self._repo(owner, repo).get_workflow_run(run_id).rerun():
                raise ExternalServiceError(f"GitHub refused to re-run run {run_id}", operation="rerun")

        self._call(f"re-run run {run_id} in {owner}/{repo}", rerun)

    def list_open_pull_requests(self, owner, repo):
        def fetch():
            pulls = []
            for pr in self._repo(owner, repo).get_pulls(state="open"):
                try:
                    pulls.append(self._to_pull_request(pr))
                except ValidationError as e:
                    logger.warning("Skipping pull request #%s of %s/%s: %s", pr.number, owner, repo, e)
            return pulls

        return self._call(f"list open pull requests of {owner}/{repo}", fetch)

    def get_pull_request(self, owner, repo, number):
        return self._call(
            f"get pull request {owner}/{repo}#{number}",
            lambda: self._to_pull_request(self._repo(owner, repo).get_pull(number)),
        )

    def request_reviewers(self, owner, repo, number, reviewers):
        self._call(
            f"request reviewers on {owner}/{repo}#{number}",
            lambda: self._repo(owner, repo).get_pull(number).create_review_request(reviewers=list(reviewers)),
        )

    def user_exists(self, login):
        def lookup():
            try:
                return self._gh.get_user(login).id is not None
            except UnknownObjectException:
                return False

        return self._call(f"look up user {login}", lookup)
