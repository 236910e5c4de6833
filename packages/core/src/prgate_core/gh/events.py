"""Turn GitHub Actions webhook payloads into a PullRequestContext."""

from __future__ import annotations

import json
import re
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from prgate_core.errors import ConfigurationError, ValidationError
from prgate_core.models import Comment, PullRequestContext

if TYPE_CHECKING:
    from prgate_core.gh.host import RepositoryHost

# Action of issue_comment / pull_request_review_comment events.
CREATED = "created"

# Owner and repository names are interpolated into API paths.
_NAME_RE = re.compile(r"^[\w.-]+$")
_BRANCH_RE = re.compile(r"^[\w./-]+$")


def make_pull_request(
    number: int | None,
    author: str | None,
    repo_owner: str | None,
    repo_name: str | None,
    head_sha: str | None,
    base_sha: str | None,
    branch_name: str | None,
) -> PullRequestContext:
    """Validate raw pull request fields and build the context."""
    if not number:
        raise ValidationError("missing pull request number")
    missing = [
        label
        for label, value in (
            ("user login", author),
            ("repository owner", repo_owner),
            ("repository name", repo_name),
            ("head commit sha", head_sha),
            ("base commit sha", base_sha),
            ("branch name", branch_name),
        )
        if not value
    ]
    if missing:
        raise ValidationError(f"pull request #{number} is missing {missing[0]}")
    for label, value, pattern in (
        ("repository owner", repo_owner, _NAME_RE),
        ("repository name", repo_name, _NAME_RE),
        ("branch name", branch_name, _BRANCH_RE),
    ):
        if not pattern.match(value) or ".." in value:
            raise ValidationError(f"invalid {label} {value!r}: contains illegal characters")

    return PullRequestContext(
        author=author,
        repo_owner=repo_owner,
        repo_name=repo_name,
        number=int(number),
        head_sha=head_sha,
        base_sha=base_sha,
        branch_name=branch_name,
    )


def _get(data: dict, *keys):
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def load_event(path: str | None) -> dict:
    if not path:
        raise ConfigurationError("GITHUB_EVENT_PATH is not set")
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"event payload not found: {path}")
    try:
        return json.loads(p.read_text())
    except json.JSONDecodeError as e:
        raise ValidationError(f"event payload {path} is not valid JSON: {e}") from e


def pull_request_from_event(payload: dict, host: RepositoryHost | None = None) -> PullRequestContext:
    """Extract the pull request from a webhook payload.

    Comment events carry only the pull request number, so the rest is
    fetched through ``host``.
    """
    pull = payload.get("pull_request")
    if payload.get("action") == CREATED and not pull:
        number = _get(payload, "issue", "number")
        owner = _get(payload, "repository", "owner", "login")
        repo = _get(payload, "repository", "name")
        if not number or not owner or not repo:
            raise ValidationError("comment event is missing the pull request number or repository")
        if host is None:
            raise ConfigurationError("a GitHub client is required to resolve pull requests from comment events")
        return host.get_pull_request(owner, repo, number)

    if not pull:
        raise ValidationError("event payload does not contain a pull request")
    return make_pull_request(
        number=pull.get("number") or payload.get("number"),
        author=_get(pull, "user", "login"),
        repo_owner=_get(pull, "base", "repo", "owner", "login") or _get(payload, "repository", "owner", "login"),
        repo_name=_get(pull, "base", "repo", "name") or _get(payload, "repository", "name"),
        head_sha=_get(pull, "head", "sha"),
        base_sha=_get(pull, "base", "sha"),
        branch_name=_get(pull, "head", "ref"),
    )


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    # GitHub timestamps end in "Z", which fromisoformat only accepts from 3.11.
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def comment_from_event(payload: dict) -> Comment:
    """Build a Comment from a pull_request_review_comment payload."""
    raw = payload.get("comment")
    if not raw:
        raise ValidationError("event payload does not contain a comment")
    author = _get(raw, "user", "login")
    created_at = _parse_time(raw.get("created_at"))
    for label, value in (
        ("user login", author),
        ("author association", raw.get("author_association")),
        ("commit id", raw.get("commit_id")),
        ("creation time", created_at),
    ):
        if not value:
            raise ValidationError(f"comment is missing {label}")
    return Comment(
        author=author,
        author_association=raw["author_association"],
        commit_id=raw["commit_id"],
        body=raw.get("body") or "",
        created_at=created_at,
    )
