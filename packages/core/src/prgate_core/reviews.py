"""Review aggregation and approval evaluation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from prgate_core.errors import ApprovalPending, PolicyViolation, ValidationError
from prgate_core.models import APPROVED, Review

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("id", "state", "commit_id", "submitted_at", "reviewer")


@dataclass(frozen=True)
class ApprovalResult:
    approved: bool
    waiting_on: tuple[str, ...]


def validate_review(review: Review) -> None:
    for name in _REQUIRED_FIELDS:
        if getattr(review, name) is None:
            raise ValidationError(f"review {name} is missing. review: {review!r}")


def aggregate(reviews: Iterable[Review]) -> dict[str, Review]:
    """Return the most recent review per reviewer.

    All reviews are validated first, so a single malformed review fails the
    whole aggregation. When two reviews by the same reviewer share a
    timestamp, the one seen last wins.
    """
    reviews = list(reviews)
    for review in reviews:
        validate_review(review)

    latest: dict[str, Review] = {}
    for review in reviews:
        current = latest.get(review.reviewer)
        if current is None or review.submitted_at >= current.submitted_at:
            latest[review.reviewer] = review
    return latest


def evaluate(aggregated: dict[str, Review], required: Sequence[str]) -> ApprovalResult:
    waiting_on = tuple(
        login for login in required if login not in aggregated or aggregated[login].state != APPROVED
    )
    return ApprovalResult(approved=not waiting_on, waiting_on=waiting_on)


def waiting_message(waiting_on: Sequence[str]) -> str:
    """Compose the human-readable list of reviewers still to approve."""
    if not waiting_on:
        return ""
    if len(waiting_on) == 1:
        return f"waiting on an approval from {waiting_on[0]}"
    if len(waiting_on) == 2:
        return f"waiting for approvals from {waiting_on[0]} and {waiting_on[1]}"
    return f"waiting for approvals from {', '.join(waiting_on[:-1])}, and {waiting_on[-1]}"


def check_approvals(aggregated: dict[str, Review], required: Sequence[str]) -> None:
    """Raise a PolicyViolation unless every required reviewer has approved."""
    if not aggregated:
        raise PolicyViolation("pull request has no reviews")

    result = evaluate(aggregated, required)
    if not result.approved:
        raise ApprovalPending(
            f"required reviewers have not yet approved, {waiting_message(result.waiting_on)}",
            waiting_on=result.waiting_on,
        )
    logger.debug("All required reviewers approved: %s", ", ".join(required) or "(none)")
