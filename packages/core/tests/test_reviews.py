"""Tests for review aggregation and approval evaluation."""

from datetime import datetime, timedelta, timezone

import pytest

from prgate_core.errors import ApprovalPending, PolicyViolation, ValidationError
from prgate_core.models import APPROVED, CHANGES_REQUESTED, Review
from prgate_core.reviews import ApprovalResult, aggregate, check_approvals, evaluate, waiting_message

T0 = datetime(2021, 9, 27, 9, 57, tzinfo=timezone.utc)
SHA = "a" * 40


def make_review(reviewer, state=APPROVED, minutes=0, review_id=None, commit_id=SHA):
    return Review(
        reviewer=reviewer,
        state=state,
        commit_id=commit_id,
        id=review_id if review_id is not None else minutes + 1,
        submitted_at=T0 + timedelta(minutes=minutes),
    )


# ---------------------------------------------------------------------------
# aggregate
# ---------------------------------------------------------------------------


class TestAggregate:
    def test_keeps_most_recent_review_per_reviewer(self):
        reviews = [
            make_review("bar", CHANGES_REQUESTED, minutes=1),
            make_review("bar", APPROVED, minutes=3),
            make_review("bar", CHANGES_REQUESTED, minutes=2),
        ]
        latest = aggregate(reviews)
        assert list(latest) == ["bar"]
        assert latest["bar"].submitted_at == T0 + timedelta(minutes=3)

    def test_most_recent_wins_regardless_of_order(self):
        reviews = [make_review("bar", APPROVED, minutes=5), make_review("bar", CHANGES_REQUESTED, minutes=1)]
        assert aggregate(reviews)["bar"].state == APPROVED

    def test_one_entry_per_reviewer(self):
        reviews = [make_review("a", minutes=1), make_review("b", minutes=2), make_review("a", minutes=3)]
        assert set(aggregate(reviews)) == {"a", "b"}

    def test_last_seen_wins_on_tie(self):
        reviews = [make_review("a", APPROVED, review_id=1), make_review("a", CHANGES_REQUESTED, review_id=2)]
        assert aggregate(reviews)["a"].id == 2

    def test_empty(self):
        assert aggregate([]) == {}

    @pytest.mark.parametrize("field", ["reviewer", "state", "commit_id", "id", "submitted_at"])
    def test_missing_field_fails_whole_aggregation(self, field):
        values = {
            "reviewer": "b",
            "state": APPROVED,
            "commit_id": SHA,
            "id": 7,
            "submitted_at": T0,
        }
        values[field] = None
        broken = Review(**values)
        with pytest.raises(ValidationError, match=field):
            aggregate([make_review("a"), broken])


# ---------------------------------------------------------------------------
# evaluate / check_approvals
# ---------------------------------------------------------------------------


class TestEvaluate:
    def test_approved_when_all_required_approved(self):
        latest = aggregate([make_review("bar"), make_review("baz", minutes=1)])
        result = evaluate(latest, ["bar", "baz"])
        assert result == ApprovalResult(approved=True, waiting_on=())
        assert result.approved
        assert result.waiting_on == ()

    def test_waiting_on_preserves_required_order(self):
        latest = aggregate([make_review("b")])
        result = evaluate(latest, ["d", "b", "a", "c"])
        assert not result.approved
        assert result.waiting_on == ("d", "a", "c")

    def test_changes_requested_is_not_approval(self):
        latest = aggregate([make_review("bar", CHANGES_REQUESTED)])
        assert evaluate(latest, ["bar"]).waiting_on == ("bar",)

    def test_later_changes_requested_overrides_approval(self):
        latest = aggregate([make_review("bar", APPROVED, minutes=1), make_review("bar", CHANGES_REQUESTED, minutes=2)])
        assert not evaluate(latest, ["bar"]).approved

    def test_outcome_independent_of_required_order(self):
        latest = aggregate([make_review("a"), make_review("b", CHANGES_REQUESTED, minutes=1)])
        assert evaluate(latest, ["a", "b"]).approved == evaluate(latest, ["b", "a"]).approved

    def test_reviews_from_others_are_ignored(self):
        latest = aggregate([make_review("random")])
        assert evaluate(latest, ["bar"]).waiting_on == ("bar",)


class TestCheckApprovals:
    def test_no_reviews_at_all(self):
        with pytest.raises(PolicyViolation, match="no reviews"):
            check_approvals({}, ["bar"])

    def test_reviews_but_none_from_required(self):
        latest = aggregate([make_review("random")])
        with pytest.raises(ApprovalPending) as exc_info:
            check_approvals(latest, ["bar"])
        assert str(exc_info.value) == "required reviewers have not yet approved, waiting on an approval from bar"
        assert exc_info.value.waiting_on == ("bar",)

    def test_passes_when_approved(self):
        check_approvals(aggregate([make_review("bar")]), ["bar"])

    def test_empty_requirements_pass_with_any_review(self):
        check_approvals(aggregate([make_review("random", CHANGES_REQUESTED)]), [])


class TestWaitingMessage:
    def test_one(self):
        assert waiting_message(["a"]) == "waiting on an approval from a"

    def test_two(self):
        assert waiting_message(["a", "b"]) == "waiting for approvals from a and b"

    def test_three(self):
        assert waiting_message(["a", "b", "c"]) == "waiting for approvals from a, b, and c"

    def test_four(self):
        assert waiting_message(["a", "b", "c", "d"]) == "waiting for approvals from a, b, c, and d"

    def test_none(self):
        assert waiting_message([]) == ""
