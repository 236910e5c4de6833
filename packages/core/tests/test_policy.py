"""Tests for the reviewer policy."""

import json

import pytest

from prgate_core.errors import ConfigurationError
from prgate_core.policy import ReviewerPolicy, load_policy

RAW = {"foo": ["bar", "baz"], "internal-no-reviews": [], "": ["admin1", "admin2"]}


class TestReviewerPolicy:
    def test_known_author_gets_own_reviewers(self):
        policy = load_policy(RAW)
        assert policy.required_reviewers_for("foo") == ("bar", "baz")

    def test_unknown_author_gets_default_reviewers(self):
        policy = load_policy(RAW)
        assert policy.required_reviewers_for("stranger") == ("admin1", "admin2")

    def test_all_unknown_authors_share_the_default_set(self):
        policy = load_policy(RAW)
        assert policy.required_reviewers_for("a") == policy.required_reviewers_for("b")

    def test_explicit_entry_is_not_merged_with_defaults(self):
        policy = load_policy(RAW)
        assert "admin1" not in policy.required_reviewers_for("foo")

    def test_is_internal_depends_on_presence(self):
        policy = load_policy(RAW)
        assert policy.is_internal("foo")
        assert policy.is_internal("internal-no-reviews")
        assert not policy.is_internal("stranger")

    def test_empty_list_means_no_required_reviewers(self):
        policy = load_policy(RAW)
        assert policy.required_reviewers_for("internal-no-reviews") == ()

    def test_default_key_is_not_an_author(self):
        policy = load_policy(RAW)
        assert not policy.is_internal("")

    def test_admins_are_the_default_reviewers(self):
        assert load_policy(RAW).admins == ("admin1", "admin2")

    def test_empty_default_set_means_no_required_reviewers(self):
        policy = ReviewerPolicy(default_reviewers=(), reviewers={"foo": ("bar",)})
        assert policy.required_reviewers_for("stranger") == ()
        assert policy.admins == ()


class TestLoadPolicy:
    def test_accepts_json_string(self):
        policy = load_policy(json.dumps(RAW))
        assert policy.required_reviewers_for("foo") == ("bar", "baz")

    def test_missing_default_entry_raises(self):
        with pytest.raises(ConfigurationError, match="default reviewers"):
            load_policy({"foo": ["bar"]})

    def test_empty_default_entry_is_accepted(self):
        policy = load_policy({"alice": ["bob"], "": []})
        assert policy.default_reviewers == ()
        assert policy.required_reviewers_for("alice") == ("bob",)
        assert policy.required_reviewers_for("mallory") == ()

    @pytest.mark.parametrize("raw", [None, ""])
    def test_missing_configuration_raises(self, raw):
        with pytest.raises(ConfigurationError, match="missing"):
            load_policy(raw)

    def test_invalid_json_raises(self):
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_policy("{not json")

    def test_non_object_raises(self):
        with pytest.raises(ConfigurationError):
            load_policy("[1, 2]")

    def test_non_list_reviewers_raise(self):
        with pytest.raises(ConfigurationError, match="foo"):
            load_policy({"foo": "bar", "": ["admin"]})

    def test_duplicates_are_dropped_in_order(self):
        policy = load_policy({"": ["b", "a", "b"]})
        assert policy.default_reviewers == ("b", "a")

    def test_unknown_user_raises_when_host_given(self, host):
        host.users = {"foo", "bar", "admin1", "admin2", "internal-no-reviews"}
        with pytest.raises(ConfigurationError, match="baz"):
            load_policy(RAW, host=host)

    def test_all_users_resolved(self, host):
        host.users = {"foo", "bar", "baz", "admin1", "admin2", "internal-no-reviews"}
        assert load_policy(RAW, host=host).is_internal("foo")
