"""Reviewer policy: who has to approve a pull request from a given author."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping

from prgate_core.errors import ConfigurationError

if TYPE_CHECKING:
    from prgate_core.gh.host import RepositoryHost

logger = logging.getLogger(__name__)

# Key used for the default reviewer set in the JSON policy format.
DEFAULT_KEY = ""


@dataclass(frozen=True)
class ReviewerPolicy:
    """Required reviewers per author, with a mandatory default set.

    Authors with an explicit entry are internal contributors. An explicit
    entry with an empty list means "internal, no required reviewers"; the
    default set is only used for authors with no entry at all.
    """

    default_reviewers: tuple[str, ...]
    reviewers: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def required_reviewers_for(self, author: str) -> tuple[str, ...]:
        return self.reviewers.get(author, self.default_reviewers)

    def is_internal(self, author: str) -> bool:
        return author in self.reviewers

    @property
    def admins(self) -> tuple[str, ...]:
        """Logins allowed to approve workflow runs for external contributors."""
        return self.default_reviewers


def _as_logins(author: str, value) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
        raise ConfigurationError(f"reviewers for {author!r} must be a list of GitHub logins, got {value!r}")
    # Preserve order, drop duplicates.
    return tuple(dict.fromkeys(value))


def load_policy(raw: str | Mapping | None, host: RepositoryHost | None = None) -> ReviewerPolicy:
    """Build a ReviewerPolicy from its JSON form.

    The format maps author logins to lists of reviewer logins, with the empty
    string as the key for the default reviewers::

        {"alice": ["bob", "carol"], "": ["admin1", "admin2"]}

    When ``host`` is given, every author and reviewer login is checked against
    GitHub once, here, so that evaluations never run against a typo.
    """
    if raw is None or raw == "":
        raise ConfigurationError("missing reviewers configuration")

    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"reviewers configuration is not valid JSON: {e}") from e
    else:
        data = raw

    if not isinstance(data, Mapping):
        raise ConfigurationError("reviewers configuration must be a JSON object")
    if DEFAULT_KEY not in data:
        raise ConfigurationError("default reviewers are not set. set default reviewers with an empty string as a key")

    reviewers = {author: _as_logins(author, value) for author, value in data.items()}
    defaults = reviewers.pop(DEFAULT_KEY)
    policy = ReviewerPolicy(default_reviewers=defaults, reviewers=reviewers)

    if host is not None:
        logins = dict.fromkeys(list(reviewers) + list(defaults))
        for logins_list in reviewers.values():
            logins.update(dict.fromkeys(logins_list))
        for login in logins:
            if not host.user_exists(login):
                raise ConfigurationError(f"reviewer policy references unknown GitHub user {login!r}")
        logger.debug("Resolved %d logins from reviewer policy", len(logins))

    return policy
