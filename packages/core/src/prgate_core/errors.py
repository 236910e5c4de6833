"""Exception hierarchy for prgate.

Policy violations are expected outcomes of a check (a PR is not approved yet,
a comment does not authorize a run). Everything else signals a configuration
problem or a failure talking to GitHub.
"""


class PrGateError(Exception):
    """Base exception for all prgate errors."""


class ConfigurationError(PrGateError):
    """Missing or invalid configuration, raised before any evaluation starts."""


class ValidationError(PrGateError):
    """Data fetched from GitHub is malformed or incomplete."""


class NotFoundError(PrGateError):
    """A named workflow or an expected workflow run does not exist."""


class PolicyViolation(PrGateError):
    """A review or trust requirement is not met."""


class ApprovalPending(PolicyViolation):
    """Required reviewers have not approved yet."""

    def __init__(self, message: str, waiting_on: tuple[str, ...] = ()):
        super().__init__(message)
        self.waiting_on = waiting_on


class CommitNotVerified(PolicyViolation):
    """A commit pushed after approval is not an empty, GitHub-signed commit."""


class CommentRejected(PolicyViolation):
    """A comment does not authorize the gated workflow to continue."""


class StaleComment(CommentRejected):
    pass


class MissingTriggerPhrase(CommentRejected):
    pass


class NotRepositoryOwner(CommentRejected):
    pass


class NotAnAdmin(CommentRejected):
    pass


class FutureComment(CommentRejected):
    pass


class ExternalServiceError(PrGateError):
    """A call to GitHub failed (network, auth, rate limit, ...)."""

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.operation = operation


class OperationTimeout(ExternalServiceError):
    """The overall deadline for this invocation expired."""


def with_context(err: PrGateError, context: str) -> PrGateError:
    """Return an error of the same kind as ``err`` with ``context`` prefixed to its message."""
    wrapped = type(err)(f"{context}: {err}")
    wrapped.__dict__.update(err.__dict__)
    return wrapped
