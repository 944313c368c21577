"""
Exceptions raised while discovering and resolving GitHub heads.

Error taxonomy:
- Scan-fatal (ScanFatalError): authentication failure, missing repository,
  exhausted rate limit. These abort the whole scan.
- Per-item (NotFoundError, BaseBranchNotFoundError, any other GitHubAPIError
  raised while handling one pull request): the pull request is skipped.
- Build-fatal (MergeHashValidationError): raised when a resolved revision is
  validated before a build.
"""

from typing import Optional


class GitHubAPIError(Exception):
    """A GitHub REST API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, endpoint: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class ScanFatalError(GitHubAPIError):
    """Base class for errors that make any partial scan result meaningless."""


class AuthenticationError(ScanFatalError):
    """GitHub rejected the configured credentials (HTTP 401)."""


class RepositoryNotFoundError(ScanFatalError):
    """The repository being scanned does not exist or is not visible."""


class RateLimitExceededError(ScanFatalError):
    """The API rate limit is exhausted."""

    def __init__(self, message: str, status_code: Optional[int] = None, endpoint: Optional[str] = None,
                 reset_at: Optional[int] = None):
        super().__init__(message, status_code=status_code, endpoint=endpoint)
        self.reset_at = reset_at


class NotFoundError(GitHubAPIError):
    """A single object (commit, user, ref, file) returned HTTP 404."""


class BaseBranchNotFoundError(NotFoundError):
    """The target branch of a pull request vanished while it was being resolved."""


class MergeHashValidationError(Exception):
    """
    A pull request revision cannot be built as a merge.

    ``reason`` is ``"not-mergeable"`` when GitHub reported a conflict and
    ``"unknown"`` when the merge state never converged.
    """

    NOT_MERGEABLE = 'not-mergeable'
    UNKNOWN = 'unknown'

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason


class ScanCancelledError(Exception):
    """The scan was cancelled by the caller before it completed."""
