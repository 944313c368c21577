"""
GitHub Branch Source Module

This module discovers the buildable heads of a GitHub repository and resolves
each of them to a verifiable revision:
- Branches, reported with their head commit
- Pull requests, reported as HEAD (the contributor's commit) and/or MERGE
  (GitHub's merge commit on top of the current target branch)
- Merge state reconciliation: GitHub computes ``mergeable`` asynchronously,
  so it is polled a bounded number of times and may end up unknown
- Trust classification: pull requests from untrusted forks are never offered
  as merges and never supply their own build definition
- Merge validation: a revision that is not mergeable, or whose merge state is
  unknown, fails validate_merge_hash() before a build starts
"""

from .discovery import GitHubSCMSource
from .exceptions import (
    AuthenticationError,
    BaseBranchNotFoundError,
    GitHubAPIError,
    MergeHashValidationError,
    NotFoundError,
    RateLimitExceededError,
    RepositoryNotFoundError,
    ScanCancelledError,
    ScanFatalError,
)
from .merge_resolver import MergeCommitResolver
from .observers import HeadCollector, ScanResult, ScanStatus
from .probe import FileType, require_file
from .rest_client import GitHubRestClient
from .revisions import (
    NOT_MERGEABLE_HASH,
    BranchHead,
    BranchRevision,
    CheckoutStrategy,
    Origin,
    PullRequestHead,
    PullRequestRevision,
    validate_merge_hash,
)
from .trust import TrustMode, TrustPolicy

__all__ = [
    'GitHubSCMSource',
    'GitHubRestClient',
    'MergeCommitResolver',
    'TrustPolicy',
    'TrustMode',
    'HeadCollector',
    'ScanResult',
    'ScanStatus',
    'FileType',
    'require_file',
    'NOT_MERGEABLE_HASH',
    'BranchHead',
    'BranchRevision',
    'CheckoutStrategy',
    'Origin',
    'PullRequestHead',
    'PullRequestRevision',
    'validate_merge_hash',
    'GitHubAPIError',
    'ScanFatalError',
    'AuthenticationError',
    'RepositoryNotFoundError',
    'RateLimitExceededError',
    'NotFoundError',
    'BaseBranchNotFoundError',
    'MergeHashValidationError',
    'ScanCancelledError',
]
