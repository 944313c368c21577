"""
Pull request trust classification

Decides whether the contributor of a pull request is trusted. Trusted pull
requests may be built as merges and may have their build definition read
from the pull request itself; untrusted ones are only built as an isolated
head, with the build definition taken from the target branch.

Trust modes:
- nobody: only pull requests from the repository itself
- same-account: also forks owned by the repository owner
- contributors: also forks whose owner has write access to the repository
- everyone: every pull request

Pull requests filed from the repository itself are always trusted. Account
names are compared case-insensitively.
"""

import enum
import logging
import threading
from typing import Callable, Dict, Union

from .exceptions import GitHubAPIError
from .revisions import BranchRevision, PullRequestHead, PullRequestRevision

logger = logging.getLogger(__name__)


class TrustMode(enum.Enum):
    NOBODY = 'nobody'
    SAME_ACCOUNT = 'same-account'
    CONTRIBUTORS = 'contributors'
    EVERYONE = 'everyone'


# Collaborator permission levels that include push access
WRITE_PERMISSIONS = frozenset(['admin', 'maintain', 'write'])


def same_account(owner_a: str, owner_b: str) -> bool:
    return (owner_a or '').lower() == (owner_b or '').lower()


class TrustPolicy:
    """
    Classifies pull requests of one repository for the duration of one scan.

    Usage:
        policy = TrustPolicy(client, 'cloudbeers', 'yolo', TrustMode.CONTRIBUTORS)
        if policy.is_trusted(head): ...
    """

    def __init__(self, client, repo_owner: str, repository: str, mode: Union[TrustMode, str] = TrustMode.CONTRIBUTORS):
        self.client = client
        self.repo_owner = repo_owner
        self.repository = repository
        self.mode = TrustMode(mode)
        self._permissions: Dict[str, str] = {}
        self._lock = threading.Lock()

        self._rules: Dict[TrustMode, Callable[[PullRequestHead], bool]] = {
            TrustMode.NOBODY: lambda head: False,
            TrustMode.SAME_ACCOUNT: self._is_same_account,
            TrustMode.CONTRIBUTORS: self._has_write_access,
            TrustMode.EVERYONE: lambda head: True,
        }

    def is_origin_repository(self, owner: str, repository: str) -> bool:
        return same_account(owner, self.repo_owner) and (repository or '').lower() == self.repository.lower()

    def is_origin(self, head: PullRequestHead) -> bool:
        """True when the pull request was filed from this repository."""
        return self.is_origin_repository(head.source_owner, head.source_repo)

    def is_trusted(self, head: PullRequestHead) -> bool:
        if self.is_origin(head):
            return True
        trusted = self._rules[self.mode](head)
        logger.debug(f"{head.name} from {head.source_owner}/{head.source_repo}: "
                     f"{'trusted' if trusted else 'untrusted'} ({self.mode.value})")
        return trusted

    def _is_same_account(self, head: PullRequestHead) -> bool:
        return same_account(head.source_owner, self.repo_owner)

    def _has_write_access(self, head: PullRequestHead) -> bool:
        if self._is_same_account(head):
            return True
        return self._permission(head.source_owner) in WRITE_PERMISSIONS

    def _permission(self, username: str) -> str:
        key = (username or '').lower()
        with self._lock:
            if key in self._permissions:
                return self._permissions[key]

        try:
            permission = self.client.get_collaborator_permission(self.repo_owner, self.repository, username)
        except GitHubAPIError as e:
            logger.warning(f"Could not look up permission of {username} on "
                           f"{self.repo_owner}/{self.repository}, treating as untrusted: {e}")
            permission = 'none'

        with self._lock:
            self._permissions[key] = permission
        return permission

    def trusted_revision(self, revision):
        """
        Return the revision whose build definition may be used.

        Branches and trusted pull requests return ``revision`` itself. An
        untrusted pull request returns its target branch at the base hash the
        pull request was resolved against.
        """
        if not isinstance(revision, PullRequestRevision):
            return revision
        trusted = self.is_trusted(revision.head)
        if not trusted:
            logger.info(f"Loading trusted files from target branch {revision.head.target.name} at "
                        f"{revision.base_hash} rather than {revision.pull_hash}")
        return trusted_revision(revision, trusted)

    def __str__(self) -> str:
        return f"TrustPolicy({self.repo_owner}/{self.repository}, {self.mode.value})"


def trusted_revision(revision, trusted: bool):
    """Pick the revision to read build definitions from, given a trust decision."""
    if trusted or not isinstance(revision, PullRequestRevision):
        return revision
    return BranchRevision(revision.head.target, revision.base_hash)
