"""
Pull request revision resolution

Turns a PullRequestHead into a PullRequestRevision. For the MERGE strategy
this reconciles GitHub's asynchronous merge computation:

1. Fetch the pull request (head SHA, ``mergeable``, ``merge_commit_sha``)
   and the current head of the target branch.
2. ``mergeable`` false: not mergeable, no retry.
3. ``mergeable`` true: the merge commit must exist and have the current
   target head as one of its two parents. A merge commit GitHub has already
   discarded (404) is reported as not mergeable. A merge commit built on an
   older target head is treated as not computed yet. A merge commit without
   exactly two parents leaves the merge hash unknown, without retrying.
4. ``mergeable`` null: retry, bounded. If it never converges the revision
   carries no merge hash (unknown).

The target head is fetched on every attempt because the target branch can
move between attempts.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from .exceptions import BaseBranchNotFoundError, NotFoundError
from .retry import retry_until_resolved
from .revisions import NOT_MERGEABLE_HASH, PullRequestHead, PullRequestRevision

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MergeState:
    """One observation of a pull request's merge state."""
    pull_hash: str
    base_hash: str
    merge_hash: Optional[str]
    resolved: bool


class MergeCommitResolver:
    """
    Resolves pull request heads against one repository.

    Usage:
        resolver = MergeCommitResolver(client, 'cloudbeers', 'yolo')
        revision = resolver.resolve(head)
    """

    DEFAULT_MAX_ATTEMPTS = 3
    DEFAULT_RETRY_DELAY = 1.0

    def __init__(
        self,
        client,
        repo_owner: str,
        repository: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.client = client
        self.repo_owner = repo_owner
        self.repository = repository
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.cancel_event = cancel_event

    def resolve(self, head: PullRequestHead) -> PullRequestRevision:
        """
        Resolve a pull request head to exactly one terminal revision.

        Raises:
            BaseBranchNotFoundError: If the target branch no longer exists
            GitHubAPIError: If the pull request itself cannot be fetched
            ScanCancelledError: If the scan is cancelled while retrying
        """
        if not head.is_merge:
            pr = self._get_pull_request(head)
            base_hash = self._base_hash(head)
            return PullRequestRevision(head, base_hash=base_hash, pull_hash=pr["head_sha"])

        outcome = retry_until_resolved(
            attempt=lambda: self._observe_merge_state(head),
            is_resolved=lambda state: state.resolved,
            max_attempts=self.max_attempts,
            delay=self.retry_delay,
            cancel_event=self.cancel_event,
            description=f"merge state of {self.repo_owner}/{self.repository}#{head.number}",
        )
        state = outcome.value
        if not outcome.resolved:
            logger.warning(f"Pull request {head.number}: GitHub did not compute a merge state after "
                           f"{outcome.attempts} attempts, merge hash unknown")
            return PullRequestRevision(head, base_hash=state.base_hash, pull_hash=state.pull_hash)

        return PullRequestRevision(head, base_hash=state.base_hash, pull_hash=state.pull_hash,
                                   merge_hash=state.merge_hash)

    def _get_pull_request(self, head: PullRequestHead):
        return self.client.get_pull_request(self.repo_owner, self.repository, head.number)

    def _base_hash(self, head: PullRequestHead) -> str:
        try:
            return self.client.get_branch_ref(self.repo_owner, self.repository, head.target.name)
        except NotFoundError as e:
            raise BaseBranchNotFoundError(
                f"Pull request {head.number}: target branch {head.target.name} not found",
                status_code=e.status_code, endpoint=e.endpoint) from e

    def _observe_merge_state(self, head: PullRequestHead) -> MergeState:
        pr = self._get_pull_request(head)
        base_hash = self._base_hash(head)
        pull_hash = pr["head_sha"]
        mergeable = pr["mergeable"]

        if mergeable is None:
            return MergeState(pull_hash, base_hash, None, resolved=False)

        if mergeable is False:
            logger.debug(f"Pull request {head.number}: not mergeable")
            return MergeState(pull_hash, base_hash, NOT_MERGEABLE_HASH, resolved=True)

        merge_sha = pr["merge_commit_sha"]
        if not merge_sha:
            return MergeState(pull_hash, base_hash, None, resolved=False)

        try:
            commit = self.client.get_commit(self.repo_owner, self.repository, merge_sha)
        except NotFoundError:
            logger.warning(f"Pull request {head.number}: merge commit {merge_sha} not found. "
                           f"Close and reopen the pull request to reset its merge hash.")
            return MergeState(pull_hash, base_hash, NOT_MERGEABLE_HASH, resolved=True)

        parents = commit["parents"]
        if len(parents) != 2:
            logger.warning(f"Pull request {head.number}: merge commit {merge_sha} should have two parents, "
                           f"found {len(parents)}")
            # Not a merge GitHub will fix by recomputing; the merge hash stays unknown
            return MergeState(pull_hash, base_hash, None, resolved=True)
        if base_hash not in parents:
            logger.debug(f"Pull request {head.number}: merge commit {merge_sha} is not based on "
                         f"current target head {base_hash}")
            return MergeState(pull_hash, base_hash, None, resolved=False)

        return MergeState(pull_hash, base_hash, merge_sha, resolved=True)
