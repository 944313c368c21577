"""
Head and Revision value types.

A head names something buildable (a branch, or one checkout variant of a
pull request). A revision binds a head to the commit identities needed to
reproduce a build. Both are immutable and compare structurally, so a caller
can detect "nothing changed since last build" by comparing the revision it
stored with the one a new scan reports.

Merge hash states of a merge-strategy pull request revision:
- a commit SHA: GitHub computed a merge commit on top of the current base
- NOT_MERGEABLE_HASH: GitHub reported the pull request as not mergeable
- None: the merge state could not be determined
"""

import enum
from dataclasses import dataclass, field
from typing import Optional

from .exceptions import MergeHashValidationError

NOT_MERGEABLE_HASH = 'NOT_MERGEABLE'


class Origin(enum.Enum):
    """Where the pull request's source branch lives."""
    ORIGIN = 'origin'
    FORK = 'fork'


class CheckoutStrategy(enum.Enum):
    """What gets checked out for a pull request."""
    HEAD = 'HEAD'
    MERGE = 'MERGE'


@dataclass(frozen=True)
class BranchHead:
    name: str

    def __post_init__(self):
        if not self.name:
            raise ValueError("Branch head requires a non-empty name")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PullRequestHead:
    """
    One checkout variant of a pull request.

    Identity is the pull request number, the source owner/repository/branch
    and the checkout strategy. The target branch and origin are carried for
    resolution only, so a head keeps its identity when the target advances.
    """

    number: int
    source_owner: str
    source_repo: str
    source_branch: str
    target: BranchHead = field(compare=False)
    origin: Origin = field(compare=False)
    strategy: CheckoutStrategy
    # Set when the same pull request is offered under both strategies.
    qualified_name: bool = field(default=False, compare=False)

    def __post_init__(self):
        if self.number < 0:
            raise ValueError(f"Pull request number must not be negative: {self.number}")
        if not isinstance(self.strategy, CheckoutStrategy):
            raise ValueError(f"Unknown checkout strategy: {self.strategy!r}")

    @property
    def name(self) -> str:
        if self.qualified_name:
            return f"PR-{self.number}-{self.strategy.value.lower()}"
        return f"PR-{self.number}"

    @property
    def is_merge(self) -> bool:
        return self.strategy is CheckoutStrategy.MERGE

    @property
    def is_fork(self) -> bool:
        return self.origin is Origin.FORK

    def __str__(self) -> str:
        return (f"{self.name} ({self.source_owner}/{self.source_repo}:{self.source_branch}"
                f" -> {self.target.name}, {self.strategy.value})")


@dataclass(frozen=True)
class BranchRevision:
    head: BranchHead
    hash: str

    def __str__(self) -> str:
        return self.hash


@dataclass(frozen=True, eq=False)
class PullRequestRevision:
    """
    Resolved revision of a pull request head.

    ``base_hash`` is the target branch head at resolution time and
    ``pull_hash`` the pull request head. ``merge_hash`` only exists for the
    MERGE strategy.
    """

    head: PullRequestHead
    base_hash: str
    pull_hash: str
    merge_hash: Optional[str] = None

    def __post_init__(self):
        if not self.head.is_merge and self.merge_hash is not None:
            raise ValueError(f"{self.head.name} uses the HEAD strategy and cannot carry a merge hash")

    @property
    def is_merge(self) -> bool:
        return self.head.is_merge

    @property
    def is_not_mergeable(self) -> bool:
        return self.merge_hash == NOT_MERGEABLE_HASH

    @property
    def is_merge_unknown(self) -> bool:
        return self.is_merge and self.merge_hash is None

    def __eq__(self, other):
        if not isinstance(other, PullRequestRevision):
            return NotImplemented
        if self.head != other.head:
            return False
        if self.base_hash != other.base_hash or self.pull_hash != other.pull_hash:
            return False
        # The merge hash is only comparable when both sides have one
        if self.merge_hash is None or other.merge_hash is None:
            return True
        return self.merge_hash == other.merge_hash

    def __hash__(self):
        return hash((self.head, self.base_hash, self.pull_hash))

    def validate_merge_hash(self) -> None:
        """
        Check that this revision may be built.

        Raises:
            MergeHashValidationError: the merge strategy was requested but
                GitHub reported a conflict, or the merge state is unknown
        """
        if not self.is_merge:
            return
        if self.is_not_mergeable:
            raise MergeHashValidationError(
                f"Pull request {self.head.number} : Not mergeable at {self.pull_hash}+{self.base_hash}",
                MergeHashValidationError.NOT_MERGEABLE,
            )
        if self.merge_hash is None:
            raise MergeHashValidationError(
                f"Pull request {self.head.number} : Not mergeable, GitHub did not report a merge state "
                f"for {self.pull_hash}+{self.base_hash}",
                MergeHashValidationError.UNKNOWN,
            )

    def __str__(self) -> str:
        if not self.is_merge:
            return self.pull_hash
        if self.is_not_mergeable:
            merge = 'not mergeable'
        elif self.merge_hash is None:
            merge = 'merge unknown'
        else:
            merge = self.merge_hash
        return f"{self.pull_hash}+{self.base_hash} ({merge})"


def validate_merge_hash(revision) -> None:
    """Validate any revision before a build; only merge revisions can fail."""
    if isinstance(revision, PullRequestRevision):
        revision.validate_merge_hash()
