"""
Discovery configuration

Values default to the Django settings below and can be overridden per scan:

    SCM_BUILD_ORIGIN_BRANCHES   build branches of the repository (True)
    SCM_BUILD_ORIGIN_PR_MERGE   build origin pull requests merged with their target (True)
    SCM_BUILD_ORIGIN_PR_HEAD    build origin pull requests as-is (False)
    SCM_BUILD_FORK_PR_MERGE     build fork pull requests merged with their target (True)
    SCM_BUILD_FORK_PR_HEAD      build fork pull requests as-is (False)
    SCM_TRUST_MODE              nobody | same-account | contributors | everyone (contributors)
    SCM_MERGE_RETRY_ATTEMPTS    attempts while GitHub computes the merge state (3)
    SCM_MERGE_RETRY_DELAY       seconds between those attempts (1.0)
    SCM_SCAN_MAX_WORKERS        pull requests resolved in parallel (1)
"""

from dataclasses import dataclass, fields
from typing import List

from django.conf import settings

from .revisions import CheckoutStrategy
from .trust import TrustMode


@dataclass(frozen=True)
class DiscoveryConfig:
    build_origin_branches: bool = True
    build_origin_pr_merge: bool = True
    build_origin_pr_head: bool = False
    build_fork_pr_merge: bool = True
    build_fork_pr_head: bool = False
    trust_mode: TrustMode = TrustMode.CONTRIBUTORS
    merge_retry_attempts: int = 3
    merge_retry_delay: float = 1.0
    max_workers: int = 1

    # Django setting name for each field
    SETTINGS = {
        'build_origin_branches': 'SCM_BUILD_ORIGIN_BRANCHES',
        'build_origin_pr_merge': 'SCM_BUILD_ORIGIN_PR_MERGE',
        'build_origin_pr_head': 'SCM_BUILD_ORIGIN_PR_HEAD',
        'build_fork_pr_merge': 'SCM_BUILD_FORK_PR_MERGE',
        'build_fork_pr_head': 'SCM_BUILD_FORK_PR_HEAD',
        'trust_mode': 'SCM_TRUST_MODE',
        'merge_retry_attempts': 'SCM_MERGE_RETRY_ATTEMPTS',
        'merge_retry_delay': 'SCM_MERGE_RETRY_DELAY',
        'max_workers': 'SCM_SCAN_MAX_WORKERS',
    }

    def __post_init__(self):
        # Accept the setting's string form
        object.__setattr__(self, 'trust_mode', TrustMode(self.trust_mode))
        if self.merge_retry_attempts < 1:
            raise ValueError(f"merge_retry_attempts must be at least 1, got {self.merge_retry_attempts}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")

    @classmethod
    def from_settings(cls, **overrides) -> 'DiscoveryConfig':
        """Build a config from Django settings; keyword arguments that are not None win."""
        values = {}
        for f in fields(cls):
            setting = cls.SETTINGS[f.name]
            if overrides.get(f.name) is not None:
                values[f.name] = overrides[f.name]
            elif hasattr(settings, setting):
                values[f.name] = getattr(settings, setting)
        return cls(**values)

    def origin_pr_strategies(self) -> List[CheckoutStrategy]:
        strategies = []
        if self.build_origin_pr_head:
            strategies.append(CheckoutStrategy.HEAD)
        if self.build_origin_pr_merge:
            strategies.append(CheckoutStrategy.MERGE)
        return strategies

    def fork_pr_strategies(self) -> List[CheckoutStrategy]:
        strategies = []
        if self.build_fork_pr_head:
            strategies.append(CheckoutStrategy.HEAD)
        if self.build_fork_pr_merge:
            strategies.append(CheckoutStrategy.MERGE)
        return strategies
