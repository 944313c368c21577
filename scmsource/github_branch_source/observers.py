"""Observers that receive discovered heads, and the outcome of a scan."""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List


class ScanStatus(enum.Enum):
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


@dataclass
class ScanResult:
    """Result of a scan. Heads themselves go to the observer."""
    repository: str
    status: ScanStatus = ScanStatus.COMPLETED
    branches: int = 0
    pull_requests: int = 0
    observed: int = 0
    skipped: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    # Pull request number -> title, url and author details
    pull_request_metadata: Dict[int, Dict[str, Any]] = field(default_factory=dict)

    @property
    def completed(self) -> bool:
        return self.status is ScanStatus.COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status is ScanStatus.CANCELLED


class HeadCollector:
    """
    Observer that records every (head, revision) pair in emission order.

    Usage:
        collector = HeadCollector()
        source.fetch(criteria, collector)
        revisions = collector.result()
    """

    def __init__(self):
        self._result: Dict = {}

    def __call__(self, head, revision):
        self._result[head] = revision

    def result(self) -> Dict:
        return dict(self._result)

    def by_name(self) -> Dict:
        return {head.name: (head, revision) for head, revision in self._result.items()}
