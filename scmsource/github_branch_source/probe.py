"""
Lightweight filesystem probe used to evaluate discovery criteria.

Criteria are callables taking a probe and returning True when the head should
be discovered, e.g.:

    def has_readme(probe):
        return probe.stat('README.md') is FileType.REGULAR_FILE
"""

import enum
import logging
from typing import Dict

logger = logging.getLogger(__name__)


class FileType(enum.Enum):
    REGULAR_FILE = 'file'
    DIRECTORY = 'dir'
    SYMLINK = 'symlink'
    NONEXISTENT = None
    OTHER = 'other'


class GitHubProbe:
    """
    Probes the tree of one head at one commit through the contents API.

    Results are cached per path for the lifetime of the probe.
    """

    def __init__(self, client, repo_owner: str, repository: str, head, ref: str):
        self.client = client
        self.repo_owner = repo_owner
        self.repository = repository
        self.head = head
        self.ref = ref
        self._cache: Dict[str, FileType] = {}

    @property
    def name(self) -> str:
        return self.head.name

    def stat(self, path: str) -> FileType:
        if path not in self._cache:
            kind = self.client.get_contents(self.repo_owner, self.repository, path, self.ref)
            try:
                self._cache[path] = FileType(kind)
            except ValueError:
                self._cache[path] = FileType.OTHER
            logger.debug(f"Probe {self.head.name}@{self.ref}: {path} -> {self._cache[path].name}")
        return self._cache[path]

    def exists(self, path: str) -> bool:
        return self.stat(path) is not FileType.NONEXISTENT


def require_file(path: str):
    """Criteria accepting heads that contain a regular file at ``path``."""
    def criteria(probe) -> bool:
        return probe.stat(path) is FileType.REGULAR_FILE
    return criteria
