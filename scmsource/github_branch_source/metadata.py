"""Repository metadata attached to the scanned source, passed through to the caller."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ObjectMetadata:
    description: Optional[str]
    url: Optional[str]
    display_name: Optional[str] = None


@dataclass(frozen=True)
class DefaultBranch:
    repo_owner: str
    repository: str
    branch: str


@dataclass(frozen=True)
class RepoLink:
    url: str
    icon: str = 'icon-github-repo'


@dataclass(frozen=True)
class RepoMetadata:
    full_name: str
    private: bool


def repository_actions(repo: Dict[str, Any]) -> List[object]:
    """Build the metadata set for a parsed get_repository() payload."""
    actions = [
        ObjectMetadata(description=repo.get('description'), url=repo.get('homepage') or None),
        RepoMetadata(full_name=repo['full_name'], private=bool(repo.get('private'))),
    ]
    if repo.get('default_branch'):
        actions.append(DefaultBranch(repo['owner'], repo['name'], repo['default_branch']))
    if repo.get('html_url'):
        actions.append(RepoLink(repo['html_url']))
    return actions
