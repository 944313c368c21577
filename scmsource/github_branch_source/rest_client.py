"""
GitHub REST API Client for branch and pull request discovery

Provides the REST API v3 calls the discovery engine needs: repository,
branches, refs, pull requests (including the lazily computed ``mergeable``
field), commits, collaborator permissions, users and file contents.

HTTP failures are translated into the exceptions in .exceptions so callers
can tell scan-fatal errors (401, exhausted rate limit) from per-item ones
(404 on a single commit, user or ref).

Reference: https://docs.github.com/en/rest/pulls/pulls
Reference: https://docs.github.com/en/rest/collaborators/collaborators
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .exceptions import (
    AuthenticationError,
    GitHubAPIError,
    NotFoundError,
    RateLimitExceededError,
)

logger = logging.getLogger(__name__)


class GitHubRestClient:
    """
    GitHub REST API client used by the branch source.

    Provides methods for:
    - Repository, branch and ref lookups
    - Pull request listing and detail (mergeable state, merge commit SHA)
    - Commit, user and collaborator permission lookups
    - Contents probes for criteria evaluation
    - Rate limit monitoring
    """

    REST_API_BASE = "https://api.github.com"

    def __init__(self, github_token: Optional[str] = None, api_url: Optional[str] = None, timeout: int = 30):
        """
        Initialize REST API client.

        Args:
            github_token: GitHub personal access token (anonymous access if empty)
            api_url: API root, e.g. https://ghe.example.com/api/v3 for GitHub Enterprise
            timeout: Per-request timeout in seconds
        """
        self.token = github_token
        self.api_url = (api_url or self.REST_API_BASE).rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28"
        })
        if self.token:
            self.session.headers["Authorization"] = f"Bearer {self.token}"

        logger.info(f"Initialized GitHub REST API client for {self.api_url}")

    def _make_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Make authenticated REST API request.

        Args:
            endpoint: API endpoint path (e.g., "/repos/owner/repo/pulls/1")
            params: Query parameters

        Returns:
            Response JSON data

        Raises:
            GitHubAPIError: If the request fails (see _raise_for_status)
        """
        url = f"{self.api_url}{endpoint}"

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise GitHubAPIError(f"GitHub API request to {endpoint} failed: {e}", endpoint=endpoint) from e

        # Log rate limit info
        self._log_rate_limit(response.headers)

        self._raise_for_status(response, endpoint)
        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(f"GitHub API returned invalid JSON for {endpoint}: {e}",
                                 status_code=response.status_code, endpoint=endpoint) from e

    def _raise_for_status(self, response: requests.Response, endpoint: str):
        """Translate an HTTP error response into a GitHubAPIError subclass."""
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            status = response.status_code
            message = self._error_message(response)
            if status == 401:
                raise AuthenticationError(
                    f"GitHub rejected the credentials for {endpoint}: {message}",
                    status_code=status, endpoint=endpoint) from e
            if status in (403, 429) and self._is_rate_limited(response, message):
                reset = response.headers.get("X-RateLimit-Reset")
                raise RateLimitExceededError(
                    f"GitHub API rate limit exhausted (resets at {reset})",
                    status_code=status, endpoint=endpoint,
                    reset_at=int(reset) if reset and reset.isdigit() else None) from e
            if status == 404:
                raise NotFoundError(f"Not found: {endpoint}", status_code=status, endpoint=endpoint) from e
            raise GitHubAPIError(
                f"GitHub API error {status} for {endpoint}: {message}",
                status_code=status, endpoint=endpoint) from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            return response.json().get("message", "") or response.reason
        except ValueError:
            return response.reason or ""

    @staticmethod
    def _is_rate_limited(response: requests.Response, message: str) -> bool:
        if response.headers.get("X-RateLimit-Remaining") == "0":
            return True
        return "rate limit" in (message or "").lower()

    def _make_paginated_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        per_page: int = 100
    ) -> List[Dict[str, Any]]:
        """
        Make paginated REST API request.

        Args:
            endpoint: API endpoint path
            params: Query parameters
            per_page: Results per page (max 100)

        Returns:
            List of all results across pages, in API order
        """
        params = dict(params or {})
        params["per_page"] = per_page
        params["page"] = 1

        all_results = []
        page_count = 0

        while True:
            page_count += 1
            logger.debug(f"Fetching page {page_count} from {endpoint}")

            results = self._make_request(endpoint, params)
            if not isinstance(results, list) or not results:
                break
            all_results.extend(results)
            if len(results) < per_page:
                break
            params["page"] += 1

        logger.debug(f"Fetched {len(all_results)} total results from {endpoint} ({page_count} pages)")
        return all_results

    def get_repository(self, owner: str, name: str) -> Dict[str, Any]:
        """
        Fetch repository metadata.

        Returns:
            Dictionary with owner, name, full_name, default_branch, description,
            homepage, html_url, private
        """
        data = self._make_request(f"/repos/{owner}/{name}")
        return {
            "owner": (data.get("owner") or {}).get("login", owner),
            "name": data.get("name", name),
            "full_name": data.get("full_name", f"{owner}/{name}"),
            "default_branch": data.get("default_branch"),
            "description": data.get("description"),
            "homepage": data.get("homepage"),
            "html_url": data.get("html_url", ""),
            "private": data.get("private", False),
        }

    def list_branches(self, owner: str, name: str) -> List[Dict[str, str]]:
        """Fetch all branches as {"name", "sha"} dictionaries."""
        branches = self._make_paginated_request(f"/repos/{owner}/{name}/branches")
        return [
            {"name": b["name"], "sha": (b.get("commit") or {}).get("sha", "")}
            for b in branches
        ]

    def get_branch_ref(self, owner: str, name: str, branch: str) -> str:
        """
        Fetch the current head SHA of a branch.

        Raises:
            NotFoundError: If the branch does not exist (deleted or renamed)
        """
        data = self._make_request(f"/repos/{owner}/{name}/git/refs/heads/{quote(branch)}")
        # A prefix match returns a list of refs instead of a single object
        if isinstance(data, list):
            for ref in data:
                if ref.get("ref") == f"refs/heads/{branch}":
                    data = ref
                    break
            else:
                raise NotFoundError(f"Branch {branch} not found in {owner}/{name}", status_code=404)
        return data["object"]["sha"]

    def list_pull_requests(self, owner: str, name: str, state: str = "open") -> List[Dict[str, Any]]:
        """Fetch pull requests (list payloads carry no mergeable state)."""
        pulls = self._make_paginated_request(f"/repos/{owner}/{name}/pulls", {"state": state})
        return [self._parse_pull_request(pr) for pr in pulls]

    def get_pull_request(self, owner: str, name: str, number: int) -> Dict[str, Any]:
        """
        Fetch a single pull request.

        The detail payload triggers GitHub's background merge computation;
        ``mergeable`` is None until that job finishes.
        """
        data = self._make_request(f"/repos/{owner}/{name}/pulls/{number}")
        return self._parse_pull_request(data)

    def _parse_pull_request(self, pr_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Parse pull request data into structured format.

        Args:
            pr_data: Raw REST API pull request data

        Returns:
            Parsed pull request dictionary
        """
        head = pr_data.get("head") or {}
        base = pr_data.get("base") or {}
        head_repo = head.get("repo") or {}
        user = pr_data.get("user") or {}

        return {
            "number": pr_data.get("number"),
            "title": pr_data.get("title", ""),
            "state": pr_data.get("state", ""),
            "html_url": pr_data.get("html_url", ""),
            "user_login": user.get("login"),

            # Source (head) side
            "head_sha": head.get("sha", ""),
            "head_ref": head.get("ref", ""),
            # A deleted fork leaves head.repo null
            "head_owner": (head_repo.get("owner") or {}).get("login") or (head.get("user") or {}).get("login"),
            "head_repo": head_repo.get("name"),

            # Target (base) side
            "base_ref": base.get("ref", ""),
            "base_sha": base.get("sha", ""),

            # Merge state, None until GitHub has computed it
            "mergeable": pr_data.get("mergeable"),
            "merge_commit_sha": pr_data.get("merge_commit_sha"),
        }

    def get_commit(self, owner: str, name: str, sha: str) -> Dict[str, Any]:
        """
        Fetch a commit.

        Returns:
            Dictionary with sha and parents (list of parent SHAs, in order)

        Raises:
            NotFoundError: If GitHub no longer has the commit
        """
        data = self._make_request(f"/repos/{owner}/{name}/commits/{sha}")
        return {
            "sha": data.get("sha", sha),
            "parents": [p.get("sha") for p in data.get("parents", [])],
        }

    def get_collaborator_permission(self, owner: str, name: str, username: str) -> str:
        """
        Fetch a user's permission on the repository.

        Returns:
            One of "admin", "maintain", "write", "triage", "read", "none"

        Raises:
            NotFoundError: If the user is not a collaborator / does not exist
            GitHubAPIError: If the token cannot read collaborators (403)
        """
        data = self._make_request(f"/repos/{owner}/{name}/collaborators/{quote(username)}/permission")
        return (data.get("permission") or "none").lower()

    def get_user(self, username: str) -> Dict[str, Any]:
        """Fetch a user's public profile."""
        data = self._make_request(f"/users/{quote(username)}")
        return {
            "login": data.get("login", username),
            "name": data.get("name"),
            "email": data.get("email"),
            "html_url": data.get("html_url", ""),
        }

    def get_contents(self, owner: str, name: str, path: str, ref: str) -> Optional[str]:
        """
        Probe a path in the tree at ``ref``.

        Returns:
            "file", "dir", "symlink" or "submodule", or None if the path does not exist
        """
        try:
            data = self._make_request(
                f"/repos/{owner}/{name}/contents/{quote(path.strip('/'))}",
                {"ref": ref}
            )
        except NotFoundError:
            return None

        # Directory listings come back as a list of entries
        if isinstance(data, list):
            return "dir"
        return data.get("type")

    def _log_rate_limit(self, headers: Dict[str, str]):
        """Log REST API rate limit information from response headers."""
        limit = headers.get("X-RateLimit-Limit")
        remaining = headers.get("X-RateLimit-Remaining")
        reset = headers.get("X-RateLimit-Reset")

        if limit and remaining:
            logger.debug(f"REST API rate limit: {remaining}/{limit} remaining "
                         f"(resets at {reset})")

            # Warn if running low
            if int(remaining) < 100:
                logger.warning(f"REST API rate limit running low: {remaining}/{limit} remaining")
