"""
GitHub branch source

Main orchestrator for discovering the buildable heads of one GitHub
repository and resolving each of them to a revision.

Workflow of fetch():
1. Look up the repository (authentication and existence are checked here)
2. Enumerate branches, probe criteria, report (head, revision)
3. Enumerate open pull requests; for each one:
   - look up its author
   - classify origin vs fork and, for forks, trust
   - pick checkout strategies (untrusted forks never get MERGE)
   - resolve every strategy through MergeCommitResolver
   - probe criteria against the pull request head, report accepted heads
4. Return a ScanResult (completed or cancelled)

A pull request that fails on its own (author or target branch gone, any
other non scan-fatal API error) is logged and skipped; the scan carries on.
Authentication failure, a missing repository and an exhausted rate limit
abort the scan.
"""

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from django.conf import settings

from .config import DiscoveryConfig
from .exceptions import (
    GitHubAPIError,
    NotFoundError,
    RepositoryNotFoundError,
    ScanCancelledError,
    ScanFatalError,
)
from .merge_resolver import MergeCommitResolver
from .metadata import repository_actions
from .observers import ScanResult, ScanStatus
from .probe import GitHubProbe
from .rest_client import GitHubRestClient
from .revisions import (
    BranchHead,
    BranchRevision,
    CheckoutStrategy,
    Origin,
    PullRequestHead,
)
from .trust import TrustPolicy

logger = logging.getLogger(__name__)


@dataclass
class PullRequestOutcome:
    """Heads accepted for one pull request, plus its metadata."""
    number: int
    accepted: List[Tuple[PullRequestHead, Any]]
    metadata: Dict[str, Any]


class GitHubSCMSource:
    """
    Discovers branches and pull requests of a GitHub repository.

    Usage:
        source = GitHubSCMSource('cloudbeers', 'yolo')
        collector = HeadCollector()
        result = source.fetch(require_file('README.md'), collector)
    """

    # Seconds between checks of the caller's cancel event while workers run
    POLL_INTERVAL = 0.1

    def __init__(
        self,
        repo_owner: str,
        repository: str,
        client=None,
        config: Optional[DiscoveryConfig] = None,
        github_token: Optional[str] = None,
        api_url: Optional[str] = None,
    ):
        """
        Initialize the source.

        Args:
            repo_owner: Owner (user or organization) of the repository
            repository: Repository name
            client: REST collaborator (defaults to GitHubRestClient)
            config: Discovery options (defaults to DiscoveryConfig.from_settings())
            github_token: Token for the default client (overrides SCM_GITHUB_TOKEN)
            api_url: API root for the default client (overrides SCM_GITHUB_API_URL)
        """
        if not repo_owner or not repository:
            raise ValueError("Both repository owner and repository name are required")

        self.repo_owner = repo_owner
        self.repository = repository
        self.config = config or DiscoveryConfig.from_settings()
        self.client = client or GitHubRestClient(
            github_token=github_token or getattr(settings, 'SCM_GITHUB_TOKEN', ''),
            api_url=api_url or getattr(settings, 'SCM_GITHUB_API_URL', None),
        )

    @property
    def full_name(self) -> str:
        return f"{self.repo_owner}/{self.repository}"

    def fetch(
        self,
        criteria: Optional[Callable] = None,
        observer: Optional[Callable] = None,
        event_context: Any = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanResult:
        """
        Scan the repository and report every accepted head to ``observer``.

        Args:
            criteria: Callable taking a probe, True when the head is buildable (None accepts all)
            observer: Callable receiving (head, revision)
            event_context: Opaque caller context, only logged
            cancel_event: Set by the caller to abort the scan

        Returns:
            ScanResult; status is CANCELLED when cancel_event was set before the scan finished

        Raises:
            AuthenticationError, RepositoryNotFoundError, RateLimitExceededError
        """
        result = ScanResult(repository=self.full_name)
        observer = observer or (lambda head, revision: None)
        logger.info(f"Starting scan of {self.full_name} (trust={self.config.trust_mode.value}, "
                    f"workers={self.config.max_workers})")
        if event_context is not None:
            logger.debug(f"Scan of {self.full_name} triggered by {event_context!r}")

        try:
            self._get_repository()

            if self.config.build_origin_branches:
                self._fetch_branches(criteria, observer, cancel_event, result)

            self._fetch_pull_requests(criteria, observer, cancel_event, result)

        except ScanCancelledError:
            result.status = ScanStatus.CANCELLED
            logger.warning(f"Scan of {self.full_name} cancelled after reporting {result.observed} heads")
            return result
        except ScanFatalError as e:
            logger.error(f"Scan of {self.full_name} failed: {e}")
            raise

        logger.info(f"Scan of {self.full_name} completed: {result.observed} heads reported, "
                    f"{len(result.skipped)} pull requests skipped")
        return result

    def fetch_actions(self) -> List[object]:
        """Repository metadata (description, homepage, default branch, link)."""
        return repository_actions(self._get_repository())

    def trust_policy(self) -> TrustPolicy:
        return TrustPolicy(self.client, self.repo_owner, self.repository, self.config.trust_mode)

    def get_trusted_revision(self, revision):
        """Revision whose build definition may be trusted for ``revision``."""
        return self.trust_policy().trusted_revision(revision)

    def _get_repository(self) -> Dict[str, Any]:
        try:
            return self.client.get_repository(self.repo_owner, self.repository)
        except NotFoundError as e:
            raise RepositoryNotFoundError(
                f"Repository {self.full_name} not found or not accessible",
                status_code=e.status_code, endpoint=e.endpoint) from e

    def _check_cancelled(self, cancel_event: Optional[threading.Event]):
        if cancel_event is not None and cancel_event.is_set():
            raise ScanCancelledError(f"Scan of {self.full_name} cancelled")

    def _accepts(self, criteria, head, ref: str) -> bool:
        if criteria is None:
            return True
        probe = GitHubProbe(self.client, self.repo_owner, self.repository, head, ref)
        return bool(criteria(probe))

    def _fetch_branches(self, criteria, observer, cancel_event, result: ScanResult):
        branches = self.client.list_branches(self.repo_owner, self.repository)
        logger.info(f"Checking {len(branches)} branches of {self.full_name}")

        for branch in branches:
            self._check_cancelled(cancel_event)
            result.branches += 1
            head = BranchHead(branch["name"])
            revision = BranchRevision(head, branch["sha"])
            try:
                accepted = self._accepts(criteria, head, revision.hash)
            except ScanFatalError:
                raise
            except GitHubAPIError as e:
                logger.warning(f"Skipping branch {head.name}: {e}")
                result.errors.append(f"{head.name}: {e}")
                continue

            if accepted:
                logger.debug(f"Met criteria: {head.name} @ {revision}")
                observer(head, revision)
                result.observed += 1
            else:
                logger.debug(f"Does not meet criteria: {head.name}")

    def _fetch_pull_requests(self, criteria, observer, cancel_event, result: ScanResult):
        pull_requests = self.client.list_pull_requests(self.repo_owner, self.repository, state="open")
        logger.info(f"Checking {len(pull_requests)} open pull requests of {self.full_name}")
        result.pull_requests = len(pull_requests)
        if not pull_requests:
            return

        if self.config.max_workers == 1:
            trust, resolver = self._pull_request_services(cancel_event)
            for pr in pull_requests:
                self._check_cancelled(cancel_event)
                self._report(pr, lambda: self._process_pull_request(pr, criteria, trust, resolver, cancel_event),
                             observer, result)
            return

        # Workers only see the scan's own event; it is set as soon as the scan stops
        scan_event = threading.Event()
        trust, resolver = self._pull_request_services(scan_event)
        executor = ThreadPoolExecutor(max_workers=self.config.max_workers,
                                      thread_name_prefix=f"scan-{self.repository}")
        try:
            futures = [
                executor.submit(self._process_pull_request, pr, criteria, trust, resolver, scan_event)
                for pr in pull_requests
            ]
            pending = set(futures)
            reported = 0
            while reported < len(futures):
                self._check_cancelled(cancel_event)
                done, pending = wait(pending, timeout=self.POLL_INTERVAL, return_when=FIRST_EXCEPTION)
                for future in done:
                    error = future.exception()
                    if isinstance(error, (ScanFatalError, ScanCancelledError)):
                        raise error

                # Report in enumeration order regardless of completion order
                while reported < len(futures) and futures[reported].done():
                    self._check_cancelled(cancel_event)
                    self._report(pull_requests[reported], futures[reported].result, observer, result)
                    reported += 1
        finally:
            scan_event.set()
            executor.shutdown(wait=False, cancel_futures=True)

    def _pull_request_services(self, cancel_event) -> Tuple[TrustPolicy, MergeCommitResolver]:
        resolver = MergeCommitResolver(
            self.client, self.repo_owner, self.repository,
            max_attempts=self.config.merge_retry_attempts,
            retry_delay=self.config.merge_retry_delay,
            cancel_event=cancel_event,
        )
        return self.trust_policy(), resolver

    def _report(self, pr, outcome_fn, observer, result: ScanResult):
        """Run or collect one pull request and report its heads; per-item errors skip it."""
        number = pr["number"]
        try:
            outcome = outcome_fn()
        except (ScanFatalError, ScanCancelledError):
            raise
        except GitHubAPIError as e:
            logger.warning(f"Skipping pull request {number} of {self.full_name}: {e}")
            result.skipped.append(f"PR-{number}")
            result.errors.append(f"PR-{number}: {e}")
            return

        result.pull_request_metadata[number] = outcome.metadata
        for head, revision in outcome.accepted:
            observer(head, revision)
            result.observed += 1

    def _process_pull_request(self, pr, criteria, trust: TrustPolicy, resolver: MergeCommitResolver,
                              cancel_event) -> PullRequestOutcome:
        self._check_cancelled(cancel_event)
        number = pr["number"]

        metadata = {
            "title": pr.get("title"),
            "url": pr.get("html_url"),
            "author": pr.get("user_login"),
        }
        if pr.get("user_login"):
            # A vanished author account makes the pull request unusable
            author = self.client.get_user(pr["user_login"])
            metadata["author_name"] = author.get("name")
            metadata["author_email"] = author.get("email")

        target = BranchHead(pr["base_ref"])
        fork = not trust.is_origin_repository(pr["head_owner"], pr["head_repo"])
        origin = Origin.FORK if fork else Origin.ORIGIN

        def make_head(strategy: CheckoutStrategy, qualified: bool = False) -> PullRequestHead:
            return PullRequestHead(
                number=number,
                source_owner=pr["head_owner"],
                source_repo=pr["head_repo"],
                source_branch=pr["head_ref"],
                target=target,
                origin=origin,
                strategy=strategy,
                qualified_name=qualified,
            )

        strategies = self.config.fork_pr_strategies() if fork else self.config.origin_pr_strategies()
        if fork and CheckoutStrategy.MERGE in strategies and not trust.is_trusted(make_head(CheckoutStrategy.HEAD)):
            logger.info(f"Pull request {number} from untrusted fork {pr['head_owner']}/{pr['head_repo']}: "
                        f"offering HEAD only")
            strategies = [CheckoutStrategy.HEAD]

        accepted = []
        for strategy in strategies:
            head = make_head(strategy, qualified=len(strategies) > 1)
            revision = resolver.resolve(head)
            if self._accepts(criteria, head, revision.pull_hash):
                logger.debug(f"Met criteria: {head.name} @ {revision}")
                accepted.append((head, revision))
            else:
                logger.debug(f"Does not meet criteria: {head.name}")

        return PullRequestOutcome(number=number, accepted=accepted, metadata=metadata)
