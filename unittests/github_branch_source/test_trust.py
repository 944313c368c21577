"""
Unit tests for TrustPolicy

Tests each trust mode, case-insensitive owner comparison, permission lookup
failures and trusted revision selection.
"""

from django.test import SimpleTestCase

from scmsource.github_branch_source.exceptions import GitHubAPIError, RateLimitExceededError
from scmsource.github_branch_source.revisions import (
    BranchHead,
    BranchRevision,
    CheckoutStrategy,
    Origin,
    PullRequestHead,
    PullRequestRevision,
)
from scmsource.github_branch_source.trust import TrustMode, TrustPolicy, trusted_revision

from .fakes import FakeGitHub


def make_head(owner='stephenc', repo='yolo', origin=Origin.FORK, strategy=CheckoutStrategy.HEAD):
    return PullRequestHead(7, owner, repo, 'feature', BranchHead('master'), origin, strategy)


class TestTrustPolicy(SimpleTestCase):
    """Test cases for TrustPolicy"""

    def setUp(self):
        self.github = FakeGitHub()

    def policy(self, mode):
        return TrustPolicy(self.github, 'CloudBeers', 'yolo', mode)

    def test_origin_always_trusted(self):
        """Test that origin pull requests are trusted in every mode"""
        head = make_head(owner='cloudbeers', origin=Origin.ORIGIN)
        for mode in TrustMode:
            self.assertTrue(self.policy(mode).is_trusted(head), mode)

    def test_owner_comparison_is_case_insensitive(self):
        """Test case-insensitive owner comparison"""
        policy = self.policy(TrustMode.NOBODY)
        self.assertTrue(policy.is_origin(make_head(owner='cloudbeers')))
        self.assertTrue(policy.is_origin(make_head(owner='CLOUDBEERS', repo='YOLO')))
        self.assertFalse(policy.is_origin(make_head(owner='cloudbeers', repo='yolo-fork')))

    def test_nobody_trusts_no_fork(self):
        """Test that nobody mode trusts no fork"""
        self.assertFalse(self.policy(TrustMode.NOBODY).is_trusted(make_head()))
        self.assertFalse(self.policy(TrustMode.NOBODY).is_trusted(make_head(owner='cloudbeers', repo='other')))
        self.assertEqual(self.github.count('get_collaborator_permission'), 0)

    def test_same_account_trusts_forks_of_repository_owner(self):
        """Test that same-account mode trusts forks owned by the repository owner"""
        policy = self.policy(TrustMode.SAME_ACCOUNT)
        self.assertTrue(policy.is_trusted(make_head(owner='cloudbeers', repo='yolo-mirror')))
        self.assertFalse(policy.is_trusted(make_head(owner='stephenc')))

    def test_everyone_trusts_all(self):
        """Test that everyone mode trusts every fork"""
        self.assertTrue(self.policy(TrustMode.EVERYONE).is_trusted(make_head(owner='random-person')))

    def test_contributors_with_write_access(self):
        """Test that contributors mode trusts users with write access"""
        self.github.permissions = {'stephenc': 'admin', 'writer': 'write', 'reader': 'read'}
        policy = self.policy(TrustMode.CONTRIBUTORS)

        self.assertTrue(policy.is_trusted(make_head(owner='stephenc')))
        self.assertTrue(policy.is_trusted(make_head(owner='writer')))
        self.assertFalse(policy.is_trusted(make_head(owner='reader')))

    def test_contributors_unknown_user_untrusted(self):
        """Test that contributors mode distrusts non-collaborators"""
        # Not a collaborator: 404 from the permission endpoint
        self.assertFalse(self.policy(TrustMode.CONTRIBUTORS).is_trusted(make_head(owner='stranger')))

    def test_permission_lookup_failure_falls_back_to_untrusted(self):
        """Test that a failed permission lookup is untrusted"""
        self.github.errors['get_collaborator_permission'] = RateLimitExceededError('rate limited', status_code=403)
        self.assertFalse(self.policy(TrustMode.CONTRIBUTORS).is_trusted(make_head()))

        self.github.errors['get_collaborator_permission'] = GitHubAPIError('forbidden', status_code=403)
        self.assertFalse(self.policy(TrustMode.CONTRIBUTORS).is_trusted(make_head()))

    def test_permission_cached_within_policy(self):
        """Test that permissions are looked up once per policy"""
        policy = self.policy(TrustMode.CONTRIBUTORS)
        policy.is_trusted(make_head(owner='stephenc'))
        policy.is_trusted(make_head(owner='StephenC'))

        self.assertEqual(self.github.count('get_collaborator_permission'), 1)

    def test_mode_accepts_setting_value(self):
        """Test trust modes from setting values"""
        self.assertIs(TrustPolicy(self.github, 'cloudbeers', 'yolo', 'same-account').mode, TrustMode.SAME_ACCOUNT)
        with self.assertRaises(ValueError):
            TrustPolicy(self.github, 'cloudbeers', 'yolo', 'somebody')


class TestTrustedRevision(SimpleTestCase):
    """Test cases for picking the revision build definitions are read from"""

    def setUp(self):
        self.github = FakeGitHub()

    def test_same_owner_different_case_returns_same_revision(self):
        """Test that an origin pull request in a different case keeps its revision"""
        policy = TrustPolicy(self.github, 'cloudbeers', 'yolo', TrustMode.CONTRIBUTORS)
        revision = PullRequestRevision(make_head(owner='CloudBeers'), 'non-null', 'pull')

        self.assertIs(policy.trusted_revision(revision), revision)

    def test_untrusted_pull_request_uses_target_branch(self):
        """Test that an untrusted pull request falls back to the target branch"""
        policy = TrustPolicy(self.github, 'cloudbeers', 'yolo', TrustMode.NOBODY)
        revision = PullRequestRevision(make_head(owner='stephenc'), 'base-sha', 'pull-sha')

        trusted = policy.trusted_revision(revision)

        self.assertEqual(trusted, BranchRevision(BranchHead('master'), 'base-sha'))

    def test_branch_revision_unchanged(self):
        """Test that branch revisions are returned unchanged"""
        policy = TrustPolicy(self.github, 'cloudbeers', 'yolo', TrustMode.NOBODY)
        revision = BranchRevision(BranchHead('master'), 'abc')

        self.assertIs(policy.trusted_revision(revision), revision)

    def test_function_form(self):
        """Test the module-level trusted_revision"""
        revision = PullRequestRevision(make_head(), 'base-sha', 'pull-sha')
        self.assertIs(trusted_revision(revision, True), revision)
        self.assertEqual(trusted_revision(revision, False).hash, 'base-sha')
