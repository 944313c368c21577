"""
Unit tests for MergeCommitResolver

Tests the merge state protocol:
- mergeable=true with a merge commit on the current target head
- mergeable=false (no retry)
- mergeable=null converging, or exhausting the retry bound
- merge commit garbage-collected (404) and stale merge commits
- target branch vanishing mid-scan
"""

from django.test import SimpleTestCase

from scmsource.github_branch_source.exceptions import BaseBranchNotFoundError, MergeHashValidationError
from scmsource.github_branch_source.merge_resolver import MergeCommitResolver
from scmsource.github_branch_source.revisions import (
    NOT_MERGEABLE_HASH,
    BranchHead,
    CheckoutStrategy,
    Origin,
    PullRequestHead,
    PullRequestRevision,
)

from .fakes import MASTER_SHA, PR_2_MERGE_SHA, PR_HEAD_SHA, FakeGitHub


def make_head(number=2, strategy=CheckoutStrategy.MERGE, target='master'):
    return PullRequestHead(number, 'stephenc', 'yolo', f'patch-{number}', BranchHead(target),
                           Origin.FORK, strategy)


class TestMergeCommitResolver(SimpleTestCase):
    """Test cases for MergeCommitResolver"""

    def setUp(self):
        self.github = FakeGitHub()
        self.resolver = MergeCommitResolver(self.github, 'cloudbeers', 'yolo', max_attempts=3, retry_delay=0)

    def test_mergeable_true_resolves_merge_hash(self):
        """Test resolution of a computed merge commit"""
        self.github.mergeable[2] = [True]

        revision = self.resolver.resolve(make_head())

        self.assertEqual(revision.base_hash, MASTER_SHA)
        self.assertEqual(revision.pull_hash, PR_HEAD_SHA)
        self.assertEqual(revision.merge_hash, PR_2_MERGE_SHA)
        revision.validate_merge_hash()

    def test_merge_commit_with_target_as_second_parent_accepted(self):
        """Test that the target head is accepted as either parent"""
        self.github.mergeable[2] = [True]
        self.github.commits[PR_2_MERGE_SHA] = [PR_HEAD_SHA, MASTER_SHA]

        revision = self.resolver.resolve(make_head())

        self.assertEqual(revision.merge_hash, PR_2_MERGE_SHA)

    def test_mergeable_false_no_retry(self):
        """Test that mergeable=false resolves to not mergeable without retrying"""
        revision = self.resolver.resolve(make_head(number=3))

        self.assertEqual(revision.merge_hash, NOT_MERGEABLE_HASH)
        self.assertEqual(self.github.count('get_pull_request'), 1)
        self.assertEqual(self.github.count('get_commit'), 0)
        with self.assertRaises(MergeHashValidationError) as ctx:
            revision.validate_merge_hash()
        self.assertIn('Not mergeable', str(ctx.exception))

    def test_unknown_converges_to_true(self):
        """Test that an unknown merge state is retried until computed"""
        # Fixture: null, null, then true
        revision = self.resolver.resolve(make_head())

        self.assertEqual(self.github.count('get_pull_request'), 3)
        self.assertEqual(revision, PullRequestRevision(make_head(), MASTER_SHA, PR_HEAD_SHA, PR_2_MERGE_SHA))
        self.assertEqual(revision.merge_hash, PR_2_MERGE_SHA)

    def test_unknown_exhausts_bound(self):
        """Test that the retry bound leaves the merge hash unknown"""
        self.github.mergeable[2] = [None]

        revision = self.resolver.resolve(make_head())

        self.assertEqual(self.github.count('get_pull_request'), 3)
        self.assertIsNone(revision.merge_hash)
        self.assertTrue(revision.is_merge_unknown)
        self.assertFalse(revision.is_not_mergeable)
        with self.assertRaises(MergeHashValidationError) as ctx:
            revision.validate_merge_hash()
        self.assertEqual(ctx.exception.reason, MergeHashValidationError.UNKNOWN)

    def test_target_head_fetched_on_every_attempt(self):
        """Test that the target branch is refetched on every attempt"""
        self.resolver.resolve(make_head())

        self.assertEqual(self.github.count('get_branch_ref'), 3)

    def test_merge_commit_not_found_falls_back_to_not_mergeable(self):
        """Test that a missing merge commit resolves to not mergeable"""
        self.github.mergeable[2] = [True]
        del self.github.commits[PR_2_MERGE_SHA]

        revision = self.resolver.resolve(make_head())

        self.assertEqual(revision.merge_hash, NOT_MERGEABLE_HASH)
        self.assertEqual(revision.base_hash, MASTER_SHA)
        self.assertEqual(revision.pull_hash, PR_HEAD_SHA)

    def test_stale_merge_commit_is_retried(self):
        """Test that a merge commit on an old target head is retried"""
        self.github.mergeable[2] = [True]
        self.github.commits[PR_2_MERGE_SHA] = ['0' * 40, PR_HEAD_SHA]

        revision = self.resolver.resolve(make_head())

        self.assertEqual(self.github.count('get_pull_request'), 3)
        self.assertIsNone(revision.merge_hash)

    def test_target_moves_between_attempts(self):
        """Test that a merge commit built on the old target head is replaced once GitHub recomputes it"""
        new_master = 'f' * 40
        new_merge = 'e' * 40
        self.github.mergeable[2] = [True]
        self.github.refs['master'] = new_master
        self.github.commits[new_merge] = [new_master, PR_HEAD_SHA]

        original = self.github.get_pull_request

        def recomputed(owner, name, number):
            pr = original(owner, name, number)
            if self.github.count('get_pull_request') > 1:
                pr['merge_commit_sha'] = new_merge
            return pr

        self.github.get_pull_request = recomputed

        revision = self.resolver.resolve(make_head())

        self.assertEqual(revision.base_hash, new_master)
        self.assertEqual(revision.merge_hash, new_merge)

    def test_missing_target_branch(self):
        """Test that a missing target branch raises BaseBranchNotFoundError"""
        self.github.missing_refs['master'] = -1

        with self.assertRaises(BaseBranchNotFoundError):
            self.resolver.resolve(make_head())

    def test_head_strategy_skips_merge_endpoints(self):
        """Test that HEAD resolution never fetches the merge commit"""
        revision = self.resolver.resolve(make_head(strategy=CheckoutStrategy.HEAD))

        self.assertEqual(revision.base_hash, MASTER_SHA)
        self.assertEqual(revision.pull_hash, PR_HEAD_SHA)
        self.assertIsNone(revision.merge_hash)
        self.assertEqual(self.github.count('get_pull_request'), 1)
        self.assertEqual(self.github.count('get_commit'), 0)
        revision.validate_merge_hash()

    def test_merge_commit_without_two_parents_is_unknown(self):
        """Test that a merge commit without exactly two parents leaves the merge hash unknown without retrying"""
        self.github.mergeable[2] = [True]
        self.github.commits[PR_2_MERGE_SHA] = [MASTER_SHA]

        revision = self.resolver.resolve(make_head())

        self.assertEqual(self.github.count('get_pull_request'), 1)
        self.assertEqual(self.github.count('get_commit'), 1)
        self.assertIsNone(revision.merge_hash)
        self.assertTrue(revision.is_merge_unknown)
