"""
Django management command to scan a GitHub repository for buildable heads.

Discovers branches and open pull requests, resolves each pull request's
merge state and prints every discovered head with its revision.

Usage:
    python manage.py scan_github_heads OWNER/REPO [options]

Examples:
    # Scan with the settings defaults
    python manage.py scan_github_heads cloudbeers/yolo

    # Only heads that contain a Jenkinsfile, fork pull requests as HEAD only
    python manage.py scan_github_heads cloudbeers/yolo --require-file Jenkinsfile \
        --fork-pr-head --no-fork-pr-merge

    # Resolve up to 4 pull requests in parallel, trust nobody
    python manage.py scan_github_heads cloudbeers/yolo --workers 4 --trust nobody
"""

import logging

from django.core.management.base import BaseCommand, CommandError

from scmsource.github_branch_source import (
    GitHubSCMSource,
    HeadCollector,
    MergeHashValidationError,
    PullRequestRevision,
    ScanFatalError,
    TrustMode,
    require_file,
)
from scmsource.github_branch_source.config import DiscoveryConfig

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Discover the branches and pull requests of a GitHub repository and resolve their revisions'

    def add_arguments(self, parser):
        parser.add_argument(
            'repository',
            type=str,
            help='Repository to scan, as OWNER/REPO'
        )
        parser.add_argument(
            '--token',
            type=str,
            help='GitHub personal access token (overrides SCM_GITHUB_TOKEN setting)'
        )
        parser.add_argument(
            '--api-url',
            type=str,
            help='GitHub API root, e.g. https://ghe.example.com/api/v3 (overrides SCM_GITHUB_API_URL)'
        )
        parser.add_argument(
            '--trust',
            choices=[mode.value for mode in TrustMode],
            help='Which fork contributors are trusted (overrides SCM_TRUST_MODE)'
        )
        parser.add_argument(
            '--no-branches',
            action='store_true',
            help='Do not report branches'
        )
        parser.add_argument(
            '--origin-pr-head',
            action='store_true',
            default=None,
            help='Build origin pull requests as their head commit'
        )
        parser.add_argument(
            '--no-origin-pr-merge',
            action='store_true',
            help='Do not build origin pull requests merged with their target'
        )
        parser.add_argument(
            '--fork-pr-head',
            action='store_true',
            default=None,
            help='Build fork pull requests as their head commit'
        )
        parser.add_argument(
            '--no-fork-pr-merge',
            action='store_true',
            help='Do not build fork pull requests merged with their target'
        )
        parser.add_argument(
            '--require-file',
            type=str,
            help='Only report heads containing this file'
        )
        parser.add_argument(
            '--workers',
            type=int,
            help='Pull requests resolved in parallel (overrides SCM_SCAN_MAX_WORKERS)'
        )

    def handle(self, *args, **options):
        """Execute the scan command."""
        owner, _, name = options['repository'].partition('/')
        if not owner or not name or '/' in name:
            raise CommandError(f"Repository must be given as OWNER/REPO, got {options['repository']!r}")

        try:
            config = DiscoveryConfig.from_settings(
                build_origin_branches=False if options.get('no_branches') else None,
                build_origin_pr_head=options.get('origin_pr_head'),
                build_origin_pr_merge=False if options.get('no_origin_pr_merge') else None,
                build_fork_pr_head=options.get('fork_pr_head'),
                build_fork_pr_merge=False if options.get('no_fork_pr_merge') else None,
                trust_mode=options.get('trust'),
                max_workers=options.get('workers'),
            )
        except ValueError as e:
            raise CommandError(f'Invalid configuration: {e}')

        source = GitHubSCMSource(owner, name, config=config,
                                 github_token=options.get('token'), api_url=options.get('api_url'))
        criteria = require_file(options['require_file']) if options.get('require_file') else None
        collector = HeadCollector()

        self.stdout.write(f'Scanning {source.full_name} (trust={config.trust_mode.value})')

        try:
            result = source.fetch(criteria, collector)
        except ScanFatalError as e:
            raise CommandError(f'Scan failed: {e}')

        for head, revision in collector.result().items():
            self.stdout.write(f'  {head.name:<30} {revision}')
            if isinstance(revision, PullRequestRevision):
                try:
                    revision.validate_merge_hash()
                except MergeHashValidationError as e:
                    self.stdout.write(self.style.WARNING(f'    {e}'))

        self.stdout.write('=' * 60)
        if result.cancelled:
            self.stdout.write(self.style.ERROR('SCAN CANCELLED - results are incomplete'))
        else:
            self.stdout.write(self.style.SUCCESS('SCAN COMPLETED'))
        self.stdout.write(f'Branches: {result.branches}')
        self.stdout.write(f'Pull requests: {result.pull_requests}')
        self.stdout.write(self.style.SUCCESS(f'✓ Heads reported: {result.observed}'))
        if result.skipped:
            self.stdout.write(self.style.WARNING(f'⊘ Skipped: {", ".join(result.skipped)}'))
        self.stdout.write('=' * 60)
