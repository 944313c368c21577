"""
Django settings for running the scmsource app standalone.

Every SCM_* value can be set through the environment variable of the same name.
"""

import os


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'scmsource-insecure-key')
DEBUG = _env_bool('DJANGO_DEBUG', False)
ALLOWED_HOSTS = []

INSTALLED_APPS = [
    'scmsource',
]

DATABASES = {}
USE_TZ = True

# GitHub access
SCM_GITHUB_TOKEN = os.environ.get('SCM_GITHUB_TOKEN', '')
SCM_GITHUB_API_URL = os.environ.get('SCM_GITHUB_API_URL', 'https://api.github.com')

# Discovery
SCM_BUILD_ORIGIN_BRANCHES = _env_bool('SCM_BUILD_ORIGIN_BRANCHES', True)
SCM_BUILD_ORIGIN_PR_MERGE = _env_bool('SCM_BUILD_ORIGIN_PR_MERGE', True)
SCM_BUILD_ORIGIN_PR_HEAD = _env_bool('SCM_BUILD_ORIGIN_PR_HEAD', False)
SCM_BUILD_FORK_PR_MERGE = _env_bool('SCM_BUILD_FORK_PR_MERGE', True)
SCM_BUILD_FORK_PR_HEAD = _env_bool('SCM_BUILD_FORK_PR_HEAD', False)
SCM_TRUST_MODE = os.environ.get('SCM_TRUST_MODE', 'contributors')

# Merge state polling and scan parallelism
SCM_MERGE_RETRY_ATTEMPTS = int(os.environ.get('SCM_MERGE_RETRY_ATTEMPTS', 3))
SCM_MERGE_RETRY_DELAY = float(os.environ.get('SCM_MERGE_RETRY_DELAY', 1.0))
SCM_SCAN_MAX_WORKERS = int(os.environ.get('SCM_SCAN_MAX_WORKERS', 1))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '[%(asctime)s] %(levelname)s [%(name)s:%(lineno)d] %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'loggers': {
        'scmsource': {
            'handlers': ['console'],
            'level': os.environ.get('SCM_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
