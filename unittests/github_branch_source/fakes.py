"""In-memory GitHub collaborator reproducing the cloudbeers/yolo fixture."""

from scmsource.github_branch_source.exceptions import NotFoundError

MASTER_SHA = '8f1314fc3c8284d8c6d5886d473db98f2126071c'
PATCH_1_SHA = '095e69602bb95a278505e937e41d505ac3cdd263'
PR_HEAD_SHA = 'c0e024f89969b976da165eecaa71e09dc60c3da1'
PR_2_MERGE_SHA = '38814ca33833ff5583624c29f305be9133f27a40'
PR_3_MERGE_SHA = '2c5ec81ed0c1df2b2bdda5b8a8f1e1c4e3e4d9b7'


def make_pull_request(number, head_owner='stephenc', head_repo='yolo', head_ref=None, base_ref='master',
                      head_sha=PR_HEAD_SHA, user_login=None, mergeable=None, merge_commit_sha=None, **kwargs):
    """Create a parsed pull request dictionary with sensible defaults."""
    pr = {
        'number': number,
        'title': f'Pull request {number}',
        'state': 'open',
        'html_url': f'https://github.com/cloudbeers/yolo/pull/{number}',
        'user_login': user_login if user_login is not None else head_owner,
        'head_sha': head_sha,
        'head_ref': head_ref or f'patch-{number}',
        'head_owner': head_owner,
        'head_repo': head_repo,
        'base_ref': base_ref,
        'base_sha': MASTER_SHA,
        'mergeable': mergeable,
        'merge_commit_sha': merge_commit_sha,
    }
    pr.update(kwargs)
    return pr


class FakeGitHub:
    """
    Fake REST collaborator.

    ``mergeable`` maps a pull request number to the sequence of values
    successive get_pull_request() calls return; the last value repeats.
    ``missing_refs`` maps a branch name to how many lookups fail with 404
    before it is found again (-1: always).
    """

    def __init__(self):
        self.repository = {
            'owner': 'cloudbeers',
            'name': 'yolo',
            'full_name': 'cloudbeers/yolo',
            'default_branch': 'master',
            'description': 'You only live once',
            'homepage': 'http://yolo.example.com',
            'html_url': 'https://github.com/cloudbeers/yolo',
            'private': False,
        }
        self.branches = [
            {'name': 'master', 'sha': MASTER_SHA},
            {'name': 'stephenc-patch-1', 'sha': PATCH_1_SHA},
        ]
        self.refs = {'master': MASTER_SHA, 'stephenc-patch-1': PATCH_1_SHA}
        self.pull_requests = [
            make_pull_request(2, merge_commit_sha=PR_2_MERGE_SHA),
            make_pull_request(3, merge_commit_sha=PR_3_MERGE_SHA),
        ]
        self.mergeable = {2: [None, None, True], 3: [False]}
        self.commits = {
            PR_2_MERGE_SHA: [MASTER_SHA, PR_HEAD_SHA],
            PR_3_MERGE_SHA: [MASTER_SHA, PR_HEAD_SHA],
        }
        self.permissions = {'stephenc': 'admin'}
        self.users = {'stephenc': {'login': 'stephenc', 'name': 'Stephen Connolly',
                                   'email': None, 'html_url': 'https://github.com/stephenc'}}
        # path -> contents type at every ref; any other path is missing
        self.files = {'README.md': 'file', 'docs': 'dir'}
        self.missing_refs = {}
        self.errors = {}
        self.calls = []
        self._pull_calls = {}

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        error = self.errors.get(name)
        if error is not None:
            raise error

    def count(self, name):
        return len([c for c in self.calls if c[0] == name])

    def get_repository(self, owner, name):
        self._record('get_repository', owner, name)
        return dict(self.repository)

    def list_branches(self, owner, name):
        self._record('list_branches', owner, name)
        return [dict(b) for b in self.branches]

    def get_branch_ref(self, owner, name, branch):
        self._record('get_branch_ref', owner, name, branch)
        remaining = self.missing_refs.get(branch, 0)
        if remaining:
            if remaining > 0:
                self.missing_refs[branch] = remaining - 1
            raise NotFoundError(f'Not found: refs/heads/{branch}', status_code=404)
        if branch not in self.refs:
            raise NotFoundError(f'Not found: refs/heads/{branch}', status_code=404)
        return self.refs[branch]

    def list_pull_requests(self, owner, name, state='open'):
        self._record('list_pull_requests', owner, name, state)
        # List payloads never carry the merge state
        return [dict(pr, mergeable=None) for pr in self.pull_requests]

    def get_pull_request(self, owner, name, number):
        self._record('get_pull_request', owner, name, number)
        for pr in self.pull_requests:
            if pr['number'] == number:
                sequence = self.mergeable.get(number, [None])
                index = self._pull_calls.get(number, 0)
                self._pull_calls[number] = index + 1
                return dict(pr, mergeable=sequence[min(index, len(sequence) - 1)])
        raise NotFoundError(f'Not found: pulls/{number}', status_code=404)

    def get_commit(self, owner, name, sha):
        self._record('get_commit', owner, name, sha)
        if sha not in self.commits:
            raise NotFoundError(f'Not found: commits/{sha}', status_code=404)
        return {'sha': sha, 'parents': list(self.commits[sha])}

    def get_collaborator_permission(self, owner, name, username):
        self._record('get_collaborator_permission', owner, name, username)
        if username not in self.permissions:
            raise NotFoundError(f'{username} is not a collaborator', status_code=404)
        return self.permissions[username]

    def get_user(self, username):
        self._record('get_user', username)
        if username not in self.users:
            raise NotFoundError(f'Not found: users/{username}', status_code=404)
        return dict(self.users[username])

    def get_contents(self, owner, name, path, ref):
        self._record('get_contents', owner, name, path, ref)
        return self.files.get(path)
