from dualbuild.events import (
    get_checkout_info,
    get_concurrency_key,
    get_head_sha,
    parse_github_event,
)
from dualbuild.schemas import EventKind


def push_payload(ref='refs/heads/main', **extra):
    return {
        'ref': ref,
        'after': 'abc123',
        'deleted': False,
        'repository': {
            'full_name': 'octo/bolt',
            'clone_url': 'https://github.com/octo/bolt.git',
        },
        'installation': {'id': 42},
        **extra,
    }


def pr_payload(action='opened', base='main'):
    return {
        'action': action,
        'pull_request': {
            'number': 7,
            'base': {'ref': base},
            'head': {
                'sha': 'def456',
                'repo': {
                    'full_name': 'fork/bolt',
                    'clone_url': 'https://github.com/fork/bolt.git',
                },
            },
        },
        'repository': {
            'full_name': 'octo/bolt',
            'clone_url': 'https://github.com/octo/bolt.git',
        },
        'installation': {'id': 42},
    }


class TestParseGithubEvent:
    def test_push_to_branch(self):
        event = parse_github_event('push', push_payload())
        assert event.kind == EventKind.push
        assert event.branch == 'main'

    def test_nested_branch_name(self):
        event = parse_github_event('push', push_payload('refs/heads/feature/x'))
        assert event.branch == 'feature/x'

    def test_tag_push_ignored(self):
        assert parse_github_event('push', push_payload('refs/tags/v1.0')) is None

    def test_branch_deletion_ignored(self):
        assert parse_github_event('push', push_payload(deleted=True)) is None

    def test_pull_request_uses_base_branch(self):
        event = parse_github_event('pull_request', pr_payload(base='main'))
        assert event.kind == EventKind.pull_request
        assert event.branch == 'main'

    def test_pull_request_non_code_actions_ignored(self):
        assert parse_github_event('pull_request', pr_payload('labeled')) is None
        assert parse_github_event('pull_request', pr_payload('closed')) is None

    def test_synchronize_triggers(self):
        assert parse_github_event('pull_request', pr_payload('synchronize'))

    def test_other_events_ignored(self):
        assert parse_github_event('issues', {'action': 'opened'}) is None


class TestEventDetails:
    def test_head_sha(self):
        assert get_head_sha('push', push_payload()) == 'abc123'
        assert get_head_sha('pull_request', pr_payload()) == 'def456'

    def test_concurrency_key(self):
        assert get_concurrency_key('push', push_payload()) == 'octo/bolt@refs/heads/main'
        assert get_concurrency_key('pull_request', pr_payload()) == 'octo/bolt#7'

    def test_pull_request_checks_out_head_repo(self):
        info = get_checkout_info('pull_request', pr_payload())
        assert info.repo_name == 'fork/bolt'
        assert info.clone_url == 'https://github.com/fork/bolt.git'
        assert info.commit_sha == 'def456'
        assert info.installation_id == 42

    def test_push_checks_out_repository(self):
        info = get_checkout_info('push', push_payload())
        assert info.repo_name == 'octo/bolt'
        assert info.commit_sha == 'abc123'
