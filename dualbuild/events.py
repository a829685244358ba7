from dualbuild.const import PULL_REQUEST_ACTIONS
from dualbuild.schemas import CheckoutInfo, EventKind, TriggerEvent


def parse_github_event(event_name: str, payload: dict) -> TriggerEvent | None:
    """Extracts the event kind and target branch from a GitHub payload.

    Returns None for events that can never start a run: other event types,
    tag pushes, branch deletions and pull request activity that doesn't
    change the code.
    """
    if event_name == 'push':
        if payload.get('deleted'):
            return None
        ref = payload.get('ref', '')
        if not ref.startswith('refs/heads/'):
            return None
        return TriggerEvent(
            kind=EventKind.push, branch=ref.removeprefix('refs/heads/')
        )
    if event_name == 'pull_request':
        if payload.get('action') not in PULL_REQUEST_ACTIONS:
            return None
        return TriggerEvent(
            kind=EventKind.pull_request,
            branch=payload['pull_request']['base']['ref'],
        )
    return None


def get_head_sha(event_name: str, payload: dict) -> str:
    if event_name == 'pull_request':
        return payload['pull_request']['head']['sha']
    return payload['after']


def get_concurrency_key(event_name: str, payload: dict) -> str:
    repo_name = payload['repository']['full_name']
    if event_name == 'pull_request':
        return f'{repo_name}#{payload["pull_request"]["number"]}'
    return f'{repo_name}@{payload["ref"]}'


def get_checkout_info(event_name: str, payload: dict) -> CheckoutInfo:
    if event_name == 'pull_request':
        # the head may live in a fork
        repo = payload['pull_request']['head']['repo']
    else:
        repo = payload['repository']
    installation = payload.get('installation') or {}
    return CheckoutInfo(
        provider='github',
        clone_url=repo['clone_url'],
        repo_name=repo['full_name'],
        commit_sha=get_head_sha(event_name, payload),
        installation_id=installation.get('id'),
    )
