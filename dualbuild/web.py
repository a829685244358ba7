import asyncio
import hashlib
import hmac
import logging
from pathlib import Path
from tempfile import TemporaryDirectory
from time import time

import httpx
from datetime import datetime
from joserfc import jwt
from starlette.applications import Starlette
from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from dualbuild.config import config
from dualbuild.const import CHECK_RUN_TEXT_LIMIT
from dualbuild.events import (
    get_checkout_info,
    get_concurrency_key,
    get_head_sha,
    parse_github_event,
)
from dualbuild.runner import Runner
from dualbuild.runner.utils import checkout_repo
from dualbuild.schemas import CheckoutInfo, RunResult, TriggerEvent
from dualbuild.trigger import TriggerEvaluator

GH_API_BASE = 'https://api.github.com'

logger = logging.getLogger(__name__)


def get_token():
    now = int(datetime.now().timestamp()) - 60
    data = {
        'iat': now,
        'exp': now + 60 * 10,
        'iss': str(config.gh_app_id),
    }
    return jwt.encode({'alg': 'RS256'}, data, config.gh_key)


async def get_installation_client(
    installation_id: int,
) -> tuple[httpx.AsyncClient, str]:
    async with httpx.AsyncClient(
        base_url=GH_API_BASE,
        headers={'Authorization': f'Bearer {get_token()}'},
    ) as app_client:
        installation_token_resp = await app_client.post(
            f'/app/installations/{installation_id}/access_tokens'
        )
    installation_token_resp.raise_for_status()
    installation_token = installation_token_resp.json()['token']
    installation_client = httpx.AsyncClient(
        base_url=GH_API_BASE,
        headers={'Authorization': f'Bearer {installation_token}'},
    )
    return installation_client, installation_token


def format_report(result: RunResult) -> str:
    sections = [result.summary()]
    for arch, job in result.jobs.items():
        if job.error_kind:
            sections.append(
                f'### {arch.value} ({job.error_kind.value})\n\n'
                f'```\n{job.diagnostics}\n```'
            )
    text = '\n\n'.join(sections)
    if len(text) > CHECK_RUN_TEXT_LIMIT:
        # keep the tail, the build error is usually at the end
        text = text[-CHECK_RUN_TEXT_LIMIT:]
    return text


class CheckRun:
    client: httpx.AsyncClient
    repo_name: str
    head_sha: str
    check_run_id: int | None

    def __init__(self, client: httpx.AsyncClient, repo_name: str, head_sha: str):
        self.client = client
        self.repo_name = repo_name
        self.head_sha = head_sha
        self.check_run_id = None

    async def start(self):
        resp = await self.client.post(
            f'/repos/{self.repo_name}/check-runs',
            json={
                'name': config.check_name,
                'head_sha': self.head_sha,
                'status': 'in_progress',
            },
        )
        resp.raise_for_status()
        self.check_run_id = resp.json()['id']

    async def complete(self, conclusion: str, title: str, summary: str, text: str = ''):
        output = {'title': title, 'summary': summary}
        if text:
            output['text'] = text
        resp = await self.client.patch(
            f'/repos/{self.repo_name}/check-runs/{self.check_run_id}',
            json={'status': 'completed', 'conclusion': conclusion, 'output': output},
        )
        resp.raise_for_status()

    async def report(self, result: RunResult):
        if result.success:
            title = 'Both architectures build'
        else:
            title = f'Build failed: {result.worst_error.value}'
        await self.complete(
            result.conclusion, title, result.summary(), format_report(result)
        )


class InFlightRuns:
    """Tracks running builds so a newer event supersedes an older one."""

    _tasks: dict[str, asyncio.Task]

    def __init__(self):
        self._tasks = {}

    def start(self, key: str, coro) -> asyncio.Task:
        if (previous := self._tasks.get(key)) is not None and not previous.done():
            logger.info(f'Cancelling superseded run for {key}')
            previous.cancel()
        task = asyncio.create_task(coro)
        self._tasks[key] = task
        task.add_done_callback(lambda t: self._forget(key, t))
        return task

    def _forget(self, key: str, task: asyncio.Task):
        if self._tasks.get(key) is task:
            del self._tasks[key]

    def __contains__(self, key: str) -> bool:
        return key in self._tasks


in_flight = InFlightRuns()


async def execute_run(
    event: TriggerEvent, checkout: CheckoutInfo, base_repo_name: str
) -> RunResult | None:
    s = time()
    client, installation_token = await get_installation_client(
        checkout.installation_id
    )
    async with client:
        check_run = CheckRun(client, base_repo_name, checkout.commit_sha)
        await check_run.start()
        try:
            with TemporaryDirectory() as path:
                await checkout_repo(checkout, path, installation_token)
                runner = Runner(config, Path(path), reporter=check_run.report)
                result = await runner.run(event)
        except asyncio.CancelledError:
            await check_run.complete(
                'cancelled', 'Superseded', 'A newer run replaced this one'
            )
            raise
        except Exception:
            await check_run.complete(
                'failure', 'Internal dualbuild error', 'The run could not complete'
            )
            raise
    logger.info(f'Total {time() - s}')
    return result


async def supervise_run(key: str, *args):
    task = in_flight.start(key, execute_run(*args))
    try:
        await task
    except asyncio.CancelledError:
        if not task.cancelled():
            raise
        logger.info(f'Run for {key} was superseded')


def verify_signature(body: bytes, signature: str | None) -> bool:
    if not config.webhook_secret:
        return True
    if not signature:
        return False
    expected = 'sha256=' + hmac.new(
        config.webhook_secret.encode(), body, hashlib.sha256
    ).hexdigest()
    return hmac.compare_digest(expected, signature)


async def webhook(request: Request):
    body = await request.body()
    if not verify_signature(body, request.headers.get('x-hub-signature-256')):
        return Response('Invalid signature', 401)
    payload = await request.json()
    event_name = request.headers.get('x-github-event', '')
    event = parse_github_event(event_name, payload)
    if event is None or not TriggerEvaluator(config.branch).qualifies(event):
        return Response(None, 204)
    logger.info(
        f'Scheduling run for {get_head_sha(event_name, payload)} '
        f'({event.kind.value} to {event.branch})'
    )
    task = BackgroundTask(
        supervise_run,
        get_concurrency_key(event_name, payload),
        event,
        get_checkout_info(event_name, payload),
        payload['repository']['full_name'],
    )
    return Response(None, 202, background=task)


app = Starlette(
    debug=config.debug, routes=[Route('/webhook', webhook, methods=['POST'])]
)
