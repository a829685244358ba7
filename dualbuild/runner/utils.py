import asyncio
import logging
import shutil
from pathlib import Path

from dualbuild.config import config
from dualbuild.exceptions import CommandError
from dualbuild.schemas import CheckoutInfo
from dualbuild.utils import async_check_output, GIT

logger = logging.getLogger(__name__)

# one fetch or clone per mirror at a time
_mirror_locks: dict[Path, asyncio.Lock] = {}


def authenticated_url(clone_url: str, token: str | None) -> str:
    if not token or not clone_url.startswith('https://'):
        return clone_url
    return clone_url.replace('https://', f'https://x-access-token:{token}@', 1)


async def update_mirror(repo_path: Path, url: str):
    if (repo_path / 'HEAD').is_file():
        await async_check_output(GIT, 'remote', 'set-url', 'origin', url, cwd=repo_path)
        await async_check_output(GIT, 'fetch', cwd=repo_path)
        return
    if repo_path.exists():
        logger.warning(f'Removing incomplete mirror {repo_path}')
        shutil.rmtree(repo_path)
    repo_path.mkdir(parents=True)
    try:
        await async_check_output(
            GIT,
            'clone',
            '--mirror',
            url,
            '.',
            cwd=repo_path,
        )
    except (CommandError, OSError, asyncio.CancelledError):
        shutil.rmtree(repo_path, ignore_errors=True)
        raise


async def checkout_repo(info: CheckoutInfo, at: str | Path, token: str | None = None):
    repo_path = config.repos_dir / info.provider / info.repo_name
    url = authenticated_url(info.clone_url, token)
    async with _mirror_locks.setdefault(repo_path, asyncio.Lock()):
        await update_mirror(repo_path, url)
    await async_check_output(
        GIT,
        'clone',
        repo_path,
        '.',
        cwd=at,
    )
    await async_check_output(
        GIT,
        'switch',
        '-d',
        info.commit_sha,
        cwd=at,
    )
